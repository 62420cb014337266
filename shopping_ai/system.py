"""
Shopping AI system - Public entry points.

Wires one BehaviorAnalyzer and one AIRouteOptimizer per user and exposes
every public operation with fault isolation: callers get a result, a
degraded result or a failure value, never an exception.

Example usage:
    system = create_shopping_ai_system("user-1")
    result = await system.optimize_route({"Produce": ["Apples"]}, "Kroger")
    await system.learn_from_trip({"store": "Kroger", "time_spent": 30, "satisfaction": 5})

    # Or without holding a system:
    result = await optimize_route({"Dairy": ["Milk"]}, "Costco", "user-1")
"""

import logging
import random
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Union

from pydantic import ValidationError

from shopping_ai.layout.store_layout import CategoryLayoutProvider, StoreLayoutProvider
from shopping_ai.models.recommendations import RecommendationBundle
from shopping_ai.models.route_result import (
    LearningStatus,
    OperationResult,
    OptimizedRouteResult,
    ProfileExport,
    RouteInsights,
    RouteMetadata,
    ShoppingAnalytics,
)
from shopping_ai.models.shopping_trip import RawShoppingList, ShoppingTripRecord, normalize_shopping_list
from shopping_ai.models.traffic_prediction import TrafficPrediction
from shopping_ai.scoring.behavior_analyzer import BehaviorAnalyzer, learning_status_for
from shopping_ai.scoring.route_optimizer import AIRouteOptimizer
from shopping_ai.scoring.traffic_predictor import StoreTrafficPredictor
from shopping_ai.storage.profile_store import ProfileStore, ProfileStoreError, store_from_env
from shopping_ai.utils.constants import ALGORITHM_FALLBACK, FALLBACK_REASON, MIN_CONFIDENCE


logger = logging.getLogger(__name__)

TripData = Union[ShoppingTripRecord, Dict[str, Any]]
ExportData = Union[ProfileExport, Dict[str, Any]]


class ShoppingAISystem:
    """
    Per-user facade over learning and routing.

    Every method reloads the user's profile first, so two systems for the
    same user over the same store always see the latest saved state.
    """

    def __init__(
        self,
        user_id: str,
        profile_store: ProfileStore,
        behavior_analyzer: BehaviorAnalyzer,
        route_optimizer: AIRouteOptimizer,
    ) -> None:
        self.user_id = user_id
        self.profile_store = profile_store
        self.behavior_analyzer = behavior_analyzer
        self.route_optimizer = route_optimizer

    @property
    def layout_provider(self) -> StoreLayoutProvider:
        return self.route_optimizer.layout_provider

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    async def optimize_route(
        self,
        shopping_list: Optional[RawShoppingList],
        store: str,
        preferences: Optional[Dict[str, Any]] = None
    ) -> OptimizedRouteResult:
        """
        Personalized route, or the plain store layout if optimization fails.

        Returns:
            OptimizedRouteResult; algorithm "Fallback" with confidence 0.3
            and the error message in metadata when anything went wrong
        """
        try:
            await self.behavior_analyzer.load_profile()
            return self.route_optimizer.optimize_shopping_route(
                shopping_list, store, preferences
            )
        except Exception as e:
            logger.warning(
                "AI optimization failed for %s at %s, using fallback: %s",
                self.user_id, store, e, exc_info=True,
            )
            return self._fallback_route(shopping_list, store, e)

    def _fallback_route(
        self,
        shopping_list: Optional[RawShoppingList],
        store: str,
        error: Exception
    ) -> OptimizedRouteResult:
        try:
            sections = self.layout_provider.apply_store_layout(
                normalize_shopping_list(shopping_list), store
            ).sections
        except Exception as layout_error:
            logger.error("Store layout failed for fallback route: %s", layout_error)
            sections = []

        return OptimizedRouteResult(
            optimized_route=sections,
            ai_insights=RouteInsights(
                confidence_score=MIN_CONFIDENCE,
                estimated_time_savings=0,
                improvement_reasons=[FALLBACK_REASON],
            ),
            smart_suggestions=RecommendationBundle(),
            traffic_info=TrafficPrediction.neutral(),
            metadata=RouteMetadata(algorithm=ALGORITHM_FALLBACK, error=str(error)),
        )

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    async def learn_from_trip(self, trip_data: TripData) -> OperationResult:
        """
        Learn from a completed trip.

        Args:
            trip_data: ShoppingTripRecord or an equivalent dict

        Returns:
            OperationResult; failure on invalid trip data or a failed save
        """
        try:
            trip = ShoppingTripRecord.model_validate(trip_data)
        except ValidationError as e:
            logger.warning("Rejected invalid trip for %s: %s", self.user_id, e)
            return OperationResult.failed(f"Invalid trip data: {e.error_count()} errors")

        try:
            saved = await self.behavior_analyzer.learn_from_trip(trip)
        except Exception as e:
            logger.error("Learning feedback failed for %s: %s", self.user_id, e, exc_info=True)
            return OperationResult.failed(str(e))

        if not saved:
            return OperationResult.failed("Could not save behavior profile")
        return OperationResult.ok()

    async def get_personalized_recommendations(
        self,
        shopping_list: Optional[RawShoppingList],
        store: str
    ) -> RecommendationBundle:
        """Suggestions for a list, or an empty bundle on failure."""
        try:
            await self.behavior_analyzer.load_profile()
            return self.behavior_analyzer.get_personalized_recommendations(
                normalize_shopping_list(shopping_list), store
            )
        except Exception as e:
            logger.error("AI suggestions failed for %s: %s", self.user_id, e, exc_info=True)
            return RecommendationBundle()

    async def get_learning_status(self) -> LearningStatus:
        """Learning maturity, or a fresh Beginner status on failure."""
        try:
            await self.behavior_analyzer.load_profile()
            return self.behavior_analyzer.get_learning_status()
        except Exception as e:
            logger.error("Learning status failed for %s: %s", self.user_id, e, exc_info=True)
            return learning_status_for(0)

    async def get_shopping_analytics(self) -> Optional[ShoppingAnalytics]:
        """Snapshot of the learned profile, or None on failure."""
        try:
            profile = await self.behavior_analyzer.load_profile()
            status = self.behavior_analyzer.get_learning_status()
            return ShoppingAnalytics(
                learning_status=status,
                shopping_patterns=profile.shopping_patterns,
                preferred_stores=profile.preferred_stores,
                item_preferences=profile.item_preferences,
                route_preferences=profile.route_preferences,
                total_data_points=status.total_trips,
                last_updated=profile.last_updated,
            )
        except Exception as e:
            logger.error("Analytics failed for %s: %s", self.user_id, e, exc_info=True)
            return None

    # ------------------------------------------------------------------
    # Data management
    # ------------------------------------------------------------------

    async def export_ai_data(self) -> Optional[ProfileExport]:
        """Versioned copy of the profile, or None on failure."""
        try:
            profile = await self.behavior_analyzer.load_profile()
            return ProfileExport(user_id=self.user_id, behavior_data=profile)
        except Exception as e:
            logger.error("Export failed for %s: %s", self.user_id, e, exc_info=True)
            return None

    async def import_ai_data(self, import_data: ExportData) -> OperationResult:
        """
        Replace the stored profile with an exported one.

        The export and the profile inside it must both belong to this user;
        otherwise nothing is written.
        """
        try:
            export = ProfileExport.model_validate(import_data)
        except ValidationError as e:
            logger.warning("Rejected malformed import for %s: %s", self.user_id, e)
            return OperationResult.failed(f"Invalid import data: {e.error_count()} errors")

        if export.user_id != self.user_id or export.behavior_data.user_id != self.user_id:
            logger.warning(
                "Rejected import for %s: data belongs to %s",
                self.user_id, export.user_id,
            )
            return OperationResult.failed("User ID mismatch")

        try:
            async with self.profile_store.lock_for(self.user_id):
                await self.profile_store.save(
                    self.user_id, export.behavior_data.model_dump(mode='json')
                )
        except ProfileStoreError as e:
            logger.error("Import failed for %s: %s", self.user_id, e, exc_info=True)
            return OperationResult.failed(str(e))

        self.behavior_analyzer.profile = export.behavior_data
        logger.info("AI data imported for %s", self.user_id)
        return OperationResult.ok()

    async def reset_ai_data(self) -> OperationResult:
        """Delete the stored profile; the next load starts from defaults."""
        try:
            async with self.profile_store.lock_for(self.user_id):
                await self.profile_store.delete(self.user_id)
        except ProfileStoreError as e:
            logger.error("Reset failed for %s: %s", self.user_id, e, exc_info=True)
            return OperationResult.failed(str(e))

        await self.behavior_analyzer.load_profile()
        logger.info("AI data reset for %s", self.user_id)
        return OperationResult.ok()


def create_shopping_ai_system(
    user_id: str,
    profile_store: Optional[ProfileStore] = None,
    layout_provider: Optional[StoreLayoutProvider] = None,
    traffic_predictor: Optional[StoreTrafficPredictor] = None,
    rng: Optional[random.Random] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> ShoppingAISystem:
    """
    Wire a system for one user.

    Args:
        user_id: Owner of the behavior profile
        profile_store: Persistence backend. Defaults to the environment's store.
        layout_provider: Store layout. Defaults to CategoryLayoutProvider.
        traffic_predictor: Congestion model. Defaults to StoreTrafficPredictor.
        rng: Random source for the backtrack search
        clock: Returns the current moment for learning, traffic and insights

    Returns:
        ShoppingAISystem
    """
    store = profile_store or get_default_store()
    analyzer = BehaviorAnalyzer(user_id, store, clock=clock)
    optimizer = AIRouteOptimizer(
        analyzer,
        layout_provider=layout_provider or CategoryLayoutProvider(),
        traffic_predictor=traffic_predictor,
        rng=rng,
        clock=clock,
    )
    return ShoppingAISystem(user_id, store, analyzer, optimizer)


_default_store: Optional[ProfileStore] = None


def get_default_store() -> ProfileStore:
    """Process-wide store chosen from the environment on first use."""
    global _default_store
    if _default_store is None:
        _default_store = store_from_env()
    return _default_store


# ============================================================================
# Module-level operations
# ============================================================================

async def optimize_route(
    shopping_list: Optional[RawShoppingList],
    store: str,
    user_id: str,
    preferences: Optional[Dict[str, Any]] = None,
    profile_store: Optional[ProfileStore] = None,
) -> OptimizedRouteResult:
    """Optimized route for a user; falls back to the plain layout on error."""
    system = create_shopping_ai_system(user_id, profile_store)
    return await system.optimize_route(shopping_list, store, preferences)


async def record_trip(
    user_id: str,
    trip_data: TripData,
    profile_store: Optional[ProfileStore] = None,
) -> OperationResult:
    """Feed a completed trip back into the user's profile."""
    system = create_shopping_ai_system(user_id, profile_store)
    result = await system.learn_from_trip(trip_data)
    if result.success:
        logger.info("Learning feedback processed for %s", user_id)
    return result


async def get_recommendations(
    user_id: str,
    shopping_list: Optional[RawShoppingList],
    store: str,
    profile_store: Optional[ProfileStore] = None,
) -> RecommendationBundle:
    system = create_shopping_ai_system(user_id, profile_store)
    return await system.get_personalized_recommendations(shopping_list, store)


async def get_learning_status(
    user_id: str,
    profile_store: Optional[ProfileStore] = None,
) -> LearningStatus:
    system = create_shopping_ai_system(user_id, profile_store)
    return await system.get_learning_status()


async def get_analytics(
    user_id: str,
    profile_store: Optional[ProfileStore] = None,
) -> Optional[ShoppingAnalytics]:
    system = create_shopping_ai_system(user_id, profile_store)
    return await system.get_shopping_analytics()


async def export_profile(
    user_id: str,
    profile_store: Optional[ProfileStore] = None,
) -> Optional[ProfileExport]:
    system = create_shopping_ai_system(user_id, profile_store)
    return await system.export_ai_data()


async def import_profile(
    user_id: str,
    import_data: ExportData,
    profile_store: Optional[ProfileStore] = None,
) -> OperationResult:
    system = create_shopping_ai_system(user_id, profile_store)
    return await system.import_ai_data(import_data)


async def reset_profile(
    user_id: str,
    profile_store: Optional[ProfileStore] = None,
) -> OperationResult:
    system = create_shopping_ai_system(user_id, profile_store)
    return await system.reset_ai_data()
