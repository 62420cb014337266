"""
Behavior analyzer for learning from completed shopping trips.

Owns one user's behavior profile: loads it from the profile store,
updates it from trip records with rolling averages, and turns it into
personalized recommendations and a learning-maturity status.
"""

import logging
import math
from datetime import datetime
from typing import Callable, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from shopping_ai.models.behavior_profile import (
    CategoryBehavior,
    StorePreference,
    UserBehaviorProfile,
    clamp_unit,
)
from shopping_ai.models.recommendations import (
    BulkOpportunity,
    CrowdAvoidance,
    MissingStaple,
    OrganicAlternative,
    PreferredSections,
    RecommendationBundle,
    SpeedOptimization,
    StoreSatisfaction,
    SuboptimalTime,
)
from shopping_ai.models.route_result import LearningStatus
from shopping_ai.models.shopping_trip import ShoppingTripRecord, TripItem
from shopping_ai.storage.profile_store import ProfileStore, ProfileStoreError
from shopping_ai.utils.constants import (
    BULK_AMOUNT_THRESHOLD,
    BULK_SUGGESTION_THRESHOLD,
    CROWD_PREFERENCE_THRESHOLD,
    DATA_QUALITY_TRIPS,
    FLEXIBILITY_BASELINE,
    FLEXIBILITY_STEP,
    HIGH_DEVIATION,
    HIGH_SATISFACTION,
    ITEM_PREFERENCE_DECAY,
    LEARNING_LEVELS,
    LOW_DEVIATION,
    LOW_SATISFACTION_THRESHOLD,
    MIN_LEARNING_SATISFACTION,
    ORGANIC_SUGGESTION_THRESHOLD,
    PATTERN_DECAY,
    SPEED_PREFERENCE_THRESHOLD,
    SPEED_STEP,
    STAPLE_CONFIDENCE_DIVISOR,
    STAPLE_FREQUENCY_THRESHOLD,
    STORE_SATISFACTION_DECAY,
    STORE_TIPS_MIN_VISITS,
    TRUST_BASELINE,
    TRUST_STEP,
)
from shopping_ai.utils import time_utils


logger = logging.getLogger(__name__)


def calculate_route_deviation(
    recommended: Optional[List[str]],
    actual: Optional[List[str]]
) -> float:
    """
    Fraction of positions where the walked route left the recommendation.

    Only the first min(len) positions are compared, but the mismatch count
    is divided by the longer route's length, so extra or missing sections
    dilute the score rather than count as mismatches.

    Returns:
        0.0 (followed exactly) to 1.0; 1.0 if either route is missing
    """
    if not recommended or not actual:
        return 1.0

    deviations = sum(
        1 for rec, act in zip(recommended, actual) if rec != act
    )
    return deviations / max(len(recommended), len(actual))


def _rolling(old: float, sample: float, decay: float) -> float:
    """Exponential decay update: old * decay + sample * (1 - decay)."""
    return old * decay + sample * (1 - decay)


def _round_half_up(value: float) -> float:
    return float(math.floor(value + 0.5))


class BehaviorAnalyzer:
    """
    Learner and advisor for one user's shopping behavior.

    Learning never overwrites a preference outright: every update is a
    rolling average or a capped step, so preferences stay in 0.0-1.0.

    Example usage:
        analyzer = BehaviorAnalyzer("user-1", store)
        await analyzer.load_profile()
        await analyzer.learn_from_trip(trip)
        bundle = analyzer.get_personalized_recommendations(shopping_list, "Kroger")
    """

    def __init__(
        self,
        user_id: str,
        profile_store: ProfileStore,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Initialize analyzer with a fresh default profile.

        Args:
            user_id: Owner of the profile
            profile_store: Where the profile is persisted
            clock: Returns the current moment. Defaults to local wall clock.
        """
        self.user_id = user_id
        self.profile_store = profile_store
        self.clock = clock or time_utils.now
        self.profile = UserBehaviorProfile.default(user_id)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def load_profile(self) -> UserBehaviorProfile:
        """
        Load the persisted profile, falling back to defaults.

        Never raises: a missing, unreadable or invalid blob yields a fresh
        default profile.
        """
        try:
            blob = await self.profile_store.load(self.user_id)
        except ProfileStoreError as e:
            logger.warning("Could not load behavior profile for %s: %s", self.user_id, e)
            blob = None

        if blob is None:
            self.profile = UserBehaviorProfile.default(self.user_id)
            return self.profile

        try:
            self.profile = UserBehaviorProfile.model_validate(blob)
        except ValidationError as e:
            logger.warning(
                "Discarding invalid behavior profile for %s (%d errors)",
                self.user_id, e.error_count(),
            )
            self.profile = UserBehaviorProfile.default(self.user_id)
        return self.profile

    async def save_profile(self) -> bool:
        """
        Persist the profile with a fresh last_updated stamp.

        Returns:
            True on success, False if the store failed (logged, not raised)
        """
        self.profile.last_updated = datetime.utcnow()
        try:
            await self.profile_store.save(
                self.user_id, self.profile.model_dump(mode='json')
            )
        except ProfileStoreError as e:
            logger.error(
                "Error saving behavior profile for %s: %s", self.user_id, e,
                exc_info=True,
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    async def learn_from_trip(self, trip: ShoppingTripRecord) -> bool:
        """
        Update the profile from a completed trip and persist it.

        The reload-update-save cycle holds the user's lock, so concurrent
        trips for the same user are applied one after another.

        Args:
            trip: Completed trip record

        Returns:
            True if the updated profile was saved
        """
        async with self.profile_store.lock_for(self.user_id):
            await self.load_profile()
            moment = self.clock()

            self._update_shopping_patterns(len(trip.items), trip.time_spent, moment)
            self._update_route_preferences(
                trip.recommended_route, trip.actual_route, trip.satisfaction
            )
            self._update_item_preferences(trip.items)
            self._update_store_preferences(
                trip.store, trip.satisfaction, trip.actual_route
            )

            saved = await self.save_profile()

        logger.info(
            "Learned from shopping trip for %s: %d items, %smin, satisfaction %d/5",
            self.user_id, len(trip.items), trip.time_spent, trip.satisfaction,
        )
        return saved

    def _update_shopping_patterns(
        self,
        item_count: int,
        time_spent: float,
        moment: datetime
    ) -> None:
        patterns = self.profile.shopping_patterns
        # Averages are kept as whole items and minutes
        patterns.average_items = _round_half_up(
            _rolling(patterns.average_items, item_count, PATTERN_DECAY)
        )
        patterns.average_time = _round_half_up(
            _rolling(patterns.average_time, time_spent, PATTERN_DECAY)
        )

        day = time_utils.weekday_name(moment)
        slot = time_utils.get_time_slot(moment.hour)
        patterns.day_frequency[day] = patterns.day_frequency.get(day, 0) + 1
        patterns.time_frequency[slot] = patterns.time_frequency.get(slot, 0) + 1

    def _update_route_preferences(
        self,
        recommended: List[str],
        actual: Optional[List[str]],
        satisfaction: int
    ) -> None:
        """
        Adjust trust and flexibility from how closely the route was followed.

        Skipped for unhappy trips and trips without a tracked route.
        """
        if not actual or satisfaction < MIN_LEARNING_SATISFACTION:
            return

        prefs = self.profile.route_preferences
        deviation = calculate_route_deviation(recommended, actual)

        if deviation < LOW_DEVIATION and satisfaction >= HIGH_SATISFACTION:
            # Followed the route and liked it
            trust = prefs.trust_recommendations
            if trust is None:
                trust = TRUST_BASELINE
            prefs.trust_recommendations = clamp_unit(trust + TRUST_STEP)
        elif deviation > HIGH_DEVIATION and satisfaction >= HIGH_SATISFACTION:
            # Went their own way and still liked it
            prefs.prioritize_speed = clamp_unit(prefs.prioritize_speed - SPEED_STEP)
            flexibility = prefs.flexibility
            if flexibility is None:
                flexibility = FLEXIBILITY_BASELINE
            prefs.flexibility = clamp_unit(flexibility + FLEXIBILITY_STEP)

    def _update_item_preferences(self, items: List[TripItem]) -> None:
        if not items:
            return

        organic_count = 0
        bulk_count = 0

        for item in items:
            if item.is_organic:
                organic_count += 1
            if item.is_bulk or (item.amount is not None and item.amount > BULK_AMOUNT_THRESHOLD):
                bulk_count += 1

            category = self.profile.category_behavior.setdefault(
                item.category, CategoryBehavior()
            )
            category.frequency += 1
            if item.amount is not None and item.amount > 0:
                # Running mean over the purchases that reported an amount
                category.average_quantity += (item.amount - category.average_quantity) / category.frequency
            if item.brand:
                category.preferred_brands[item.brand] = (
                    category.preferred_brands.get(item.brand, 0) + 1
                )

        prefs = self.profile.item_preferences
        prefs.organic_preference = clamp_unit(_rolling(
            prefs.organic_preference, organic_count / len(items), ITEM_PREFERENCE_DECAY
        ))
        prefs.bulk_buying = clamp_unit(_rolling(
            prefs.bulk_buying, bulk_count / len(items), ITEM_PREFERENCE_DECAY
        ))

    def _update_store_preferences(
        self,
        store: str,
        satisfaction: int,
        actual_route: Optional[List[str]]
    ) -> None:
        store_data = self.profile.preferred_stores.setdefault(store, StorePreference())
        store_data.visit_count += 1
        store_data.average_satisfaction = _rolling(
            store_data.average_satisfaction, satisfaction, STORE_SATISFACTION_DECAY
        )

        if actual_route and satisfaction >= HIGH_SATISFACTION:
            for section in actual_route:
                store_data.preferred_sections[section] = (
                    store_data.preferred_sections.get(section, 0) + 1
                )

    # ------------------------------------------------------------------
    # Recommendations
    # ------------------------------------------------------------------

    def get_personalized_recommendations(
        self,
        shopping_list: Optional[Mapping[str, object]],
        store: str,
        now: Optional[datetime] = None
    ) -> RecommendationBundle:
        """
        Build personalized suggestions for a list at a store.

        Args:
            shopping_list: Category -> items (only the categories are used)
            store: Store name
            now: Moment used for timing advice. Defaults to the clock.

        Returns:
            RecommendationBundle grouped by route, items, timing and store
        """
        bundle = RecommendationBundle()
        route_prefs = self.profile.route_preferences

        if route_prefs.prioritize_speed > SPEED_PREFERENCE_THRESHOLD:
            bundle.route_adjustments.append(SpeedOptimization(
                message='Optimizing for fastest route based on your preferences',
                confidence=route_prefs.prioritize_speed,
            ))

        if route_prefs.avoid_crowds > CROWD_PREFERENCE_THRESHOLD:
            bundle.route_adjustments.append(CrowdAvoidance(
                message='Adjusting route to avoid busy sections',
                confidence=route_prefs.avoid_crowds,
            ))

        self._add_item_suggestions(shopping_list or {}, bundle)
        self._add_timing_advice(now or self.clock(), bundle)
        self._add_store_tips(store, bundle)

        return bundle

    def _add_item_suggestions(
        self,
        shopping_list: Mapping[str, object],
        bundle: RecommendationBundle
    ) -> None:
        item_prefs = self.profile.item_preferences

        if item_prefs.organic_preference > ORGANIC_SUGGESTION_THRESHOLD:
            bundle.item_suggestions.append(OrganicAlternative(
                message='Consider organic versions of produce items',
                confidence=item_prefs.organic_preference,
            ))

        if item_prefs.bulk_buying > BULK_SUGGESTION_THRESHOLD:
            bundle.item_suggestions.append(BulkOpportunity(
                message='Bulk options available for non-perishables',
                confidence=item_prefs.bulk_buying,
            ))

        # Staples bought often but missing from this list
        current_categories = set(shopping_list.keys())
        for category, behavior in self.profile.category_behavior.items():
            if behavior.frequency > STAPLE_FREQUENCY_THRESHOLD and category not in current_categories:
                bundle.item_suggestions.append(MissingStaple(
                    message=f"You usually buy {category} items - anything missing?",
                    category=category,
                    confidence=min(1.0, behavior.frequency / STAPLE_CONFIDENCE_DIVISOR),
                ))

    def _add_timing_advice(self, moment: datetime, bundle: RecommendationBundle) -> None:
        patterns = self.profile.shopping_patterns
        if not patterns.time_frequency:
            return

        current_slot = time_utils.get_time_slot(moment.hour)
        preferred_slots = patterns.top_time_slots(2)

        if current_slot not in preferred_slots:
            bundle.timing_advice.append(SuboptimalTime(
                message=f"You usually shop during {' or '.join(preferred_slots)}",
                preferred_slots=preferred_slots,
            ))

    def _add_store_tips(self, store: str, bundle: RecommendationBundle) -> None:
        store_data = self.profile.preferred_stores.get(store)
        if store_data is None or store_data.visit_count <= STORE_TIPS_MIN_VISITS:
            return

        if store_data.average_satisfaction < LOW_SATISFACTION_THRESHOLD:
            bundle.store_specific_tips.append(StoreSatisfaction(
                message='Your satisfaction with this store has been lower recently',
            ))

        top_sections = _top_keys(store_data.preferred_sections.items(), 2)
        if top_sections:
            bundle.store_specific_tips.append(PreferredSections(
                message=f"You typically have good experiences in {' and '.join(top_sections)} sections",
                sections=top_sections,
            ))

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_learning_status(self) -> LearningStatus:
        """Summarize how much the analyzer has learned."""
        return learning_status_for(self.profile.total_trips)


def learning_status_for(total_trips: int) -> LearningStatus:
    """
    Learning status after a number of trips.

    Levels: Beginner (<5 trips), Intermediate (5-9), Advanced (10-19),
    Expert (20+).
    """
    level = next(name for minimum, name in LEARNING_LEVELS if total_trips >= minimum)

    if level == 'Expert':
        next_milestone = 'Keep using AI for optimal results'
    else:
        # Next level up is the entry just before this one
        names = [name for _, name in LEARNING_LEVELS]
        next_minimum, next_level = LEARNING_LEVELS[names.index(level) - 1]
        remaining = next_minimum - total_trips
        next_milestone = f"{remaining} trips to {next_level} level"

    return LearningStatus(
        learning_level=level,
        total_trips=total_trips,
        next_milestone=next_milestone,
        data_quality=min(1.0, total_trips / DATA_QUALITY_TRIPS),
    )


def _top_keys(counts: Iterable, limit: int) -> List[str]:
    ranked = sorted(counts, key=lambda x: x[1], reverse=True)
    return [key for key, _ in ranked[:limit]]
