"""
AI route optimizer for turning a shopping list into an annotated route.

Pipeline (in order):
1. Base route from the store layout provider (food-safety order)
2. Behavior optimizations: merge nearby sections, crowd hints, backtrack search
3. Traffic optimization: least congested first within a food-safety tier
4. Dynamic optimizations: nearby areas, item density, pacing breaks
5. Per-section insight annotation

The backtrack step is a bounded random-restart search over a small
distance table, not an exact shortest-path solve: it keeps the best of
the current order and min(10, 2n) random shuffles.
"""

import logging
import random
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from shopping_ai.layout.store_layout import CategoryLayoutProvider, StoreLayoutProvider
from shopping_ai.models.behavior_profile import RoutePreferences
from shopping_ai.models.route_result import OptimizedRouteResult, RouteInsights, RouteMetadata
from shopping_ai.models.shopping_trip import (
    RawShoppingList,
    count_items,
    normalize_shopping_list,
)
from shopping_ai.models.store_section import CrowdAvoidanceHints, SectionInsights, StoreSection
from shopping_ai.models.traffic_prediction import TrafficPrediction
from shopping_ai.scoring.behavior_analyzer import BehaviorAnalyzer
from shopping_ai.scoring.traffic_predictor import StoreTrafficPredictor
from shopping_ai.utils.constants import (
    ALGORITHM_AI,
    ALTERNATIVE_ORDER,
    AREA_ICON,
    BACKTRACK_THRESHOLD,
    BREAK_ICON,
    BREAK_INTERVAL,
    BREAK_MINUTES,
    BREAK_SECTION_NAME,
    BREAK_TIPS,
    CROWD_ANNOTATION_THRESHOLD,
    CROWD_PREFERENCE_THRESHOLD,
    DATA_CONFIDENCE_CAP,
    DATA_CONFIDENCE_TRIPS,
    DEFAULT_SECTION_CONGESTION,
    DEFAULT_SECTION_DISTANCE,
    DEFAULT_SECTION_TIME,
    EFFICIENCY_TIPS,
    FLEXIBLE_TIMING,
    FOOD_SAFETY_CONFIDENCE_BONUS,
    LARGE_LIST_THRESHOLD,
    LONG_ROUTE_SECTIONS,
    MAX_CONFIDENCE,
    MAX_SECTION_CROWD,
    MAX_SHUFFLE_ATTEMPTS,
    MAX_WAIT_MINUTES,
    MERGE_SPEED_THRESHOLD,
    MIN_CONFIDENCE,
    MIN_SECTIONS_FOR_SEARCH,
    NEARBY_GROUPS,
    OPTIMAL_SECTION_TIMES,
    PERSONAL_NOTE_MIN_FREQUENCY,
    POPULAR_SECTION_BUMP,
    ROUTE_LENGTH_ADJUSTMENT,
    SECTION_BASE_CROWD,
    SECTION_DISTANCES,
    SECTION_PEAK_HOURS,
    SECTION_RUSH_HOURS,
    SECTION_TIME_RECOMMENDATIONS,
    SECTION_WEEKEND_BUMP,
    SHORT_ROUTE_SECTIONS,
    UNSKIPPABLE_SECTION_TERMS,
)
from shopping_ai.utils import time_utils


logger = logging.getLogger(__name__)


# ============================================================================
# Section geometry
# ============================================================================

def are_sections_nearby(first: str, second: str) -> bool:
    """
    True if both section names contain terms from the same affinity group.

    Matching is by substring, so "Dairy Area" is near "Meat".
    """
    return any(
        any(term in first for term in group) and any(term in second for term in group)
        for group in NEARBY_GROUPS
    )


def get_section_distance(first: str, second: str) -> int:
    """Walking distance between two sections; symmetric, unknown pairs cost 3."""
    distance = SECTION_DISTANCES.get((first, second))
    if distance is None:
        distance = SECTION_DISTANCES.get((second, first), DEFAULT_SECTION_DISTANCE)
    return distance


def calculate_route_distance(sections: Sequence[StoreSection]) -> int:
    """Sum of transition distances between consecutive sections."""
    return sum(
        get_section_distance(current.name, following.name)
        for current, following in zip(sections, sections[1:])
    )


def _section_time(section: StoreSection) -> float:
    if section.estimated_time is None:
        return DEFAULT_SECTION_TIME
    return section.estimated_time


class AIRouteOptimizer:
    """
    Personalized route optimizer for one user.

    Reads preferences from the behavior analyzer's loaded profile; the
    caller is responsible for loading it first.

    Example usage:
        optimizer = AIRouteOptimizer(analyzer, rng=random.Random(7))
        result = optimizer.optimize_shopping_route(
            {"Produce": ["Apples"], "Dairy": ["Milk"]}, "Kroger"
        )
        print(result.ai_insights.confidence_score)
    """

    def __init__(
        self,
        behavior_analyzer: BehaviorAnalyzer,
        layout_provider: Optional[StoreLayoutProvider] = None,
        traffic_predictor: Optional[StoreTrafficPredictor] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Initialize optimizer.

        Args:
            behavior_analyzer: Source of the user's profile and suggestions
            layout_provider: Food-safety layout. Defaults to CategoryLayoutProvider.
            traffic_predictor: Congestion model. Defaults to StoreTrafficPredictor.
            rng: Random source for the backtrack search. Seed it for
                 reproducible routes.
            clock: Returns the current moment. Defaults to the analyzer's clock.
        """
        self.behavior_analyzer = behavior_analyzer
        self.layout_provider = layout_provider or CategoryLayoutProvider()
        self.clock = clock or behavior_analyzer.clock
        self.traffic_predictor = traffic_predictor or StoreTrafficPredictor(self.clock)
        self.rng = rng or random.Random()

    def optimize_shopping_route(
        self,
        shopping_list: Optional[RawShoppingList],
        store: str,
        user_preferences: Optional[Dict[str, Any]] = None
    ) -> OptimizedRouteResult:
        """
        Build the personalized route for a shopping list.

        Args:
            shopping_list: Category -> items (strings, dicts or ListItem)
            store: Store name
            user_preferences: Per-call overrides of route preferences, e.g.
                {"prioritize_speed": 0.9}. Not persisted.

        Returns:
            OptimizedRouteResult tagged "AI-Enhanced"

        Raises:
            TypeError, pydantic.ValidationError: On malformed input
        """
        moment = self.clock()
        items = normalize_shopping_list(shopping_list)

        base_layout = self.layout_provider.apply_store_layout(items, store)
        suggestions = self.behavior_analyzer.get_personalized_recommendations(
            items, store, now=moment
        )
        traffic = self.traffic_predictor.predict_store_traffic(store, now=moment)
        route_prefs = self._route_preferences(user_preferences)

        route = self.generate_optimized_route(
            base_layout.sections, count_items(items), traffic, route_prefs, moment
        )

        insights = RouteInsights(
            confidence_score=self.calculate_confidence_score(route),
            estimated_time_savings=self.calculate_time_savings(route, base_layout.sections),
            improvement_reasons=self.get_improvement_reasons(
                route, base_layout.sections, route_prefs
            ),
        )

        logger.debug(
            "Optimized %d sections into %d stops for %s at %s (confidence %.2f)",
            len(base_layout.sections), len(route), self.behavior_analyzer.user_id,
            store, insights.confidence_score,
        )

        return OptimizedRouteResult(
            optimized_route=route,
            ai_insights=insights,
            smart_suggestions=suggestions,
            traffic_info=traffic,
            metadata=RouteMetadata(
                algorithm=ALGORITHM_AI,
                generated_at=moment,
                user_behavior_version=self.behavior_analyzer.profile.last_updated,
            ),
        )

    def _route_preferences(
        self,
        overrides: Optional[Dict[str, Any]]
    ) -> RoutePreferences:
        prefs = self.behavior_analyzer.profile.route_preferences
        if not overrides:
            return prefs
        return RoutePreferences.model_validate({**prefs.model_dump(), **overrides})

    def generate_optimized_route(
        self,
        base_sections: List[StoreSection],
        total_items: int,
        traffic: TrafficPrediction,
        route_prefs: RoutePreferences,
        moment: datetime
    ) -> List[StoreSection]:
        """Run every pipeline stage over copies of the base sections."""
        route = [section.copy() for section in base_sections]

        route = self.apply_behavior_optimizations(route, route_prefs)
        route = self.apply_traffic_optimizations(route, traffic)
        route = self.apply_dynamic_optimizations(route, total_items)
        route = self.add_ai_insights(route, moment)

        return route

    # ========================================================================
    # Behavior optimizations
    # ========================================================================

    def apply_behavior_optimizations(
        self,
        route: List[StoreSection],
        route_prefs: RoutePreferences
    ) -> List[StoreSection]:
        if route_prefs.prioritize_speed > MERGE_SPEED_THRESHOLD:
            route = self.optimize_for_speed(route)

        if route_prefs.avoid_crowds > CROWD_ANNOTATION_THRESHOLD:
            route = self.optimize_for_crowd_avoidance(route)

        if route_prefs.minimize_backtracking > BACKTRACK_THRESHOLD:
            route = self.minimize_backtracking(route)

        return route

    def optimize_for_speed(self, route: List[StoreSection]) -> List[StoreSection]:
        """
        Merge adjacent sections that share a tier and an affinity group.

        The merged section keeps the first section's name and time estimate.
        """
        combined: List[StoreSection] = []
        current: Optional[StoreSection] = None

        for section in route:
            if current is not None and self.can_combine_sections(current, section):
                current.categories.extend(section.categories)
                current.items.extend(section.items)
                current.item_count += section.item_count
            else:
                if current is not None:
                    combined.append(current)
                current = section.copy()

        if current is not None:
            combined.append(current)

        return combined

    def can_combine_sections(self, first: StoreSection, second: StoreSection) -> bool:
        return first.tier == second.tier and are_sections_nearby(first.name, second.name)

    def optimize_for_crowd_avoidance(self, route: List[StoreSection]) -> List[StoreSection]:
        return [
            section.copy(crowd_avoidance=CrowdAvoidanceHints(
                recommended_time=self.get_recommended_section_time(section.name),
                alternative_order=dict(ALTERNATIVE_ORDER),
                skip_if_crowded=self.can_skip_section(section),
            ))
            for section in route
        ]

    @staticmethod
    def get_recommended_section_time(section_name: str) -> str:
        for term, recommendation in SECTION_TIME_RECOMMENDATIONS.items():
            if term in section_name:
                return recommendation
        return FLEXIBLE_TIMING

    @staticmethod
    def can_skip_section(section: StoreSection) -> bool:
        """
        Whether a section may be skipped when crowded.

        Only produce and meat sections are treated as must-visit.
        """
        return not any(term in section.name for term in UNSKIPPABLE_SECTION_TERMS)

    def minimize_backtracking(self, route: List[StoreSection]) -> List[StoreSection]:
        """
        Best-of-N search for a shorter walking order.

        Routes with 3 or fewer sections are returned unchanged. Otherwise the
        current order competes with min(10, 2n) random shuffles and the
        lowest total distance wins (ties keep the earlier candidate).
        """
        if len(route) <= MIN_SECTIONS_FOR_SEARCH:
            return route

        best_route = route
        best_distance = calculate_route_distance(route)

        for _ in range(min(MAX_SHUFFLE_ATTEMPTS, len(route) * 2)):
            candidate = list(route)
            self.rng.shuffle(candidate)
            distance = calculate_route_distance(candidate)
            if distance < best_distance:
                best_route = candidate
                best_distance = distance

        return list(best_route)

    # ========================================================================
    # Traffic optimizations
    # ========================================================================

    def apply_traffic_optimizations(
        self,
        route: List[StoreSection],
        traffic: TrafficPrediction
    ) -> List[StoreSection]:
        """
        Stable sort by food-safety tier, then by predicted congestion.

        Restores tier order after the backtrack search.
        """
        return sorted(
            route,
            key=lambda section: (
                section.tier,
                traffic.congestion_for(section.name, DEFAULT_SECTION_CONGESTION),
            ),
        )

    # ========================================================================
    # Dynamic optimizations
    # ========================================================================

    def apply_dynamic_optimizations(
        self,
        route: List[StoreSection],
        total_items: int
    ) -> List[StoreSection]:
        route = self.group_nearby_sections(route)
        route = self.optimize_for_item_density(route)

        if total_items > LARGE_LIST_THRESHOLD:
            route = self.add_strategic_breaks(route)

        return route

    def group_nearby_sections(self, route: List[StoreSection]) -> List[StoreSection]:
        """
        Collect sections near each other into "<first> Area" sections.

        Each unprocessed section pulls in every later section near it. The
        area takes the first member's tier and keeps members in sub_sections.
        """
        grouped: List[StoreSection] = []
        processed = set()

        for index, section in enumerate(route):
            if index in processed:
                continue
            processed.add(index)
            group = [section]

            for other_index in range(index + 1, len(route)):
                if other_index in processed:
                    continue
                if are_sections_nearby(section.name, route[other_index].name):
                    group.append(route[other_index])
                    processed.add(other_index)

            if len(group) == 1:
                grouped.append(section)
                continue

            grouped.append(StoreSection(
                name=f"{group[0].name} Area",
                icon=AREA_ICON,
                categories=[c for member in group for c in member.categories],
                items=[item for member in group for item in member.items],
                item_count=sum(member.item_count for member in group),
                estimated_time=sum(member.estimated_time or 0 for member in group),
                tier=group[0].tier,
                sub_sections=group,
            ))

        return grouped

    def optimize_for_item_density(self, route: List[StoreSection]) -> List[StoreSection]:
        """Within a tier, visit sections with more items first."""
        return sorted(route, key=lambda section: (section.tier, -section.item_count))

    def add_strategic_breaks(self, route: List[StoreSection]) -> List[StoreSection]:
        """Insert a pacing stop after every 3rd section, never at the end."""
        with_breaks: List[StoreSection] = []

        for index, section in enumerate(route):
            with_breaks.append(section)
            if (index + 1) % BREAK_INTERVAL == 0 and index < len(route) - 1:
                with_breaks.append(StoreSection(
                    name=BREAK_SECTION_NAME,
                    icon=BREAK_ICON,
                    estimated_time=BREAK_MINUTES,
                    tier=section.tier,
                    is_break=True,
                    break_tips=list(BREAK_TIPS),
                ))

        return with_breaks

    # ========================================================================
    # Insight annotation
    # ========================================================================

    def add_ai_insights(
        self,
        route: List[StoreSection],
        moment: datetime
    ) -> List[StoreSection]:
        annotated = []
        for index, section in enumerate(route):
            crowd_level = self.predict_section_crowd(section, moment)
            annotated.append(section.copy(
                section_order=index + 1,
                ai_insights=SectionInsights(
                    optimal_time=self.calculate_optimal_section_time(section, moment.hour),
                    crowd_level=crowd_level,
                    efficiency_tips=self.generate_efficiency_tips(section),
                    personalized_notes=self.get_personalized_section_notes(section),
                    estimated_wait_time=int(crowd_level * MAX_WAIT_MINUTES + 0.5),
                ),
            ))
        return annotated

    @staticmethod
    def calculate_optimal_section_time(section: StoreSection, hour: int) -> str:
        for term, cutoff, early_text, late_text in OPTIMAL_SECTION_TIMES:
            if term in section.name:
                return early_text if hour < cutoff else late_text
        return FLEXIBLE_TIMING

    @staticmethod
    def predict_section_crowd(section: StoreSection, moment: datetime) -> float:
        """Crowd level for one section: time of day, weekend and popularity."""
        crowd_level = SECTION_BASE_CROWD
        if time_utils.is_weekend(moment):
            crowd_level += SECTION_WEEKEND_BUMP
        for first, last, bump in (SECTION_PEAK_HOURS, SECTION_RUSH_HOURS):
            if time_utils.in_hour_band(moment.hour, first, last):
                crowd_level += bump
        if 'Produce' in section.name:
            crowd_level += POPULAR_SECTION_BUMP
        return min(MAX_SECTION_CROWD, crowd_level)

    @staticmethod
    def generate_efficiency_tips(section: StoreSection) -> List[str]:
        tips = []
        for term, term_tips in EFFICIENCY_TIPS.items():
            if term in section.name:
                tips.extend(term_tips)
        return tips

    def get_personalized_section_notes(self, section: StoreSection) -> List[str]:
        category_behavior = self.behavior_analyzer.profile.category_behavior
        notes = []

        for category in section.categories:
            behavior = category_behavior.get(category)
            if behavior is None or behavior.frequency <= PERSONAL_NOTE_MIN_FREQUENCY:
                continue
            brand = behavior.top_brand
            if brand:
                notes.append(f"You usually prefer {brand} brand for {category}")

        return notes

    # ========================================================================
    # Route metrics
    # ========================================================================

    def calculate_confidence_score(self, route: List[StoreSection]) -> float:
        """
        Confidence from the amount of learned data and route length.

        Returns:
            Score clamped to 0.3-0.95
        """
        total_trips = self.behavior_analyzer.profile.total_trips
        confidence = min(DATA_CONFIDENCE_CAP, total_trips / DATA_CONFIDENCE_TRIPS)
        confidence += FOOD_SAFETY_CONFIDENCE_BONUS

        if len(route) > LONG_ROUTE_SECTIONS:
            confidence -= ROUTE_LENGTH_ADJUSTMENT
        if len(route) < SHORT_ROUTE_SECTIONS:
            confidence += ROUTE_LENGTH_ADJUSTMENT

        return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence))

    @staticmethod
    def calculate_time_savings(
        route: List[StoreSection],
        base_sections: List[StoreSection]
    ) -> float:
        optimized_time = sum(_section_time(section) for section in route)
        base_time = sum(_section_time(section) for section in base_sections)
        return max(0, base_time - optimized_time)

    @staticmethod
    def get_improvement_reasons(
        route: List[StoreSection],
        base_sections: List[StoreSection],
        route_prefs: RoutePreferences
    ) -> List[str]:
        reasons = []

        if len(route) < len(base_sections):
            reasons.append('Reduced number of shopping sections by combining nearby areas')

        reasons.append('Applied food safety optimization for optimal freshness')
        reasons.append('Incorporated personal shopping preferences')

        if route_prefs.avoid_crowds > CROWD_PREFERENCE_THRESHOLD:
            reasons.append('Adjusted route to avoid predicted crowd hotspots')

        return reasons
