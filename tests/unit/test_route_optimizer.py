"""
Unit tests for the AI route optimizer.

Tests cover:
- Section geometry helpers
- Behavior, traffic and dynamic pipeline stages
- Insight annotation
- Confidence, time savings and improvement reasons
"""

import random
import pytest
from collections import Counter
from datetime import datetime

from shopping_ai.models.behavior_profile import CategoryBehavior, StorePreference
from shopping_ai.models.shopping_trip import normalize_shopping_list
from shopping_ai.models.store_section import StoreSection
from shopping_ai.scoring.behavior_analyzer import BehaviorAnalyzer
from shopping_ai.scoring.route_optimizer import (
    AIRouteOptimizer,
    are_sections_nearby,
    calculate_route_distance,
    get_section_distance,
)
from shopping_ai.storage.profile_store import InMemoryProfileStore


# Tuesday, 09:00
FIXED_NOW = datetime(2024, 6, 4, 9, 0)

REDUCED_SECTIONS = 'Reduced number of shopping sections by combining nearby areas'
CROWD_REASON = 'Adjusted route to avoid predicted crowd hotspots'


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def analyzer():
    return BehaviorAnalyzer("user-1", InMemoryProfileStore(), clock=lambda: FIXED_NOW)


@pytest.fixture
def optimizer(analyzer):
    return AIRouteOptimizer(analyzer, rng=random.Random(3), clock=lambda: FIXED_NOW)


def items(prefix: str, count: int) -> list:
    return [f"{prefix} {i}" for i in range(count)]


@pytest.fixture
def large_list():
    """53 items across six sections with distinct item counts."""
    return {
        "Pasta": items("Pasta", 12),
        "Snacks": items("Snack", 11),
        "Condiments": items("Sauce", 10),
        "Dairy": items("Cheese", 9),
        "Frozen": items("Frozen", 6),
        "Produce": items("Veg", 5),
    }


def item_keys(sections) -> Counter:
    return Counter(item.key() for s in sections for item in s.items)


# =============================================================================
# Geometry Tests
# =============================================================================

class TestSectionGeometry:
    """Tests for nearby groups and the distance table."""

    def test_nearby_by_group(self):
        assert are_sections_nearby("Dairy", "Meat")
        assert are_sections_nearby("Dairy Area", "Seafood")
        assert not are_sections_nearby("Dairy", "Produce")

    def test_distance_lookup_is_symmetric(self):
        assert get_section_distance("Pantry", "Produce") == 6
        assert get_section_distance("Produce", "Pantry") == 6

    def test_unknown_pair_default(self):
        assert get_section_distance("Bakery", "Floral") == 3

    def test_route_distance(self):
        sections = [StoreSection(name=n) for n in ["Pantry", "Dairy", "Meat", "Frozen"]]

        assert calculate_route_distance(sections) == 3 + 2 + 2
        assert calculate_route_distance(sections[:1]) == 0


# =============================================================================
# End-to-end Optimizer Tests
# =============================================================================

class TestOptimizeShoppingRoute:
    """Tests for optimize_shopping_route."""

    def test_cold_start(self, optimizer):
        """Test a new user gets an AI route at the confidence floor."""
        result = optimizer.optimize_shopping_route(
            {"Produce": ["Apples", "Kale"], "Dairy": ["Milk"]}, "Kroger"
        )

        assert result.metadata.algorithm == "AI-Enhanced"
        assert result.ai_insights.confidence_score == 0.3
        assert result.section_names == ["Dairy", "Produce"]
        assert REDUCED_SECTIONS not in result.ai_insights.improvement_reasons
        assert CROWD_REASON in result.ai_insights.improvement_reasons

    def test_empty_list(self, optimizer):
        """Test an empty list gives an empty route, not an error."""
        result = optimizer.optimize_shopping_route({}, "Unknown Store")

        assert result.optimized_route == []
        assert result.ai_insights.confidence_score == 0.3
        assert result.ai_insights.estimated_time_savings == 0

    def test_tiers_never_decrease(self, optimizer, large_list):
        """Test food-safety tiers are non-decreasing along the route."""
        large_list.update({"Meat": ["Steak"], "Seafood": ["Salmon"], "Bread": ["Rye"]})

        result = optimizer.optimize_shopping_route(large_list, "Kroger")

        tiers = [s.tier for s in result.optimized_route]
        assert tiers == sorted(tiers)

    def test_items_conserved(self, optimizer, large_list):
        """Test every listed item appears exactly once, breaks excluded."""
        large_list.update({"Meat": ["Steak"], "Seafood": ["Salmon"]})

        result = optimizer.optimize_shopping_route(large_list, "Kroger")

        expected = item_keys([
            StoreSection(name=c, items=i)
            for c, i in normalize_shopping_list(large_list).items()
        ])
        assert item_keys(result.shopping_sections) == expected

    def test_strategic_break_after_third_section(self, optimizer, large_list):
        """Test lists over 50 items get a pacing stop after every 3rd section."""
        result = optimizer.optimize_shopping_route(large_list, "Kroger")

        assert result.section_names == [
            "Dry Goods",
            "Beverages & Snacks",
            "Seasonings & Condiments",
            "Strategic Break",
            "Dairy",
            "Frozen",
            "Produce",
        ]
        pause = result.optimized_route[3]
        assert pause.is_break
        assert pause.estimated_time == 2
        assert pause.break_tips

    def test_no_break_at_fifty_items(self, optimizer, large_list):
        large_list["Pasta"] = items("Pasta", 9)

        result = optimizer.optimize_shopping_route(large_list, "Kroger")

        assert not any(s.is_break for s in result.optimized_route)

    def test_seeded_rng_is_reproducible(self, analyzer, large_list):
        """Test the same seed gives the same route."""
        first = AIRouteOptimizer(analyzer, rng=random.Random(11), clock=lambda: FIXED_NOW)
        second = AIRouteOptimizer(analyzer, rng=random.Random(11), clock=lambda: FIXED_NOW)

        assert (
            first.optimize_shopping_route(large_list, "Kroger").section_names
            == second.optimize_shopping_route(large_list, "Kroger").section_names
        )

    def test_base_layout_unchanged(self, optimizer):
        """Test the pipeline works on copies of the layout sections."""
        shopping_list = normalize_shopping_list({"Dairy": ["Milk"], "Meat": ["Steak"]})
        base = optimizer.layout_provider.apply_store_layout(shopping_list, "Kroger")

        optimizer.generate_optimized_route(
            base.sections, 2,
            optimizer.traffic_predictor.predict_store_traffic("Kroger", now=FIXED_NOW),
            optimizer.behavior_analyzer.profile.route_preferences.model_copy(
                update={"prioritize_speed": 0.9}
            ),
            FIXED_NOW,
        )

        assert [s.name for s in base.sections] == ["Dairy", "Meat"]
        assert base.sections[0].categories == ["Dairy"]


# =============================================================================
# Behavior Optimization Tests
# =============================================================================

class TestBehaviorOptimizations:
    """Tests for merging, crowd hints and the backtrack search."""

    SURF_AND_TURF = {
        "Dairy": ["Milk"],
        "Meat": ["Steak"],
        "Seafood": ["Salmon"],
        "Produce": ["Apples"],
    }

    def test_speed_merges_nearby_same_tier(self, optimizer):
        """Test speed-focused users get adjacent nearby sections merged."""
        result = optimizer.optimize_shopping_route(
            self.SURF_AND_TURF, "Kroger", {"prioritize_speed": 0.9}
        )

        assert result.section_names == ["Dairy", "Produce"]
        merged = result.optimized_route[0]
        assert merged.categories == ["Dairy", "Meat", "Seafood"]
        assert merged.item_count == 3
        assert REDUCED_SECTIONS in result.ai_insights.improvement_reasons

    def test_merge_time_savings(self, optimizer):
        """Test savings compare summed section times before and after."""
        result = optimizer.optimize_shopping_route(
            self.SURF_AND_TURF, "Kroger", {"prioritize_speed": 0.9}
        )

        # Base 3 + 4 + 4 + 4; merged keeps Dairy's 3 plus Produce's 4
        assert result.ai_insights.estimated_time_savings == 8

    def test_no_merge_by_default(self, optimizer):
        """Test default users get a grouped area instead of merged sections."""
        result = optimizer.optimize_shopping_route(self.SURF_AND_TURF, "Kroger")

        assert len(result.optimized_route) == 2
        area = result.optimized_route[0]
        assert area.name.endswith(" Area")
        assert len(area.sub_sections) == 3
        assert area.item_count == 3
        assert result.optimized_route[1].name == "Produce"

    def test_crowd_hints(self, optimizer):
        """Test crowd-averse users get per-section hints."""
        result = optimizer.optimize_shopping_route(
            {"Dairy": ["Milk"], "Produce": ["Apples"]}, "Kroger", {"avoid_crowds": 0.9}
        )

        dairy, produce = result.optimized_route
        assert dairy.crowd_avoidance.recommended_time == "Any time - well stocked"
        assert dairy.crowd_avoidance.skip_if_crowded is True
        assert produce.crowd_avoidance.skip_if_crowded is False
        assert set(produce.crowd_avoidance.alternative_order) == {"early", "late", "skip"}

    def test_no_crowd_hints_by_default(self, optimizer):
        result = optimizer.optimize_shopping_route({"Dairy": ["Milk"]}, "Kroger")

        assert result.optimized_route[0].crowd_avoidance is None

    def test_only_produce_and_meat_unskippable(self):
        assert AIRouteOptimizer.can_skip_section(StoreSection(name="Seafood"))
        assert AIRouteOptimizer.can_skip_section(StoreSection(name="Dairy"))
        assert not AIRouteOptimizer.can_skip_section(StoreSection(name="Meat Area"))

    def test_invalid_override_rejected(self, optimizer):
        with pytest.raises(ValueError):
            optimizer.optimize_shopping_route(
                {"Dairy": ["Milk"]}, "Kroger", {"prioritize_speed": 2}
            )

    def test_short_routes_not_searched(self, optimizer):
        """Test three or fewer sections are returned unchanged."""
        route = [StoreSection(name=n) for n in ["Produce", "Pantry", "Frozen"]]

        assert optimizer.minimize_backtracking(route) == route

    def test_search_never_lengthens_route(self, optimizer):
        route = [
            StoreSection(name=n)
            for n in ["Produce", "Pantry", "Frozen", "Dairy", "Meat", "Bakery"]
        ]

        best = optimizer.minimize_backtracking(route)

        assert calculate_route_distance(best) <= calculate_route_distance(route)
        assert sorted(s.name for s in best) == sorted(s.name for s in route)


# =============================================================================
# Insight Tests
# =============================================================================

class TestInsights:
    """Tests for per-section annotation."""

    def test_section_order_and_wait(self, optimizer, large_list):
        result = optimizer.optimize_shopping_route(large_list, "Kroger")

        orders = [s.section_order for s in result.optimized_route]
        assert orders == list(range(1, len(orders) + 1))
        for section in result.optimized_route:
            assert 0 <= section.ai_insights.estimated_wait_time <= 5
            assert 0.3 <= section.ai_insights.crowd_level <= 0.9

    def test_produce_tips_and_timing(self, optimizer):
        result = optimizer.optimize_shopping_route({"Produce": ["Apples"]}, "Kroger")

        insights = result.optimized_route[0].ai_insights
        assert insights.optimal_time == "Morning (freshest selection)"
        assert "Check for weekly specials first" in insights.efficiency_tips
        assert insights.crowd_level == pytest.approx(0.4)

    def test_personalized_brand_note(self, analyzer, optimizer):
        analyzer.profile.category_behavior["Dairy"] = CategoryBehavior(
            frequency=6, preferred_brands={"Horizon": 4, "Store": 1}
        )

        result = optimizer.optimize_shopping_route({"Dairy": ["Milk"]}, "Kroger")

        notes = result.optimized_route[0].ai_insights.personalized_notes
        assert notes == ["You usually prefer Horizon brand for Dairy"]

    def test_no_note_for_rare_category(self, analyzer, optimizer):
        analyzer.profile.category_behavior["Dairy"] = CategoryBehavior(
            frequency=5, preferred_brands={"Horizon": 4}
        )

        result = optimizer.optimize_shopping_route({"Dairy": ["Milk"]}, "Kroger")

        assert result.optimized_route[0].ai_insights.personalized_notes == []


# =============================================================================
# Confidence Tests
# =============================================================================

class TestConfidence:
    """Tests for confidence scoring."""

    def test_experienced_user_short_route_capped(self, analyzer, optimizer):
        analyzer.profile.preferred_stores = {"Kroger": StorePreference(visit_count=40)}

        result = optimizer.optimize_shopping_route({"Dairy": ["Milk"]}, "Kroger")

        assert result.ai_insights.confidence_score == 0.95

    def test_mid_experience(self, analyzer, optimizer):
        analyzer.profile.preferred_stores = {"Kroger": StorePreference(visit_count=10)}
        route = [StoreSection(name=str(i)) for i in range(7)]

        # 10 / 20 + 0.1, no length adjustment
        assert optimizer.calculate_confidence_score(route) == pytest.approx(0.6)

    def test_long_route_penalty(self, analyzer, optimizer):
        analyzer.profile.preferred_stores = {"Kroger": StorePreference(visit_count=10)}
        route = [StoreSection(name=str(i)) for i in range(11)]

        assert optimizer.calculate_confidence_score(route) == pytest.approx(0.55)

    def test_behavior_version_stamped(self, analyzer, optimizer):
        result = optimizer.optimize_shopping_route({"Dairy": ["Milk"]}, "Kroger")

        assert result.metadata.user_behavior_version == analyzer.profile.last_updated
        assert result.metadata.generated_at == FIXED_NOW
