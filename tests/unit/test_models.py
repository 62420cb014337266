"""
Unit tests for data models.

Tests cover:
- Behavior profile defaults and validation
- Shopping list normalization and trip records
- Store sections, traffic predictions and route results
- Recommendation variants
"""

import pytest

from pydantic import ValidationError

from shopping_ai.models.behavior_profile import (
    CategoryBehavior,
    ItemPreferences,
    RoutePreferences,
    StorePreference,
    UserBehaviorProfile,
    clamp_unit,
)
from shopping_ai.models.recommendations import (
    CrowdAvoidance,
    MissingStaple,
    RecommendationBundle,
    SuboptimalTime,
)
from shopping_ai.models.route_result import (
    OperationResult,
    ProfileExport,
    RouteInsights,
    RouteMetadata,
)
from shopping_ai.models.shopping_trip import (
    ListItem,
    ShoppingTripRecord,
    TripItem,
    count_items,
    normalize_shopping_list,
)
from shopping_ai.models.store_section import StoreSection
from shopping_ai.models.traffic_prediction import TrafficPrediction, TrafficRecommendation


# =============================================================================
# UserBehaviorProfile Tests
# =============================================================================

class TestUserBehaviorProfile:
    """Tests for UserBehaviorProfile model."""

    def test_default_profile(self):
        """Test a fresh profile starts from the documented defaults."""
        profile = UserBehaviorProfile.default("user-1")

        assert profile.user_id == "user-1"
        assert profile.total_trips == 0
        assert profile.shopping_patterns.average_items == 25
        assert profile.shopping_patterns.average_time == 45
        assert profile.item_preferences.organic_preference == 0.3
        assert profile.item_preferences.bulk_buying == 0.2
        assert profile.route_preferences.prioritize_speed == 0.6
        assert profile.route_preferences.avoid_crowds == 0.8
        assert profile.route_preferences.minimize_backtracking == 0.9

    def test_learned_route_preferences_start_unset(self):
        """Test trust and flexibility are unset until learned."""
        prefs = UserBehaviorProfile.default("user-1").route_preferences

        assert prefs.trust_recommendations is None
        assert prefs.flexibility is None

    def test_total_trips_sums_store_visits(self):
        """Test total trips is the sum of visit counts."""
        profile = UserBehaviorProfile(
            user_id="user-1",
            preferred_stores={
                "Kroger": StorePreference(visit_count=3),
                "Costco": StorePreference(visit_count=4),
            },
        )

        assert profile.total_trips == 7

    def test_reject_preference_above_one(self):
        """Test preferences outside 0-1 are rejected."""
        with pytest.raises(ValidationError):
            ItemPreferences(organic_preference=1.5)

        with pytest.raises(ValidationError):
            RoutePreferences(trust_recommendations=-0.1)

    def test_reject_satisfaction_out_of_range(self):
        """Test store satisfaction must stay on the 1-5 scale."""
        with pytest.raises(ValidationError):
            StorePreference(average_satisfaction=0.5)

    def test_json_round_trip(self):
        """Test profile survives a JSON dump and reload."""
        profile = UserBehaviorProfile.default("user-1")
        profile.category_behavior["Dairy"] = CategoryBehavior(
            frequency=3, preferred_brands={"Horizon": 2}
        )

        restored = UserBehaviorProfile.model_validate(profile.model_dump(mode='json'))

        assert restored == profile

    def test_clamp_unit(self):
        """Test clamping to the unit interval."""
        assert clamp_unit(1.3) == 1.0
        assert clamp_unit(-0.2) == 0.0
        assert clamp_unit(0.42) == 0.42

    def test_top_brand(self):
        """Test most purchased brand wins."""
        behavior = CategoryBehavior(preferred_brands={"Store": 1, "Horizon": 4})

        assert behavior.top_brand == "Horizon"
        assert CategoryBehavior().top_brand is None

    def test_top_time_slots(self):
        """Test time slots ranked by frequency."""
        profile = UserBehaviorProfile.default("user-1")
        profile.shopping_patterns.time_frequency = {"morning": 2, "evening": 5, "midday": 1}

        assert profile.shopping_patterns.top_time_slots(2) == ["evening", "morning"]


# =============================================================================
# Shopping List and Trip Tests
# =============================================================================

class TestShoppingList:
    """Tests for shopping list normalization."""

    def test_strings_become_list_items(self):
        """Test plain strings take the category they are listed under."""
        normalized = normalize_shopping_list({"Produce": ["Apples", "Kale"]})

        assert normalized == {
            "Produce": [
                ListItem(name="Apples", category="Produce"),
                ListItem(name="Kale", category="Produce"),
            ]
        }

    def test_dict_entries_default_category(self):
        """Test dict entries get the category key when they omit one."""
        normalized = normalize_shopping_list({"Dairy": [{"name": "Milk", "amount": "2"}]})

        item = normalized["Dairy"][0]
        assert item.category == "Dairy"
        assert item.amount == "2"

    def test_numeric_amount_kept_as_text(self):
        """Test numeric quantities are accepted and stored as typed."""
        normalized = normalize_shopping_list({
            "Produce": [{"name": "Apples", "amount": 3}, {"name": "Limes", "amount": 1.5}],
        })

        assert [item.amount for item in normalized["Produce"]] == ["3", "1.5"]

    def test_ingredient_key_names_the_item(self):
        """Test recipe-style entries use 'ingredient' as the item name."""
        normalized = normalize_shopping_list({
            "Produce": [{"ingredient": "Basil", "amount": "1 bunch"}],
            "Dairy": [{"ingredient": "Mozzarella", "name": "Cheese"}],
        })

        assert normalized["Produce"][0].name == "Basil"
        assert normalized["Dairy"][0].name == "Mozzarella"

    def test_entry_without_name_rejected(self):
        with pytest.raises(ValidationError):
            normalize_shopping_list({"Produce": [{"amount": 2}]})

    def test_empty_categories_dropped(self):
        """Test categories without items are removed."""
        normalized = normalize_shopping_list({"Produce": ["Apples"], "Dairy": []})

        assert list(normalized) == ["Produce"]

    def test_empty_input(self):
        """Test None and empty dict normalize to an empty list."""
        assert normalize_shopping_list(None) == {}
        assert normalize_shopping_list({}) == {}

    def test_reject_non_mapping(self):
        """Test a shopping list must be a mapping."""
        with pytest.raises(TypeError):
            normalize_shopping_list(["Apples"])

    def test_reject_non_list_category(self):
        """Test category items must be a list."""
        with pytest.raises(TypeError):
            normalize_shopping_list({"Produce": "Apples"})

    def test_count_items(self):
        """Test total item count across categories."""
        normalized = normalize_shopping_list({"Produce": ["A", "B"], "Dairy": ["C"]})

        assert count_items(normalized) == 3


class TestShoppingTripRecord:
    """Tests for completed trip records."""

    def test_numeric_amount_string_parsed(self):
        """Test amounts typed as text are parsed."""
        assert TripItem(category="Meat", amount="6").amount == 6.0

    def test_unparseable_amount_is_unknown(self):
        """Test free-form amounts that are not numbers become None."""
        assert TripItem(category="Meat", amount="a few").amount is None

    def test_reject_satisfaction_out_of_range(self):
        """Test satisfaction must be 1-5."""
        with pytest.raises(ValidationError):
            ShoppingTripRecord(store="Kroger", time_spent=30, satisfaction=6)

    def test_reject_negative_time(self):
        """Test elapsed time cannot be negative."""
        with pytest.raises(ValidationError):
            ShoppingTripRecord(store="Kroger", time_spent=-1, satisfaction=3)

    def test_actual_route_optional(self):
        """Test trips without a tracked route are valid."""
        trip = ShoppingTripRecord(store="Kroger", time_spent=20, satisfaction=4)

        assert trip.actual_route is None
        assert trip.items == []


# =============================================================================
# Section and Prediction Tests
# =============================================================================

class TestStoreSection:
    """Tests for StoreSection dataclass."""

    def test_copy_has_independent_lists(self):
        """Test copies do not share category or item lists."""
        section = StoreSection(
            name="Dairy",
            categories=["Dairy"],
            items=[ListItem(name="Milk", category="Dairy")],
            item_count=1,
        )

        copy = section.copy()
        copy.categories.append("Eggs")
        copy.items.append(ListItem(name="Eggs", category="Eggs"))

        assert section.categories == ["Dairy"]
        assert len(section.items) == 1

    def test_copy_with_changes(self):
        """Test copy applies keyword changes."""
        section = StoreSection(name="Dairy", tier=2)

        assert section.copy(section_order=3).section_order == 3
        assert section.section_order is None

    def test_primary_category(self):
        """Test first category, or Other when there are none."""
        assert StoreSection(name="Dairy", categories=["Dairy", "Eggs"]).primary_category == "Dairy"
        assert StoreSection(name="Strategic Break").primary_category == "Other"

    def test_to_dict_includes_sub_sections(self):
        """Test nested sections are serialized."""
        member = StoreSection(name="Meat", categories=["Meat"])
        area = StoreSection(name="Meat Area", sub_sections=[member])

        data = area.to_dict()

        assert data['sub_sections'][0]['name'] == "Meat"


class TestTrafficPrediction:
    """Tests for TrafficPrediction dataclass."""

    def test_reject_traffic_above_cap(self):
        """Test overall traffic is capped at 0.9."""
        with pytest.raises(ValueError):
            TrafficPrediction(overall_traffic=0.95)

    def test_reject_invalid_urgency(self):
        """Test urgency must be high, medium or low."""
        with pytest.raises(ValueError):
            TrafficRecommendation(type="timing", message="Busy", urgency="urgent")

    def test_congestion_default(self):
        """Test unknown sections fall back to the given default."""
        prediction = TrafficPrediction(overall_traffic=0.5, section_congestion={"Dairy": 0.5})

        assert prediction.congestion_for("Dairy", 0.1) == 0.5
        assert prediction.congestion_for("Bakery", 0.1) == 0.1

    def test_neutral_prediction(self):
        """Test neutral prediction used by fallbacks."""
        prediction = TrafficPrediction.neutral()

        assert prediction.overall_traffic == 0.5
        assert prediction.recommendations == []
        assert not prediction.has_high_urgency


# =============================================================================
# Route Result Tests
# =============================================================================

class TestRouteResult:
    """Tests for route result models."""

    def test_reject_confidence_below_floor(self):
        """Test confidence cannot go below 0.3."""
        with pytest.raises(ValueError):
            RouteInsights(confidence_score=0.2)

    def test_reject_confidence_above_ceiling(self):
        """Test confidence cannot exceed 0.95."""
        with pytest.raises(ValueError):
            RouteInsights(confidence_score=0.96)

    def test_reject_negative_time_savings(self):
        """Test time savings cannot be negative."""
        with pytest.raises(ValueError):
            RouteInsights(confidence_score=0.5, estimated_time_savings=-1)

    def test_metadata_error_only_when_set(self):
        """Test error key appears only for failed optimizations."""
        assert 'error' not in RouteMetadata().to_dict()
        assert RouteMetadata(algorithm="Fallback", error="boom").to_dict()['error'] == "boom"

    def test_export_version(self):
        """Test exports are stamped with version 1.0."""
        export = ProfileExport(
            user_id="user-1",
            behavior_data=UserBehaviorProfile.default("user-1"),
        )

        assert export.version == "1.0"

    def test_operation_result(self):
        """Test success and failure constructors."""
        assert OperationResult.ok().success is True
        failed = OperationResult.failed("User ID mismatch")
        assert failed.success is False
        assert failed.error == "User ID mismatch"


# =============================================================================
# Recommendation Tests
# =============================================================================

class TestRecommendations:
    """Tests for recommendation variants."""

    def test_variant_tags(self):
        """Test each variant carries its type tag."""
        assert CrowdAvoidance(message="m").type == "crowd-avoidance"
        assert MissingStaple(message="m", category="Dairy").type == "missing-staple"

    def test_bundle_keeps_variants_through_json(self):
        """Test the discriminated union restores the right variant."""
        bundle = RecommendationBundle(
            item_suggestions=[MissingStaple(message="m", category="Dairy", confidence=0.6)],
            route_adjustments=[CrowdAvoidance(message="m", confidence=0.8)],
            timing_advice=[SuboptimalTime(message="m", preferred_slots=["evening"])],
        )

        restored = RecommendationBundle.model_validate(bundle.model_dump(mode='json'))

        assert isinstance(restored.item_suggestions[0], MissingStaple)
        assert restored.item_suggestions[0].category == "Dairy"
        assert isinstance(restored.route_adjustments[0], CrowdAvoidance)

    def test_reject_confidence_above_one(self):
        """Test confidence is bounded."""
        with pytest.raises(ValidationError):
            CrowdAvoidance(message="m", confidence=1.2)

    def test_empty_bundle(self):
        """Test empty bundle detection."""
        assert RecommendationBundle().is_empty
        assert not RecommendationBundle(
            route_adjustments=[CrowdAvoidance(message="m")]
        ).is_empty
