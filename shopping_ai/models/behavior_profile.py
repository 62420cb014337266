"""
UserBehaviorProfile model - Learned per-user shopping behavior.

Uses Pydantic v2 for validation. Persisted as a single blob per user and
replaced as a whole on every save.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from shopping_ai.utils.constants import (
    DEFAULT_AVERAGE_ITEMS,
    DEFAULT_AVERAGE_TIME,
    DEFAULT_AVOID_CROWDS,
    DEFAULT_BRAND_LOYALTY,
    DEFAULT_BULK_BUYING,
    DEFAULT_MINIMIZE_BACKTRACKING,
    DEFAULT_ORGANIC_PREFERENCE,
    DEFAULT_PREFERRED_DAYS,
    DEFAULT_PREFERRED_TIMES,
    DEFAULT_PRIORITIZE_SPEED,
    DEFAULT_STORE_SATISFACTION,
    PROFILE_SCHEMA_VERSION,
)


def clamp_unit(value: float) -> float:
    """Clamp a preference value to the 0.0-1.0 range."""
    return max(0.0, min(1.0, value))


class StorePreference(BaseModel):
    """Visit history and satisfaction for one store."""
    visit_count: int = Field(default=0, ge=0)
    average_satisfaction: float = Field(default=DEFAULT_STORE_SATISFACTION, ge=1, le=5)
    preferred_sections: Dict[str, int] = Field(default_factory=dict)
    avoidance_times: List[str] = Field(default_factory=list)


class ShoppingPatterns(BaseModel):
    """Rolling averages and day/time-slot histograms."""
    average_items: float = Field(default=DEFAULT_AVERAGE_ITEMS, ge=0)
    average_time: float = Field(default=DEFAULT_AVERAGE_TIME, ge=0)  # minutes
    preferred_days: List[str] = Field(default_factory=lambda: list(DEFAULT_PREFERRED_DAYS))
    preferred_times: List[str] = Field(default_factory=lambda: list(DEFAULT_PREFERRED_TIMES))
    day_frequency: Dict[str, int] = Field(default_factory=dict)
    time_frequency: Dict[str, int] = Field(default_factory=dict)

    def top_time_slots(self, count: int = 2) -> List[str]:
        """Most frequent time slots, highest count first."""
        ranked = sorted(self.time_frequency.items(), key=lambda x: x[1], reverse=True)
        return [slot for slot, _ in ranked[:count]]


class ItemPreferences(BaseModel):
    """Purchase tendencies, all in the 0.0-1.0 range."""
    organic_preference: float = Field(default=DEFAULT_ORGANIC_PREFERENCE, ge=0, le=1)
    bulk_buying: float = Field(default=DEFAULT_BULK_BUYING, ge=0, le=1)
    brand_loyalty: float = Field(default=DEFAULT_BRAND_LOYALTY, ge=0, le=1)


class RoutePreferences(BaseModel):
    """
    Routing tendencies, all in the 0.0-1.0 range.

    trust_recommendations and flexibility stay None until a trip teaches
    something about them.
    """
    prioritize_speed: float = Field(default=DEFAULT_PRIORITIZE_SPEED, ge=0, le=1)
    avoid_crowds: float = Field(default=DEFAULT_AVOID_CROWDS, ge=0, le=1)
    minimize_backtracking: float = Field(default=DEFAULT_MINIMIZE_BACKTRACKING, ge=0, le=1)
    trust_recommendations: Optional[float] = Field(default=None, ge=0, le=1)
    flexibility: Optional[float] = Field(default=None, ge=0, le=1)


class CategoryBehavior(BaseModel):
    """Purchase counts for one grocery category."""
    frequency: int = Field(default=0, ge=0)
    average_quantity: float = Field(default=0, ge=0)
    preferred_brands: Dict[str, int] = Field(default_factory=dict)

    @property
    def top_brand(self) -> Optional[str]:
        """Most purchased brand, or None when no brand was recorded."""
        if not self.preferred_brands:
            return None
        return max(self.preferred_brands, key=self.preferred_brands.get)


class UserBehaviorProfile(BaseModel):
    """
    Complete learned shopping profile for one user.
    Why: Personalize routes across sessions.
    """
    user_id: str
    schema_version: str = PROFILE_SCHEMA_VERSION

    preferred_stores: Dict[str, StorePreference] = Field(default_factory=dict)
    shopping_patterns: ShoppingPatterns = Field(default_factory=ShoppingPatterns)
    item_preferences: ItemPreferences = Field(default_factory=ItemPreferences)
    route_preferences: RoutePreferences = Field(default_factory=RoutePreferences)
    category_behavior: Dict[str, CategoryBehavior] = Field(default_factory=dict)

    last_updated: datetime = Field(default_factory=datetime.utcnow)

    model_config = {"frozen": False, "validate_assignment": True}

    @property
    def total_trips(self) -> int:
        """Sum of visit counts across every store."""
        return sum(store.visit_count for store in self.preferred_stores.values())

    @classmethod
    def default(cls, user_id: str) -> 'UserBehaviorProfile':
        """Fresh profile for a user with no history."""
        return cls(user_id=user_id)
