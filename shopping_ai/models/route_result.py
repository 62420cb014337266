"""
Route result models - What the public operations hand back.

OptimizedRouteResult wraps the annotated route with confidence and
suggestion metadata. The remaining models describe learning status,
analytics, profile exports and plain success/failure results.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from shopping_ai.utils.constants import (
    ALGORITHM_AI,
    EXPORT_VERSION,
    MAX_CONFIDENCE,
    MIN_CONFIDENCE,
)
from .behavior_profile import (
    ItemPreferences,
    RoutePreferences,
    ShoppingPatterns,
    StorePreference,
    UserBehaviorProfile,
)
from .recommendations import RecommendationBundle
from .store_section import StoreSection
from .traffic_prediction import TrafficPrediction


@dataclass
class RouteInsights:
    """Confidence and explanation for an optimized route."""

    confidence_score: float
    estimated_time_savings: float = 0
    improvement_reasons: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not MIN_CONFIDENCE <= self.confidence_score <= MAX_CONFIDENCE:
            raise ValueError(
                f"confidence_score must be between {MIN_CONFIDENCE} and "
                f"{MAX_CONFIDENCE}, got: {self.confidence_score}"
            )
        if self.estimated_time_savings < 0:
            raise ValueError(
                f"estimated_time_savings cannot be negative: {self.estimated_time_savings}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'confidence_score': round(self.confidence_score, 3),
            'estimated_time_savings': self.estimated_time_savings,
            'improvement_reasons': list(self.improvement_reasons),
        }


@dataclass
class RouteMetadata:
    """How and when a route was generated."""

    algorithm: str = ALGORITHM_AI
    generated_at: datetime = field(default_factory=datetime.now)
    user_behavior_version: Optional[datetime] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'generated_at': self.generated_at.isoformat(),
            'algorithm': self.algorithm,
            'user_behavior_version': (
                self.user_behavior_version.isoformat()
                if self.user_behavior_version else None
            ),
        }
        if self.error is not None:
            data['error'] = self.error
        return data


@dataclass
class OptimizedRouteResult:
    """
    Final recommendation for one shopping trip.

    Attributes:
        optimized_route: Ordered, annotated sections
        ai_insights: Confidence, time savings and reasons
        smart_suggestions: Personalized suggestions
        traffic_info: Congestion prediction used while routing
        metadata: Algorithm tag and timestamps
    """

    optimized_route: List[StoreSection]
    ai_insights: RouteInsights
    smart_suggestions: RecommendationBundle
    traffic_info: TrafficPrediction
    metadata: RouteMetadata

    @property
    def section_names(self) -> List[str]:
        return [s.name for s in self.optimized_route]

    @property
    def shopping_sections(self) -> List[StoreSection]:
        """Route without the synthetic pacing stops."""
        return [s for s in self.optimized_route if not s.is_break]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'optimized_route': [s.to_dict() for s in self.optimized_route],
            'ai_insights': self.ai_insights.to_dict(),
            'smart_suggestions': self.smart_suggestions.model_dump(mode='json'),
            'traffic_info': self.traffic_info.to_dict(),
            'metadata': self.metadata.to_dict(),
        }


class LearningStatus(BaseModel):
    """How mature the learned profile is."""
    learning_level: str
    total_trips: int = Field(ge=0)
    next_milestone: str
    data_quality: float = Field(ge=0, le=1)


class ShoppingAnalytics(BaseModel):
    """Read-only snapshot of the learned profile for dashboards."""
    learning_status: LearningStatus
    shopping_patterns: ShoppingPatterns
    preferred_stores: Dict[str, StorePreference]
    item_preferences: ItemPreferences
    route_preferences: RoutePreferences
    total_data_points: int = Field(ge=0)
    last_updated: datetime


class ProfileExport(BaseModel):
    """Versioned, portable copy of a user's behavior profile."""
    version: str = EXPORT_VERSION
    exported_at: datetime = Field(default_factory=datetime.utcnow)
    user_id: str
    behavior_data: UserBehaviorProfile


class OperationResult(BaseModel):
    """Success/failure outcome of a mutating operation."""
    success: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> 'OperationResult':
        return cls(success=True)

    @classmethod
    def failed(cls, error: str) -> 'OperationResult':
        return cls(success=False, error=error)
