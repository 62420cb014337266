"""
TrafficPrediction model - Predicted store congestion at a moment in time.

Recomputed on every request; never cached.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List


URGENCY_LEVELS = {'high', 'medium', 'low'}


@dataclass
class TrafficRecommendation:
    """A timing hint derived from the prediction."""

    type: str
    message: str
    urgency: str

    def __post_init__(self) -> None:
        if self.urgency not in URGENCY_LEVELS:
            raise ValueError(
                f"Invalid urgency '{self.urgency}'. Must be one of: {URGENCY_LEVELS}"
            )

    def to_dict(self) -> Dict[str, str]:
        return {'type': self.type, 'message': self.message, 'urgency': self.urgency}


@dataclass
class TrafficPrediction:
    """
    Overall and per-section congestion for one store.

    Attributes:
        overall_traffic: Store-wide congestion (0.0-0.9)
        section_congestion: Congestion per section name
        recommendations: Timing hints
        last_updated: When the prediction was generated
    """

    overall_traffic: float
    section_congestion: Dict[str, float] = field(default_factory=dict)
    recommendations: List[TrafficRecommendation] = field(default_factory=list)
    last_updated: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if self.overall_traffic < 0 or self.overall_traffic > 0.9:
            raise ValueError(
                f"overall_traffic must be between 0 and 0.9, got: {self.overall_traffic}"
            )

    def congestion_for(self, section_name: str, default: float) -> float:
        """Predicted congestion for a section, or ``default`` if unknown."""
        return self.section_congestion.get(section_name, default)

    @property
    def has_high_urgency(self) -> bool:
        return any(r.urgency == 'high' for r in self.recommendations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'overall_traffic': round(self.overall_traffic, 3),
            'section_congestion': {
                name: round(value, 3) for name, value in self.section_congestion.items()
            },
            'recommendations': [r.to_dict() for r in self.recommendations],
            'last_updated': self.last_updated.isoformat(),
        }

    @classmethod
    def neutral(cls) -> 'TrafficPrediction':
        """Placeholder prediction used by fallback results."""
        return cls(overall_traffic=0.5)
