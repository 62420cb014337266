"""
Recommendation models - Closed set of tagged personalized suggestions.

Each variant carries a ``type`` tag, a human-readable message, a
confidence value and its own payload. The union is discriminated on
``type`` so bundles round-trip through JSON without losing the variant.
"""

from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, Field


class _Recommendation(BaseModel):
    message: str
    confidence: float = Field(default=1.0, ge=0, le=1)


class SpeedOptimization(_Recommendation):
    type: Literal['speed-optimization'] = 'speed-optimization'
    adjustment: str = 'minimize-sections'


class CrowdAvoidance(_Recommendation):
    type: Literal['crowd-avoidance'] = 'crowd-avoidance'
    adjustment: str = 'off-peak-sections'


class OrganicAlternative(_Recommendation):
    type: Literal['organic-alternative'] = 'organic-alternative'


class BulkOpportunity(_Recommendation):
    type: Literal['bulk-opportunity'] = 'bulk-opportunity'


class MissingStaple(_Recommendation):
    type: Literal['missing-staple'] = 'missing-staple'
    category: str


class SuboptimalTime(_Recommendation):
    type: Literal['suboptimal-time'] = 'suboptimal-time'
    preferred_slots: List[str]
    suggestion: str = 'Consider shopping during your usual preferred times for better experience'


class StoreSatisfaction(_Recommendation):
    type: Literal['store-satisfaction'] = 'store-satisfaction'
    suggestion: str = 'Consider trying alternative stores or shopping at different times'


class PreferredSections(_Recommendation):
    type: Literal['preferred-sections'] = 'preferred-sections'
    sections: List[str]
    suggestion: str = 'Start with these sections for the best selection'


RouteAdjustment = Annotated[
    Union[SpeedOptimization, CrowdAvoidance],
    Field(discriminator='type'),
]
ItemSuggestion = Annotated[
    Union[OrganicAlternative, BulkOpportunity, MissingStaple],
    Field(discriminator='type'),
]
TimingAdvice = SuboptimalTime
StoreTip = Annotated[
    Union[StoreSatisfaction, PreferredSections],
    Field(discriminator='type'),
]


class RecommendationBundle(BaseModel):
    """Personalized suggestions grouped by where they apply."""
    item_suggestions: List[ItemSuggestion] = Field(default_factory=list)
    route_adjustments: List[RouteAdjustment] = Field(default_factory=list)
    timing_advice: List[TimingAdvice] = Field(default_factory=list)
    store_specific_tips: List[StoreTip] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.item_suggestions
            or self.route_adjustments
            or self.timing_advice
            or self.store_specific_tips
        )
