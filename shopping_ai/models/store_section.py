"""
StoreSection model - One stop on a shopping route.

Sections are produced by the store layout provider and then merged,
grouped, reordered and annotated by the route optimizer. They are
ephemeral and never persisted.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from .shopping_trip import ListItem


@dataclass
class CrowdAvoidanceHints:
    """Crowd-avoidance hints attached when the user strongly avoids crowds."""

    recommended_time: str
    alternative_order: Dict[str, str]
    skip_if_crowded: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'recommended_time': self.recommended_time,
            'alternative_order': dict(self.alternative_order),
            'skip_if_crowded': self.skip_if_crowded,
        }


@dataclass
class SectionInsights:
    """
    Per-section annotations added as the last optimization step.

    Attributes:
        optimal_time: When to visit this section
        crowd_level: Predicted crowding (0.0-0.9)
        efficiency_tips: Short tips keyed off the section name
        personalized_notes: Notes drawn from the user's category history
        estimated_wait_time: Minutes, round(crowd_level * 5)
    """

    optimal_time: str
    crowd_level: float
    efficiency_tips: List[str] = field(default_factory=list)
    personalized_notes: List[str] = field(default_factory=list)
    estimated_wait_time: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'optimal_time': self.optimal_time,
            'crowd_level': round(self.crowd_level, 3),
            'efficiency_tips': list(self.efficiency_tips),
            'personalized_notes': list(self.personalized_notes),
            'estimated_wait_time': self.estimated_wait_time,
        }


@dataclass
class StoreSection:
    """
    A contiguous part of the route covering one or more categories.

    Attributes:
        name: Section name ("Dairy", "Meat & Seafood", "Dairy Area")
        icon: Display glyph
        categories: Shopping-list categories served by this section
        items: Items to pick up here
        item_count: Number of items
        estimated_time: Minutes expected in this section
        tier: Food-safety tier (lower = visit earlier)
        sub_sections: Original sections when this one is a grouped area
        is_break: True for synthetic pacing stops
        break_tips: Suggestions shown on a pacing stop
        crowd_avoidance: Hints for crowd-averse users
        section_order: 1-based position in the final route
        ai_insights: Annotations from the optimizer
    """

    name: str
    icon: str = ""
    categories: List[str] = field(default_factory=list)
    items: List[ListItem] = field(default_factory=list)
    item_count: int = 0
    estimated_time: Optional[float] = None
    tier: int = 1
    sub_sections: Optional[List['StoreSection']] = None
    is_break: bool = False
    break_tips: List[str] = field(default_factory=list)
    crowd_avoidance: Optional[CrowdAvoidanceHints] = None
    section_order: Optional[int] = None
    ai_insights: Optional[SectionInsights] = None

    @property
    def primary_category(self) -> str:
        """First category, or "Other" for sections without any."""
        return self.categories[0] if self.categories else 'Other'

    def copy(self, **changes: Any) -> 'StoreSection':
        """Shallow copy with fresh category and item lists."""
        changes.setdefault('categories', list(self.categories))
        changes.setdefault('items', list(self.items))
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize section to dictionary for JSON output.

        Returns:
            Dictionary representation, nested sections included
        """
        data: Dict[str, Any] = {
            'name': self.name,
            'icon': self.icon,
            'categories': list(self.categories),
            'items': [item.model_dump() for item in self.items],
            'item_count': self.item_count,
            'estimated_time': self.estimated_time,
            'tier': self.tier,
            'is_break': self.is_break,
            'section_order': self.section_order,
        }
        if self.sub_sections is not None:
            data['sub_sections'] = [s.to_dict() for s in self.sub_sections]
        if self.break_tips:
            data['break_tips'] = list(self.break_tips)
        if self.crowd_avoidance is not None:
            data['crowd_avoidance'] = self.crowd_avoidance.to_dict()
        if self.ai_insights is not None:
            data['ai_insights'] = self.ai_insights.to_dict()
        return data


@dataclass
class StoreLayout:
    """Output of a store layout provider."""

    layout_name: str
    sections: List[StoreSection]
    tips: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'layout_name': self.layout_name,
            'sections': [s.to_dict() for s in self.sections],
            'tips': list(self.tips),
        }
