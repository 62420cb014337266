"""Data models for Shopping Route AI."""

from .behavior_profile import (
    CategoryBehavior,
    ItemPreferences,
    RoutePreferences,
    ShoppingPatterns,
    StorePreference,
    UserBehaviorProfile,
)
from .shopping_trip import ListItem, ShoppingTripRecord, TripItem, normalize_shopping_list
from .store_section import CrowdAvoidanceHints, SectionInsights, StoreLayout, StoreSection
from .traffic_prediction import TrafficPrediction, TrafficRecommendation
from .recommendations import RecommendationBundle
from .route_result import (
    LearningStatus,
    OperationResult,
    OptimizedRouteResult,
    ProfileExport,
    RouteInsights,
    RouteMetadata,
    ShoppingAnalytics,
)

__all__ = [
    'CategoryBehavior',
    'ItemPreferences',
    'RoutePreferences',
    'ShoppingPatterns',
    'StorePreference',
    'UserBehaviorProfile',
    'ListItem',
    'ShoppingTripRecord',
    'TripItem',
    'normalize_shopping_list',
    'CrowdAvoidanceHints',
    'SectionInsights',
    'StoreLayout',
    'StoreSection',
    'TrafficPrediction',
    'TrafficRecommendation',
    'RecommendationBundle',
    'LearningStatus',
    'OperationResult',
    'OptimizedRouteResult',
    'ProfileExport',
    'RouteInsights',
    'RouteMetadata',
    'ShoppingAnalytics',
]
