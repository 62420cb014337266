"""Behavior learning, traffic prediction and route optimization."""

from .behavior_analyzer import BehaviorAnalyzer, calculate_route_deviation
from .traffic_predictor import StoreTrafficPredictor, predict_store_traffic
from .route_optimizer import AIRouteOptimizer, are_sections_nearby, calculate_route_distance

__all__ = [
    'BehaviorAnalyzer',
    'calculate_route_deviation',
    'StoreTrafficPredictor',
    'predict_store_traffic',
    'AIRouteOptimizer',
    'are_sections_nearby',
    'calculate_route_distance',
]
