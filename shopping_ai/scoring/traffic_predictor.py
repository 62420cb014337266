"""
Store traffic predictor.

Estimates store-wide and per-section congestion from the time of day,
day of week and store name. The prediction is a pure function of
(moment, store) and is recomputed on every call.
"""

from datetime import datetime
from typing import Callable, Dict, List, Optional

from shopping_ai.models.traffic_prediction import TrafficPrediction, TrafficRecommendation
from shopping_ai.utils.constants import (
    BASE_TRAFFIC,
    BUSY_STORE_THRESHOLD,
    EVENING_RUSH_HOURS,
    MAX_TRAFFIC,
    SECTION_CONGESTION_OFFSETS,
    TRAFFIC_HOUR_BANDS,
    WAREHOUSE_STORE_TERM,
    WAREHOUSE_WEEKEND_BUMP,
    WEEKEND_TRAFFIC_BUMP,
)
from shopping_ai.utils import time_utils


class StoreTrafficPredictor:
    """
    Heuristic congestion model for grocery stores.

    Signals:
    - Weekends are busier (+0.3)
    - Hour bands: morning rush, lunch, evening rush, after work
    - Warehouse clubs get an extra weekend bump

    Example usage:
        predictor = StoreTrafficPredictor()
        prediction = predictor.predict_store_traffic("Costco Warehouse")
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        """
        Initialize predictor.

        Args:
            clock: Returns the current moment. Defaults to local wall clock.
        """
        self.clock = clock or time_utils.now

    def predict_store_traffic(
        self,
        store: str,
        now: Optional[datetime] = None
    ) -> TrafficPrediction:
        """
        Predict congestion for a store.

        Args:
            store: Store name
            now: Moment to predict for. Defaults to the predictor's clock.

        Returns:
            TrafficPrediction with overall traffic clamped to 0.9
        """
        moment = now or self.clock()
        overall = self._calculate_overall_traffic(store, moment)

        return TrafficPrediction(
            overall_traffic=min(MAX_TRAFFIC, overall),
            section_congestion=self._calculate_section_congestion(overall),
            recommendations=self._generate_recommendations(overall, moment.hour),
            last_updated=moment,
        )

    def _calculate_overall_traffic(self, store: str, moment: datetime) -> float:
        """
        Sum the base level and every matching bump (unclamped).

        Hour bands are not exclusive; all matching bands add.
        """
        traffic = BASE_TRAFFIC
        weekend = time_utils.is_weekend(moment)

        if weekend:
            traffic += WEEKEND_TRAFFIC_BUMP

        for first, last, bump in TRAFFIC_HOUR_BANDS:
            if time_utils.in_hour_band(moment.hour, first, last):
                traffic += bump

        if weekend and WAREHOUSE_STORE_TERM in (store or '').lower():
            traffic += WAREHOUSE_WEEKEND_BUMP

        return traffic

    def _calculate_section_congestion(self, overall: float) -> Dict[str, float]:
        """Fixed per-section offsets around the store-wide level."""
        return {
            section: overall + offset
            for section, offset in SECTION_CONGESTION_OFFSETS.items()
        }

    def _generate_recommendations(
        self,
        overall: float,
        hour: int
    ) -> List[TrafficRecommendation]:
        recommendations = []

        if overall > BUSY_STORE_THRESHOLD:
            recommendations.append(TrafficRecommendation(
                type='timing',
                message=(
                    'Store is likely busy right now. '
                    'Consider shopping early morning or late evening.'
                ),
                urgency='high',
            ))

        if time_utils.in_hour_band(hour, *EVENING_RUSH_HOURS):
            recommendations.append(TrafficRecommendation(
                type='section-timing',
                message=(
                    'Produce and meat sections will be crowded. '
                    'Shop these first or save for last.'
                ),
                urgency='medium',
            ))

        return recommendations


def predict_store_traffic(store: str, now: Optional[datetime] = None) -> TrafficPrediction:
    """
    Predict traffic for a store.

    Convenience function using default predictor.
    """
    predictor = StoreTrafficPredictor()
    return predictor.predict_store_traffic(store, now)
