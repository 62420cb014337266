"""
Performance benchmarks for Shopping Route AI.

Performance targets:
- Route optimization: <500ms for a 500-item list
- Traffic prediction: <50ms for 1000 predictions
- Learning: <1s for 100 trips (in-memory store)
"""

import asyncio
import pytest
import random
import time
from datetime import datetime, timedelta

from shopping_ai.layout.store_layout import GENERIC_SECTIONS
from shopping_ai.models.shopping_trip import ShoppingTripRecord, TripItem
from shopping_ai.scoring.behavior_analyzer import BehaviorAnalyzer
from shopping_ai.scoring.route_optimizer import AIRouteOptimizer
from shopping_ai.scoring.traffic_predictor import StoreTrafficPredictor
from shopping_ai.storage.profile_store import InMemoryProfileStore


FIXED_NOW = datetime(2024, 6, 1, 18, 0)


def generate_shopping_list(item_count: int) -> dict:
    """Spread items across every canonical category plus a few unknown ones."""
    categories = [c for _, _, cats in GENERIC_SECTIONS for c in cats]
    categories += ["Party Supplies", "Pet Food", "Household"]

    shopping_list = {}
    for i in range(item_count):
        category = categories[i % len(categories)]
        shopping_list.setdefault(category, []).append(f"Item {i}")
    return shopping_list


def generate_trips(count: int) -> list:
    trips = []
    for i in range(count):
        trips.append(ShoppingTripRecord(
            store=["Kroger", "Costco", "Target"][i % 3],
            items=[
                TripItem(name=f"Item {j}", category=["Dairy", "Produce", "Meat"][j % 3],
                         is_organic=j % 2 == 0, amount=j)
                for j in range(20)
            ],
            recommended_route=["Dairy", "Meat", "Produce"],
            actual_route=["Dairy", "Produce", "Meat"] if i % 4 else ["Dairy", "Meat", "Produce"],
            time_spent=30 + i % 15,
            satisfaction=1 + i % 5,
        ))
    return trips


class TestPerformance:
    """Performance benchmarks."""

    def test_optimize_large_list(self):
        """Test optimizing a 500-item list is fast."""
        analyzer = BehaviorAnalyzer("bench", InMemoryProfileStore(), clock=lambda: FIXED_NOW)
        optimizer = AIRouteOptimizer(analyzer, rng=random.Random(1), clock=lambda: FIXED_NOW)
        shopping_list = generate_shopping_list(500)

        start = time.perf_counter()
        result = optimizer.optimize_shopping_route(shopping_list, "Costco Warehouse")
        elapsed = time.perf_counter() - start

        assert sum(s.item_count for s in result.shopping_sections) == 500
        assert elapsed < 0.5, f"Optimization took {elapsed:.3f}s, expected <0.5s"

    def test_traffic_prediction(self):
        """Test 1000 predictions are fast."""
        predictor = StoreTrafficPredictor()
        moments = [FIXED_NOW + timedelta(hours=h) for h in range(1000)]

        start = time.perf_counter()
        for moment in moments:
            predictor.predict_store_traffic("Costco Warehouse", now=moment)
        elapsed = time.perf_counter() - start

        assert elapsed < 0.05, f"Predictions took {elapsed:.3f}s, expected <0.05s"

    def test_learning_many_trips(self):
        """Test learning from 100 trips is fast and stays in range."""
        analyzer = BehaviorAnalyzer("bench", InMemoryProfileStore(), clock=lambda: FIXED_NOW)
        trips = generate_trips(100)

        async def learn_all():
            for trip in trips:
                await analyzer.learn_from_trip(trip)

        start = time.perf_counter()
        asyncio.run(learn_all())
        elapsed = time.perf_counter() - start

        assert analyzer.profile.total_trips == 100
        assert analyzer.get_learning_status().learning_level == "Expert"
        assert elapsed < 1.0, f"Learning took {elapsed:.3f}s, expected <1s"
