#!/usr/bin/env python3
"""
Shopping Route AI Demo

Demonstrates the complete loop:
1. Optimize a route for a brand-new user
2. Learn from a few completed trips
3. Re-optimize with the learned profile
4. Show learning status and analytics
5. Export the profile

Usage:
    python demo.py [store_name]
    python demo.py  # Uses "Costco Warehouse"
"""

import asyncio
import json
import logging
import os
import random
import sys

from shopping_ai.storage.profile_store import InMemoryProfileStore
from shopping_ai.system import create_shopping_ai_system


SAMPLE_LIST = {
    'Produce': ['Bananas', 'Spinach', 'Avocados'],
    'Dairy': ['Milk', 'Greek Yogurt'],
    'Meat': ['Chicken Thighs'],
    'Frozen': ['Frozen Peas'],
    'Pasta': ['Spaghetti'],
    'Snacks': ['Trail Mix'],
}


def print_route(result) -> None:
    for number, section in enumerate(result.optimized_route, start=1):
        if section.is_break:
            print(f"    {number:>2}. {section.icon} {section.name}")
            continue
        wait = section.ai_insights.estimated_wait_time if section.ai_insights else 0
        print(
            f"    {number:>2}. {section.icon} {section.name} "
            f"({section.item_count} items, tier {section.tier}, ~{wait}min wait)"
        )
    insights = result.ai_insights
    print(f"    -> Algorithm: {result.metadata.algorithm}")
    print(f"    -> Confidence: {insights.confidence_score:.2f}")
    print(f"    -> Time savings: {insights.estimated_time_savings} min")
    for reason in insights.improvement_reasons:
        print(f"    -> {reason}")


async def main(store: str = "Costco Warehouse") -> int:
    """Run the demo loop."""
    print("=" * 50)
    print("Shopping Route AI Demo")
    print("=" * 50)

    profile_store = InMemoryProfileStore()
    system = create_shopping_ai_system(
        "demo-user", profile_store, rng=random.Random(42)
    )

    # =========================================================================
    # Step 1: Cold start
    # =========================================================================
    print()
    print(f"[1] Optimizing route for a new user at {store}...")

    result = await system.optimize_route(SAMPLE_LIST, store)
    print_route(result)

    traffic = result.traffic_info
    print(f"    -> Store traffic: {traffic.overall_traffic:.2f}")
    for recommendation in traffic.recommendations:
        print(f"    -> [{recommendation.urgency}] {recommendation.message}")

    # =========================================================================
    # Step 2: Learn from trips
    # =========================================================================
    print()
    print("[2] Learning from completed trips...")

    route_names = result.section_names
    for trip_number in range(6):
        outcome = await system.learn_from_trip({
            'store': store,
            'items': [
                {'name': 'Spinach', 'category': 'Produce', 'is_organic': True},
                {'name': 'Milk', 'category': 'Dairy', 'brand': 'Horizon'},
                {'name': 'Chicken Thighs', 'category': 'Meat', 'amount': 6},
            ],
            'recommended_route': route_names,
            'actual_route': route_names,
            'time_spent': 35 - trip_number,
            'satisfaction': 5,
        })
        print(f"    -> Trip {trip_number + 1}: {'learned' if outcome.success else outcome.error}")

    # =========================================================================
    # Step 3: Re-optimize
    # =========================================================================
    print()
    print("[3] Re-optimizing with the learned profile...")

    result = await system.optimize_route(SAMPLE_LIST, store)
    print_route(result)

    suggestions = result.smart_suggestions
    for suggestion in suggestions.item_suggestions + suggestions.store_specific_tips:
        print(f"    -> Suggestion: {suggestion.message}")

    # =========================================================================
    # Step 4: Learning status
    # =========================================================================
    print()
    print("[4] Learning status...")

    status = await system.get_learning_status()
    print(f"    -> Level: {status.learning_level} ({status.total_trips} trips)")
    print(f"    -> Next: {status.next_milestone}")
    print(f"    -> Data quality: {status.data_quality:.0%}")

    analytics = await system.get_shopping_analytics()
    if analytics is not None:
        prefs = analytics.route_preferences
        print(f"    -> Trust in recommendations: {prefs.trust_recommendations or 0.0:.1f}")
        print(f"    -> Organic preference: {analytics.item_preferences.organic_preference:.2f}")

    # =========================================================================
    # Summary
    # =========================================================================
    print()
    print("=" * 50)
    print("Complete! Exported profile:")
    print("=" * 50)
    print()

    export = await system.export_ai_data()
    if export is None:
        print("Error: export failed")
        return 1
    print(json.dumps(export.model_dump(mode='json'), indent=2))

    return 0


if __name__ == "__main__":
    logging.basicConfig(level=os.getenv('LOG_LEVEL', 'WARNING').upper())
    store_name = sys.argv[1] if len(sys.argv) > 1 else "Costco Warehouse"
    sys.exit(asyncio.run(main(store_name)))
