"""
Store layout provider for turning a shopping list into a base route.

The base route follows food-safety order: shelf-stable goods first, then
refrigerated, then frozen, with produce last so delicate items ride on
top of the cart. Route optimization starts from this order and never
moves a section ahead of a lower food-safety tier.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from shopping_ai.models.shopping_trip import ShoppingList
from shopping_ai.models.store_section import StoreLayout, StoreSection


logger = logging.getLogger(__name__)


# Food-safety tier per canonical category
FOOD_SAFETY_PRIORITIES: Dict[str, int] = {
    # Tier 1: Non-perishables (shop first)
    'Canned/Jarred Vegetables': 1,
    'Canned/Jarred Tomatoes': 1,
    'Canned/Jarred Sauces': 1,
    'Canned/Jarred Meals': 1,
    'Pasta': 1,
    'Grains': 1,
    'Baking & Cooking Ingredients': 1,
    'Seasonings': 1,
    'Spices': 1,
    'Condiments': 1,
    'Beverages': 1,
    'Snacks': 1,
    'Other': 1,

    # Tier 2: Refrigerated
    'Dairy': 2,
    'Fresh/Frozen Beef': 2,
    'Fresh/Frozen Poultry': 2,
    'Fresh/Frozen Fish & Seafood': 2,
    'Breads': 2,

    # Tier 3: Frozen
    'Frozen Items': 3,
    'Frozen Meals': 3,
    'Frozen Vegetables': 3,
    'Frozen Fruit': 3,

    # Tier 4: Produce (shop last)
    'Fresh Fruits': 4,
    'Fresh Vegetables': 4,
}

# Common list spellings mapped onto canonical categories
CATEGORY_ALIASES: Dict[str, str] = {
    'Produce': 'Fresh Vegetables',
    'Fruits': 'Fresh Fruits',
    'Vegetables': 'Fresh Vegetables',
    'Meat': 'Fresh/Frozen Beef',
    'Poultry': 'Fresh/Frozen Poultry',
    'Seafood': 'Fresh/Frozen Fish & Seafood',
    'Fish': 'Fresh/Frozen Fish & Seafood',
    'Milk': 'Dairy',
    'Eggs': 'Dairy',
    'Frozen': 'Frozen Items',
    'Bread': 'Breads',
    'Bakery': 'Breads',
    'Canned': 'Canned/Jarred Vegetables',
    'Canned Goods': 'Canned/Jarred Vegetables',
    'Pantry': 'Other',
    'Dry Goods': 'Other',
    'Spices': 'Seasonings',
}

# (section name, icon, canonical categories) in walking order
GENERIC_SECTIONS: List[Tuple[str, str, List[str]]] = [
    ('Pantry', '🥫', ['Canned/Jarred Vegetables', 'Canned/Jarred Tomatoes',
                     'Canned/Jarred Sauces', 'Canned/Jarred Meals']),
    ('Dry Goods', '🌾', ['Pasta', 'Grains', 'Baking & Cooking Ingredients']),
    ('Seasonings & Condiments', '🧂', ['Seasonings', 'Spices', 'Condiments']),
    ('Beverages & Snacks', '🥤', ['Beverages', 'Snacks']),
    ('Other Items', '🛒', ['Other']),
    ('Dairy', '🥛', ['Dairy']),
    ('Meat', '🥩', ['Fresh/Frozen Beef', 'Fresh/Frozen Poultry']),
    ('Seafood', '🐟', ['Fresh/Frozen Fish & Seafood']),
    ('Bakery', '🍞', ['Breads']),
    ('Frozen', '🧊', ['Frozen Items', 'Frozen Meals', 'Frozen Vegetables', 'Frozen Fruit']),
    ('Produce', '🥬', ['Fresh Fruits', 'Fresh Vegetables']),
]

# Store-name term -> display name; every chain uses the generic sections
KNOWN_CHAINS: Dict[str, str] = {
    'walmart': 'Walmart Supercenter',
    'target': 'Target',
    'costco': 'Costco Wholesale',
    'kroger': 'Kroger',
    'trader joe': "Trader Joe's",
    'whole foods': 'Whole Foods Market',
}
GENERIC_LAYOUT_NAME = 'Generic Grocery Store'

LAYOUT_TIPS: List[str] = [
    'Start with shelf-stable items in center aisles',
    'Hit dairy and meat sections after dry goods',
    'Frozen foods next - minimize thaw time',
    'End with produce - keeps delicate items on top',
]

# (section term, base minutes, minutes per item); first match wins
SECTION_TIMING: List[Tuple[str, float, float]] = [
    ('Produce', 3, 0.75),
    ('Meat', 3, 0.6),
    ('Seafood', 3, 0.6),
    ('Frozen', 2, 0.4),
]
DEFAULT_TIMING: Tuple[float, float] = (2, 0.5)

UNKNOWN_SECTION_ICON = '🛒'


def normalize_category_name(category_name: Optional[str]) -> str:
    """
    Map a list category onto a canonical layout category.

    Returns:
        Canonical category name; "Other" for blank input
    """
    if not category_name:
        return 'Other'
    normalized = category_name.strip()
    return CATEGORY_ALIASES.get(normalized, normalized)


def get_food_safety_priority(category_name: Optional[str]) -> int:
    """
    Get food-safety tier for a category (lower = shop earlier).

    Unknown categories are treated as shelf-stable (tier 1).
    """
    if category_name in FOOD_SAFETY_PRIORITIES:
        return FOOD_SAFETY_PRIORITIES[category_name]
    return FOOD_SAFETY_PRIORITIES.get(normalize_category_name(category_name), 1)


def estimate_section_time(section_name: str, item_count: int) -> float:
    """Minutes spent in a section: a base time plus a per-item increment."""
    base_time, item_time = DEFAULT_TIMING
    for term, term_base, term_item in SECTION_TIMING:
        if term in section_name:
            base_time, item_time = term_base, term_item
            break
    return max(base_time, base_time + math.ceil(item_count * item_time))


class StoreLayoutProvider(ABC):
    """
    Port for the food-safety store layout.

    Subclasses must implement:
        - apply_store_layout(): Shopping list -> ordered StoreLayout
        - get_food_safety_priority(): Category -> tier
    """

    @abstractmethod
    def apply_store_layout(
        self,
        shopping_list: ShoppingList,
        store_name: str
    ) -> StoreLayout:
        """Build the food-safety ordered base route for a store."""

    @abstractmethod
    def get_food_safety_priority(self, category: str) -> int:
        """Tier for a category; lower tiers sort earlier."""


class CategoryLayoutProvider(StoreLayoutProvider):
    """
    Default layout provider backed by a generic food-safety layout.

    Every category on the list lands in exactly one section: known
    categories in their layout section, unknown categories in a section
    of their own placed with the shelf-stable goods.

    Example usage:
        provider = CategoryLayoutProvider()
        layout = provider.apply_store_layout(shopping_list, "Walmart")
    """

    def apply_store_layout(
        self,
        shopping_list: ShoppingList,
        store_name: str
    ) -> StoreLayout:
        """
        Apply the layout to a shopping list.

        Args:
            shopping_list: Category -> ListItem list (see normalize_shopping_list)
            store_name: Store the user is shopping at

        Returns:
            StoreLayout with only the sections that have items, in
            food-safety order
        """
        layout_name = self.get_layout_name(store_name)
        section_index = self._build_category_index()

        buckets: Dict[str, Tuple[int, str, str, List[str]]] = {}
        for category, items in shopping_list.items():
            if not items:
                continue
            canonical = normalize_category_name(category)
            position, name, icon = section_index.get(
                canonical,
                (len(GENERIC_SECTIONS), category, UNKNOWN_SECTION_ICON),
            )
            if name not in buckets:
                buckets[name] = (position, name, icon, [])
            buckets[name][3].append(category)

        sections = []
        for position, name, icon, categories in buckets.values():
            items = [item for category in categories for item in shopping_list[category]]
            sections.append((
                self.get_food_safety_priority(categories[0]),
                position,
                StoreSection(
                    name=name,
                    icon=icon,
                    categories=categories,
                    items=items,
                    item_count=len(items),
                    estimated_time=estimate_section_time(name, len(items)),
                    tier=self.get_food_safety_priority(categories[0]),
                ),
            ))

        sections.sort(key=lambda entry: (entry[0], entry[1]))
        logger.debug(
            "Applied %s layout: %d sections for %d categories",
            layout_name, len(sections), len(shopping_list),
        )
        return StoreLayout(
            layout_name=layout_name,
            sections=[section for _, _, section in sections],
            tips=list(LAYOUT_TIPS),
        )

    def get_food_safety_priority(self, category: str) -> int:
        return get_food_safety_priority(category)

    @staticmethod
    def get_layout_name(store_name: Optional[str]) -> str:
        """Display name of the layout used for a store."""
        search_text = (store_name or '').lower()
        for term, display_name in KNOWN_CHAINS.items():
            if term in search_text:
                return display_name
        return GENERIC_LAYOUT_NAME

    @staticmethod
    def _build_category_index() -> Dict[str, Tuple[int, str, str]]:
        """Canonical category -> (layout position, section name, icon)."""
        index = {}
        for position, (name, icon, categories) in enumerate(GENERIC_SECTIONS):
            for category in categories:
                index[category] = (position, name, icon)
        return index


def apply_store_layout(shopping_list: ShoppingList, store_name: str) -> StoreLayout:
    """
    Apply the default layout to a shopping list.

    Convenience function using the default provider.
    """
    provider = CategoryLayoutProvider()
    return provider.apply_store_layout(shopping_list, store_name)
