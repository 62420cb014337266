"""Store layout port and the default food-safety layout."""

from .store_layout import (
    CategoryLayoutProvider,
    StoreLayoutProvider,
    apply_store_layout,
    get_food_safety_priority,
    normalize_category_name,
)

__all__ = [
    'CategoryLayoutProvider',
    'StoreLayoutProvider',
    'apply_store_layout',
    'get_food_safety_priority',
    'normalize_category_name',
]
