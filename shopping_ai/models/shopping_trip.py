"""
Shopping list and trip models - Inputs to routing and learning.

Shopping lists map a category name to the items wanted from it. A
completed ShoppingTripRecord is consumed once by the behavior analyzer
and never stored as-is.
"""

from typing import Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, field_validator


class ListItem(BaseModel):
    """
    A single wanted item on a shopping list.

    Attributes:
        name: Display name ("Bananas"). Recipe-sourced lists send it as
            ``ingredient``, which wins when both keys are present.
        category: Category the item was listed under ("Fresh Fruits")
        amount: Optional quantity, free-form as typed by the user
    """
    name: str = Field(validation_alias=AliasChoices("ingredient", "name"))
    category: str
    amount: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def stringify_amount(cls, value):
        """Numbers like 3 or 1.5 are kept as the text "3" / "1.5"."""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    def key(self) -> tuple:
        """(category, name) pair used for item conservation checks."""
        return (self.category, self.name)


ShoppingList = Dict[str, List[ListItem]]
RawShoppingList = Dict[str, List[Union[str, dict, ListItem]]]


def normalize_shopping_list(raw: Optional[RawShoppingList]) -> ShoppingList:
    """
    Coerce a loosely-typed shopping list into ListItem entries.

    Plain strings become ListItem(name=..., category=<key>); dicts are
    validated with the category defaulting to the key they sit under.
    Empty categories are dropped.

    Raises:
        pydantic.ValidationError: If an entry cannot be coerced
        TypeError: If the list or one of its categories is not a collection
    """
    if not raw:
        return {}
    if not isinstance(raw, dict):
        raise TypeError(f"Shopping list must be a mapping, got {type(raw).__name__}")

    normalized: ShoppingList = {}
    for category, entries in raw.items():
        if not isinstance(entries, (list, tuple)):
            raise TypeError(f"Items for '{category}' must be a list")
        items = []
        for entry in entries:
            if isinstance(entry, ListItem):
                items.append(entry)
            elif isinstance(entry, str):
                items.append(ListItem(name=entry, category=category))
            else:
                items.append(ListItem.model_validate({"category": category, **entry}))
        if items:
            normalized[category] = items
    return normalized


def count_items(shopping_list: ShoppingList) -> int:
    """Total number of items across all categories."""
    return sum(len(items) for items in shopping_list.values())


class TripItem(BaseModel):
    """An item bought on a completed trip."""
    name: str = ""
    category: str
    brand: Optional[str] = None
    is_organic: bool = False
    is_bulk: bool = False
    amount: Optional[float] = None

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, value):
        """Accept numeric strings like "6" and treat unparseable text as unknown."""
        if value is None or isinstance(value, (int, float)):
            return value
        try:
            return float(str(value).strip())
        except ValueError:
            return None


class ShoppingTripRecord(BaseModel):
    """
    A completed shopping trip reported by the user.

    Attributes:
        store: Store name as shown to the user
        items: Items actually purchased
        recommended_route: Section names in the recommended order
        actual_route: Section names in the order actually walked, if tracked
        time_spent: Elapsed minutes
        satisfaction: Rating from 1 (poor) to 5 (great)
    """
    store: str
    items: List[TripItem] = Field(default_factory=list)
    recommended_route: List[str] = Field(default_factory=list)
    actual_route: Optional[List[str]] = None
    time_spent: float = Field(ge=0)
    satisfaction: int = Field(ge=1, le=5)
