"""Default shop catalog seeded into a fresh repository."""
from __future__ import annotations

from typing import List

from engine.item import Item, ItemCategory

# (item_id, name, category, base_price, current_price, stock, description)
_DEFAULT_ITEMS = [
    ("wood", "Wood", ItemCategory.RESOURCE, 50, 52, 150, "Essential building material"),
    ("stone", "Stone", ItemCategory.RESOURCE, 75, 70, 120, "Sturdy construction material"),
    ("iron", "Iron", ItemCategory.RESOURCE, 100, 105, 80, "Valuable metal resource"),
    ("magic_potion", "Magic Potion", ItemCategory.RESOURCE, 200, 195, 50, "Mystical consumable"),
    ("apple", "Apple", ItemCategory.RESOURCE, 10, 12, 200, "Fresh food resource"),
    ("golden_crown", "Golden Crown", ItemCategory.COSMETIC, 1000, 1000, 10,
     "Cosmetic item - No gameplay advantage"),
    ("magic_staff", "Magic Staff", ItemCategory.TOOL, 500, 485, 30, "Crafting tool"),
    ("shield", "Shield", ItemCategory.TOOL, 300, 315, 40, "Defensive equipment"),
    ("hammer", "Hammer", ItemCategory.TOOL, 150, 148, 60, "Construction tool"),
    ("time_booster", "Time Booster", ItemCategory.BOOSTER, 500, 500, 20, "+20% output for 2h (Max 2/day)"),
]


def default_catalog() -> List[Item]:
    return [
        Item.create(
            item_id,
            name,
            category,
            base_price,
            current_price=current_price,
            stock=stock,
            description=description,
        )
        for item_id, name, category, base_price, current_price, stock, description in _DEFAULT_ITEMS
    ]
