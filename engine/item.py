"""
Tradable shop item.

An Item is a value object: every trade produces a NEW Item via the
PricingEngine and the ledger swaps it in. Nothing mutates an Item in place.

Invariants enforced at construction:
- base_price and current_price are positive integers
- stock is a non-negative integer
- category is one of ItemCategory

The price floor and the volatility derivation depend on market config,
so they are checked by ItemLedger.put rather than here.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional
import math


class ItemCategory(Enum):
    RESOURCE = "resource"
    COSMETIC = "cosmetic"
    TOOL = "tool"
    BOOSTER = "booster"


def volatility_of(current_price: int, base_price: int) -> float:
    """Signed relative deviation of current price from base price."""
    return (current_price - base_price) / base_price


def price_floor(base_price: int, floor_ratio: float = 0.5) -> int:
    """Lowest whole-coin price allowed for an item."""
    return int(math.ceil(base_price * floor_ratio))


def _is_int(x) -> bool:
    return isinstance(x, int) and not isinstance(x, bool)


@dataclass(frozen=True)
class Item:
    item_id: str
    name: str
    category: ItemCategory
    base_price: int
    current_price: int
    stock: int
    price_volatility: float = 0.0
    description: Optional[str] = None
    icon_url: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.item_id:
            raise ValueError("item_id cannot be empty")
        if not isinstance(self.category, ItemCategory):
            raise ValueError(f"category must be ItemCategory, got {self.category!r}")
        if not _is_int(self.base_price) or self.base_price <= 0:
            raise ValueError(f"base_price must be a positive int, got {self.base_price!r}")
        if not _is_int(self.current_price) or self.current_price <= 0:
            raise ValueError(f"current_price must be a positive int, got {self.current_price!r}")
        if not _is_int(self.stock) or self.stock < 0:
            raise ValueError(f"stock must be a non-negative int, got {self.stock!r}")

    @classmethod
    def create(
        cls,
        item_id: str,
        name: str,
        category: ItemCategory,
        base_price: int,
        *,
        current_price: Optional[int] = None,
        stock: int = 100,
        description: Optional[str] = None,
        icon_url: Optional[str] = None,
    ) -> "Item":
        """Build a catalog item with volatility derived from its prices."""
        price = base_price if current_price is None else current_price
        return cls(
            item_id=item_id,
            name=name,
            category=category,
            base_price=base_price,
            current_price=price,
            stock=stock,
            price_volatility=volatility_of(price, base_price),
            description=description,
            icon_url=icon_url,
        )

    def with_market_state(self, *, stock: int, current_price: int, price_volatility: float) -> "Item":
        return replace(self, stock=stock, current_price=current_price, price_volatility=price_volatility)

    def __repr__(self) -> str:
        return (
            f"Item(id={self.item_id}, {self.name} px={self.current_price}/{self.base_price} "
            f"stock={self.stock} vol={self.price_volatility:+.3f})"
        )
