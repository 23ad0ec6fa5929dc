"""
Trade records and outcomes.

Transaction is the immutable audit record of an executed trade.
TradeResult is what the coordinator hands back to callers: either a
success carrying the coin amount moved, or a typed rejection.
Rejections are values, never exceptions, so the routing layer can map
them without try/except plumbing.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class TradeSide(Enum):
    """Trade direction enum for type safety."""
    BUY = "buy"
    SELL = "sell"


class TradeRejection(Enum):
    """Business-rule rejections plus one generic internal failure."""
    NOT_FOUND = "not_found"
    MARKET_FROZEN = "market_frozen"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INSUFFICIENT_STOCK = "insufficient_stock"
    INSUFFICIENT_INVENTORY = "insufficient_inventory"
    INVALID_QUANTITY = "invalid_quantity"
    INTERNAL_ERROR = "internal_error"

    @property
    def status_hint(self) -> int:
        """HTTP status the routing layer historically used for this kind."""
        return _STATUS_HINTS[self]


_STATUS_HINTS = {
    TradeRejection.NOT_FOUND: 404,
    TradeRejection.MARKET_FROZEN: 403,
    TradeRejection.INSUFFICIENT_FUNDS: 400,
    TradeRejection.INSUFFICIENT_STOCK: 400,
    TradeRejection.INSUFFICIENT_INVENTORY: 400,
    TradeRejection.INVALID_QUANTITY: 400,
    TradeRejection.INTERNAL_ERROR: 500,
}


@dataclass(frozen=True)
class Transaction:
    """
    Immutable trade record.

    Fields:
        price: unit price at execution time (the PRE-trade current price)
        currency: settlement currency, always coins for shop trades
    """
    transaction_id: str
    player_id: str
    item_id: str
    side: TradeSide
    quantity: int
    price: int
    currency: str
    timestamp: float

    def __post_init__(self):
        assert self.quantity > 0, "Transaction quantity must be positive"
        assert self.price > 0, "Transaction price must be positive"

    def notional_value(self) -> int:
        return self.price * self.quantity


@dataclass
class InventoryEntry:
    player_id: str
    item_id: str
    quantity: int = 0
    acquired_at: float = 0.0


@dataclass(frozen=True)
class TelemetryEvent:
    event_id: str
    event_type: str
    timestamp: float
    player_id: Optional[str] = None
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class TradeResult:
    ok: bool
    side: TradeSide
    amount: int = 0
    rejection: Optional[TradeRejection] = None
    reason: Optional[str] = None
    transaction: Optional[Transaction] = None

    @classmethod
    def success(cls, side: TradeSide, amount: int, transaction: Transaction) -> "TradeResult":
        return cls(ok=True, side=side, amount=amount, transaction=transaction)

    @classmethod
    def rejected(cls, side: TradeSide, rejection: TradeRejection, reason: str) -> "TradeResult":
        return cls(ok=False, side=side, rejection=rejection, reason=reason)

    def to_payload(self) -> dict:
        """Response body in the shape the routing layer returns."""
        if not self.ok:
            return {"error": self.reason, "kind": self.rejection.value}
        key = "spent" if self.side == TradeSide.BUY else "earned"
        return {"success": True, key: self.amount}
