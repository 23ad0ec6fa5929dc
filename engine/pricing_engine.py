"""
Dynamic pricing with a volatility circuit breaker.

Price formation is deliberately simple, supply/demand driven:
- A buy of q units raises the price by floor(q / step_divisor)
- A sell of q units lowers it by the same magnitude
- The price never drops below floor_ratio * base_price (no ceiling)

Volatility is the signed relative deviation from base price. It is
always derived from the new price, never accumulated, so replaying a
ledger cannot drift.

Circuit breaker:
- |volatility| > threshold halts buying on that item
- Checked before any other validation
- Lifts automatically once sells bring the price back into the band

All methods are pure with respect to the Item: the engine returns new
Item values and leaves persistence to the caller.
"""
from __future__ import annotations

from typing import Optional, Tuple

from .item import Item, price_floor, volatility_of
from .trade import TradeRejection, TradeSide

Rejection = Tuple[TradeRejection, str]


class PricingEngine:
    """
    Usage:
        engine = PricingEngine(circuit_breaker_threshold=0.25)

        rejection = engine.pre_trade_check(item, qty)
        if rejection is None:
            new_item = engine.next_state(item, TradeSide.BUY, qty)
    """

    def __init__(
        self,
        circuit_breaker_threshold: float = 0.25,
        floor_ratio: float = 0.5,
        step_divisor: int = 10,
        sell_payout_pct: int = 80,
    ):
        """
        Args:
            circuit_breaker_threshold: Max |volatility| before buys are halted
            floor_ratio: Price floor as a fraction of base price
            step_divisor: Units per one-coin price move
            sell_payout_pct: Percent of quoted price paid out on sells (spread = 100 - pct)
        """
        if circuit_breaker_threshold <= 0:
            raise ValueError("circuit_breaker_threshold must be > 0")
        if not 0 < floor_ratio <= 1:
            raise ValueError("floor_ratio must be in (0, 1]")
        if step_divisor <= 0:
            raise ValueError("step_divisor must be > 0")
        if not 0 < sell_payout_pct <= 100:
            raise ValueError("sell_payout_pct must be in (0, 100]")

        self.circuit_breaker_threshold = circuit_breaker_threshold
        self.floor_ratio = floor_ratio
        self.step_divisor = step_divisor
        self.sell_payout_pct = sell_payout_pct

        self._total_freezes = 0

    # ==================== Validation ====================

    def is_frozen(self, item: Item) -> bool:
        return abs(item.price_volatility) > self.circuit_breaker_threshold

    def check_circuit_breaker(self, item: Item) -> Tuple[bool, Optional[str]]:
        """
        Returns:
            (allowed, reason): (True, None) if trading is open
        """
        if self.is_frozen(item):
            self._total_freezes += 1
            return False, (
                f"Circuit breaker: {item.name} frozen, volatility "
                f"{item.price_volatility:+.3f} exceeds ±{self.circuit_breaker_threshold}"
            )
        return True, None

    @staticmethod
    def validate_quantity(quantity) -> Tuple[bool, Optional[str]]:
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            return False, f"Quantity must be an integer, got {quantity!r}"
        if quantity <= 0:
            return False, f"Quantity must be positive, got {quantity}"
        return True, None

    def pre_trade_check(self, item: Item, quantity) -> Optional[Rejection]:
        """Circuit breaker first, then quantity. None means the trade may proceed."""
        allowed, reason = self.check_circuit_breaker(item)
        if not allowed:
            return TradeRejection.MARKET_FROZEN, reason

        allowed, reason = self.validate_quantity(quantity)
        if not allowed:
            return TradeRejection.INVALID_QUANTITY, reason

        return None

    # ==================== Pricing ====================

    def price_step(self, quantity: int) -> int:
        return quantity // self.step_divisor

    def floor_for(self, item: Item) -> int:
        return price_floor(item.base_price, self.floor_ratio)

    def buy_cost(self, item: Item, quantity: int) -> int:
        return item.current_price * quantity

    def sell_revenue(self, item: Item, quantity: int) -> int:
        # Integer math keeps floor(price * qty * 0.8) exact
        return item.current_price * quantity * self.sell_payout_pct // 100

    def next_state(self, item: Item, side: TradeSide, quantity: int) -> Item:
        """
        Compute the item's state after a trade.

        Callers must check availability first. A buy larger than the
        current stock raises ValueError from the Item constructor.
        """
        allowed, reason = self.validate_quantity(quantity)
        if not allowed:
            raise ValueError(reason)

        step = self.price_step(quantity)
        if side == TradeSide.BUY:
            new_price = item.current_price + step
            new_stock = item.stock - quantity
        else:
            new_price = item.current_price - step
            new_stock = item.stock + quantity

        new_price = max(self.floor_for(item), new_price)

        return item.with_market_state(
            stock=new_stock,
            current_price=new_price,
            price_volatility=volatility_of(new_price, item.base_price),
        )

    # ==================== Analytics ====================

    def get_stats(self) -> dict:
        return {
            'total_freezes': self._total_freezes,
            'circuit_breaker_threshold': self.circuit_breaker_threshold,
            'floor_ratio': self.floor_ratio,
            'step_divisor': self.step_divisor,
            'sell_payout_pct': self.sell_payout_pct,
        }
