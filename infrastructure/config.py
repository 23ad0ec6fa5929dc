from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class MarketConfig:
    """
    MarketConfig controls shop pricing and trading parameters.

    Note:
    - circuit_breaker_threshold applies to buys only; sells stay open so
      holders can always unwind into a frozen market.
    - sell_payout_pct is the share of the quoted price paid on sells
      (80 means a 20% spread).
    """
    name: str

    # Pricing rules
    circuit_breaker_threshold: float
    price_floor_ratio: float
    price_step_divisor: int
    sell_payout_pct: int

    # Settlement
    currency: str = "coins"
    starting_coins: int = 1000
    starting_credits: int = 100

    # Queries
    history_limit: int = 100

    # Telemetry: False emits inline (errors swallowed), True uses a worker thread
    telemetry_async: bool = False

    @staticmethod
    def STANDARD() -> "MarketConfig":
        return MarketConfig(
            name="STANDARD",
            circuit_breaker_threshold=0.25,
            price_floor_ratio=0.5,
            price_step_divisor=10,
            sell_payout_pct=80,
            telemetry_async=True,
        )

    @staticmethod
    def SANDBOX() -> "MarketConfig":
        return MarketConfig(
            name="SANDBOX",
            circuit_breaker_threshold=1.0,   # rarely trips, for local experiments
            price_floor_ratio=0.5,
            price_step_divisor=10,
            sell_payout_pct=80,
            starting_coins=100_000,
            telemetry_async=False,
        )

    def with_overrides(self, **changes) -> "MarketConfig":
        return replace(self, **changes)
