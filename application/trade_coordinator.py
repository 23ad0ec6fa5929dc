"""
Trade coordinator: executes one shop buy or sell as a single unit.

Sequence (under the item lock, then the player lock):
1. Load player and item
2. Validate (circuit breaker, quantity, funds/stock or held inventory)
3. Apply: coins, item state, inventory, transaction record
4. After the locks are released: telemetry, listeners, audit line

Guarantees:
- Every rejection happens before the first write, so it has no side effects
- If a write fails part-way, earlier writes are compensated in reverse
  order and the caller gets INTERNAL_ERROR
- Telemetry and listener failures never change a trade's outcome

Asymmetry: the circuit breaker gates buys only. A frozen
item can still be sold back to the shop, which is also the only way its
price moves back toward the band.
"""
from __future__ import annotations

from threading import Lock
from typing import Callable, List, Optional, Union

from engine.item import Item
from engine.pricing_engine import PricingEngine
from engine.trade import TradeRejection, TradeResult, TradeSide, Transaction
from infrastructure.config import MarketConfig
from infrastructure.logger import get_audit_logger, get_logger
from infrastructure.repository import MarketRepository, Player, RepositoryError

from .locks import KeyedLockRegistry
from .telemetry import TelemetryEmitter

logger = get_logger(__name__)
audit = get_audit_logger()

PURCHASE_EVENT = "shop_purchase"


class TradeCoordinator:
    def __init__(
        self,
        repository: MarketRepository,
        pricing_engine: Optional[PricingEngine] = None,
        *,
        locks: Optional[KeyedLockRegistry] = None,
        telemetry: Optional[TelemetryEmitter] = None,
        currency: str = "coins",
    ):
        self._repo = repository
        self.pricing = pricing_engine or PricingEngine()

        store_floor = getattr(repository, "floor_ratio", None)
        if store_floor is not None and store_floor != self.pricing.floor_ratio:
            raise ValueError(
                f"Pricing floor_ratio {self.pricing.floor_ratio} does not match "
                f"repository floor_ratio {store_floor}"
            )

        self.locks = locks or KeyedLockRegistry()
        self.telemetry = telemetry or TelemetryEmitter(repository)
        self.currency = currency

        self.trade_listeners: List[Callable[[Transaction], None]] = []

        self._stats_lock = Lock()
        self._total_buys = 0
        self._total_sells = 0
        self._coins_spent = 0
        self._coins_earned = 0
        self._rejections = {kind: 0 for kind in TradeRejection}

    @classmethod
    def from_config(
        cls,
        repository: MarketRepository,
        config: MarketConfig,
        *,
        telemetry: Optional[TelemetryEmitter] = None,
    ) -> "TradeCoordinator":
        engine = PricingEngine(
            circuit_breaker_threshold=config.circuit_breaker_threshold,
            floor_ratio=config.price_floor_ratio,
            step_divisor=config.price_step_divisor,
            sell_payout_pct=config.sell_payout_pct,
        )
        if telemetry is None:
            telemetry = TelemetryEmitter(repository, background=config.telemetry_async)
        return cls(repository, engine, telemetry=telemetry, currency=config.currency)

    def subscribe_to_trades(self, callback: Callable[[Transaction], None]) -> None:
        if not callable(callback):
            raise TypeError("Callback must be callable")
        self.trade_listeners.append(callback)

    # ==================== Public API ====================

    def buy(self, player_id: str, item_id: str, quantity: int) -> TradeResult:
        return self.execute_trade(player_id, item_id, quantity, TradeSide.BUY)

    def sell(self, player_id: str, item_id: str, quantity: int) -> TradeResult:
        return self.execute_trade(player_id, item_id, quantity, TradeSide.SELL)

    def execute_trade(
        self,
        player_id: str,
        item_id: str,
        quantity: int,
        side: Union[TradeSide, str],
    ) -> TradeResult:
        """
        Run one buy or sell. Business-rule failures and storage faults come
        back as a rejected TradeResult.

        Raises:
            ValueError: side is not "buy" or "sell"
        """
        side = TradeSide(side)

        try:
            with self.locks.hold(item_id=item_id, player_id=player_id):
                if side == TradeSide.BUY:
                    result = self._buy_locked(player_id, item_id, quantity)
                else:
                    result = self._sell_locked(player_id, item_id, quantity)
        except Exception:
            logger.exception("Trade failed: %s %s x%s for %s", side.value, item_id, quantity, player_id)
            result = TradeResult.rejected(side, TradeRejection.INTERNAL_ERROR, "Internal server error")

        self._record(result)

        if result.ok:
            self._after_commit(result)
        else:
            logger.info(
                "Rejected %s %s x%s for %s: %s",
                side.value, item_id, quantity, player_id, result.rejection.value,
            )
        return result

    def adjust_balance(self, player_id: str, delta: int, reason: str) -> Player:
        """
        Credit or debit coins outside of trading (building income, heist payout).

        Serialized with trades through the player lock.

        Raises:
            KeyError: unknown player
            ValueError: the debit would make the balance negative
        """
        with self.locks.hold(player_id=player_id):
            player = self._repo.get_player(player_id)
            if player is None:
                raise KeyError(f"Unknown player_id: {player_id}")
            new_coins = player.coins + delta
            if new_coins < 0:
                raise ValueError(f"Insufficient coins for {reason}: have {player.coins}, need {-delta}")
            updated = self._repo.update_player(player_id, coins=new_coins)
        logger.info("Balance %+d for %s (%s) -> %d", delta, player_id, reason, updated.coins)
        return updated

    # ==================== Buy / sell paths ====================

    def _buy_locked(self, player_id: str, item_id: str, quantity: int) -> TradeResult:
        side = TradeSide.BUY
        player = self._repo.get_player(player_id)
        item = self._repo.get_shop_item(item_id)
        if player is None or item is None:
            return TradeResult.rejected(side, TradeRejection.NOT_FOUND, "Player or item not found")

        rejection = self.pricing.pre_trade_check(item, quantity)
        if rejection is not None:
            return TradeResult.rejected(side, *rejection)

        total_cost = self.pricing.buy_cost(item, quantity)
        if player.coins < total_cost:
            return TradeResult.rejected(
                side, TradeRejection.INSUFFICIENT_FUNDS,
                f"Insufficient coins: need {total_cost}, have {player.coins}",
            )

        if item.stock < quantity:
            return TradeResult.rejected(
                side, TradeRejection.INSUFFICIENT_STOCK,
                f"Insufficient stock: {item.stock} available",
            )

        next_item = self.pricing.next_state(item, side, quantity)
        tx = self._apply(player, item, next_item, side, quantity, coins_delta=-total_cost)
        return TradeResult.success(side, total_cost, tx)

    def _sell_locked(self, player_id: str, item_id: str, quantity: int) -> TradeResult:
        side = TradeSide.SELL
        player = self._repo.get_player(player_id)
        item = self._repo.get_shop_item(item_id)
        if player is None or item is None:
            return TradeResult.rejected(side, TradeRejection.NOT_FOUND, "Player or item not found")

        allowed, reason = self.pricing.validate_quantity(quantity)
        if not allowed:
            return TradeResult.rejected(side, TradeRejection.INVALID_QUANTITY, reason)

        held = self._repo.get_inventory_item(player_id, item_id)
        if held is None or held.quantity < quantity:
            return TradeResult.rejected(
                side, TradeRejection.INSUFFICIENT_INVENTORY,
                f"Insufficient items in inventory: holding {held.quantity if held else 0}",
            )

        revenue = self.pricing.sell_revenue(item, quantity)
        next_item = self.pricing.next_state(item, side, quantity)
        tx = self._apply(player, item, next_item, side, quantity, coins_delta=revenue)
        return TradeResult.success(side, revenue, tx)

    # ==================== Mutation set ====================

    def _apply(
        self,
        player: Player,
        item: Item,
        next_item: Item,
        side: TradeSide,
        quantity: int,
        *,
        coins_delta: int,
    ) -> Transaction:
        pid, iid = player.player_id, item.item_id
        inventory_delta = quantity if side == TradeSide.BUY else -quantity
        undo: List[Callable[[], object]] = []

        try:
            if self._repo.update_player(pid, coins=player.coins + coins_delta) is None:
                raise RepositoryError(f"Player {pid} disappeared mid-trade")
            undo.append(lambda: self._repo.update_player(pid, coins=player.coins))

            if self._repo.update_shop_item(
                iid,
                stock=next_item.stock,
                current_price=next_item.current_price,
                price_volatility=next_item.price_volatility,
            ) is None:
                raise RepositoryError(f"Item {iid} disappeared mid-trade")
            undo.append(lambda: self._repo.update_shop_item(
                iid,
                stock=item.stock,
                current_price=item.current_price,
                price_volatility=item.price_volatility,
            ))

            held = self._repo.get_inventory_item(pid, iid)
            self._repo.update_inventory(pid, iid, inventory_delta)
            if held is None:
                undo.append(lambda: self._repo.remove_inventory_item(pid, iid))
            else:
                undo.append(lambda: self._repo.update_inventory(pid, iid, -inventory_delta))

            return self._repo.create_transaction(
                player_id=pid,
                item_id=iid,
                side=side,
                quantity=quantity,
                price=item.current_price,
                currency=self.currency,
            )
        except Exception:
            self._rollback(undo)
            raise

    @staticmethod
    def _rollback(undo: List[Callable[[], object]]) -> None:
        for step in reversed(undo):
            try:
                step()
            except Exception:
                logger.exception("Rollback step failed; store may need reconciliation")

    # ==================== Post-commit ====================

    def _after_commit(self, result: TradeResult) -> None:
        tx = result.transaction
        audit.info(
            "%s player=%s item=%s qty=%d px=%d amount=%d tx=%s",
            tx.side.value, tx.player_id, tx.item_id, tx.quantity, tx.price, result.amount, tx.transaction_id,
        )

        if tx.side == TradeSide.BUY:
            self.telemetry.emit(
                PURCHASE_EVENT,
                player_id=tx.player_id,
                metadata={"item_id": tx.item_id, "quantity": tx.quantity, "total_cost": result.amount},
            )

        for listener in self.trade_listeners:
            try:
                listener(tx)
            except Exception as e:
                logger.warning("Error in trade listener: %s", e)

    def _record(self, result: TradeResult) -> None:
        with self._stats_lock:
            if not result.ok:
                self._rejections[result.rejection] += 1
            elif result.side == TradeSide.BUY:
                self._total_buys += 1
                self._coins_spent += result.amount
            else:
                self._total_sells += 1
                self._coins_earned += result.amount

    def get_stats(self) -> dict:
        with self._stats_lock:
            return {
                'total_trades': self._total_buys + self._total_sells,
                'total_buys': self._total_buys,
                'total_sells': self._total_sells,
                'coins_spent': self._coins_spent,
                'coins_earned': self._coins_earned,
                'rejections': {kind.value: n for kind, n in self._rejections.items()},
                'telemetry': self.telemetry.get_stats(),
            }
