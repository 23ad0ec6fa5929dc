from __future__ import annotations

from typing import Dict, List, Optional

from engine.item import Item
from engine.trade import InventoryEntry, TradeResult, Transaction
from infrastructure.config import MarketConfig
from infrastructure.logger import get_logger
from infrastructure.persistence import atomic_write_jsonl
from infrastructure.repository import InMemoryRepository, MarketRepository, Player

from .market_analytics import MarketAnalytics
from .trade_coordinator import TradeCoordinator

logger = get_logger(__name__)

BUILDING_INCOME_PER_LEVEL = 100


class ShopService:
    """
    Facade consumed by the routing layer and the CLI.

    - Owns one repository and one coordinator (injected, never global)
    - Thread-safe: all trade serialization lives in the coordinator
    - Supports whole-store snapshots when backed by InMemoryRepository
    """

    def __init__(self, repository: MarketRepository, config: Optional[MarketConfig] = None):
        self.config = config or MarketConfig.STANDARD()
        self.repository = repository
        self.coordinator = TradeCoordinator.from_config(repository, self.config)

    @classmethod
    def with_default_catalog(cls, config: Optional[MarketConfig] = None) -> "ShopService":
        config = config or MarketConfig.STANDARD()
        repo = InMemoryRepository.with_default_catalog(floor_ratio=config.price_floor_ratio)
        return cls(repo, config)

    # ---------------- Players ----------------

    def register_player(self, username: str, *, town_name: Optional[str] = None) -> Player:
        player = self.repository.create_player(
            username,
            coins=self.config.starting_coins,
            credits=self.config.starting_credits,
            town_name=town_name,
        )
        logger.info("Registered player %s (%s)", player.username, player.player_id)
        return player

    def get_player(self, player_id: str) -> Player:
        player = self.repository.get_player(player_id)
        if player is None:
            raise KeyError(f"Unknown player_id: {player_id}")
        return player

    def credit_player(self, player_id: str, amount: int, reason: str) -> Player:
        return self.coordinator.adjust_balance(player_id, amount, reason)

    def collect_building_income(self, player_id: str, building_level: int) -> int:
        """Pay out a building's income: 100 coins per building level."""
        if building_level < 1:
            raise ValueError(f"building_level must be >= 1, got {building_level}")
        amount = BUILDING_INCOME_PER_LEVEL * building_level
        self.credit_player(player_id, amount, "building_collect")
        return amount

    # ---------------- Catalog ----------------

    def list_items(self) -> List[Item]:
        return self.repository.list_shop_items()

    def get_item(self, item_id: str) -> Item:
        item = self.repository.get_shop_item(item_id)
        if item is None:
            raise KeyError(f"Unknown item_id: {item_id}")
        return item

    def is_frozen(self, item_id: str) -> bool:
        return self.coordinator.pricing.is_frozen(self.get_item(item_id))

    # ---------------- Trading ----------------

    def buy(self, player_id: str, item_id: str, quantity: int) -> TradeResult:
        return self.coordinator.buy(player_id, item_id, quantity)

    def sell(self, player_id: str, item_id: str, quantity: int) -> TradeResult:
        return self.coordinator.sell(player_id, item_id, quantity)

    def inventory(self, player_id: str) -> List[InventoryEntry]:
        return self.repository.list_player_inventory(player_id)

    def transaction_history(self, player_id: str, limit: Optional[int] = None) -> List[Transaction]:
        if limit is None:
            limit = self.config.history_limit
        return self.repository.list_transactions_by_player(player_id, limit)

    # ---------------- Reporting ----------------

    def market_report(self, player_id: Optional[str] = None) -> Dict[str, object]:
        items = self.list_items()
        report: Dict[str, object] = {
            'overview': MarketAnalytics.market_overview(
                items,
                circuit_breaker_threshold=self.config.circuit_breaker_threshold,
                floor_ratio=self.config.price_floor_ratio,
            ),
            'coordinator': self.coordinator.get_stats(),
        }
        if player_id is not None:
            history = self.repository.list_transactions_by_player(player_id, limit=10_000)
            report['player_flow'] = MarketAnalytics.item_trade_summary(history)
        return report

    def telemetry_stats(self) -> Dict[str, object]:
        self.coordinator.telemetry.flush()
        return MarketAnalytics.telemetry_stats(self.repository.list_telemetry_events())

    def export_telemetry_csv(self) -> str:
        self.coordinator.telemetry.flush()
        return MarketAnalytics.telemetry_csv(self.repository.list_telemetry_events())

    # ---------------- Persistence ----------------

    def save(self, path: str) -> None:
        if not isinstance(self.repository, InMemoryRepository):
            raise TypeError("Snapshots require an InMemoryRepository")
        self.coordinator.telemetry.flush()
        self.repository.save_snapshot(path)

    def export_trade_journal(self, path: str, player_id: str) -> int:
        """Write a player's trades to JSONL, oldest first. Returns the number written."""
        history = self.repository.list_transactions_by_player(player_id, limit=1_000_000)
        history.reverse()
        atomic_write_jsonl(path, history)
        logger.info("Exported %d trades for %s to %s", len(history), player_id, path)
        return len(history)

    @classmethod
    def load(cls, path: str, config: Optional[MarketConfig] = None) -> "ShopService":
        config = config or MarketConfig.STANDARD()
        repo = InMemoryRepository.load_snapshot(path, floor_ratio=config.price_floor_ratio)
        return cls(repo, config)

    def close(self) -> None:
        self.coordinator.telemetry.close()
