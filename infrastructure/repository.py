"""
Storage capability consumed by the trade coordinator.

MarketRepository is the abstract contract; any backing store (SQL,
key-value, remote service) can satisfy it. InMemoryRepository is the
reference implementation built on the engine ledgers and is what tests,
the CLI and the demo use.

Contract notes:
- get_* return None for unknown ids, they never raise
- update_* return None when the target does not exist
- writes raise RepositoryError (or LedgerError) on integrity failures
- each call is atomic on its own; cross-call atomicity is the caller's job
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from threading import RLock
from typing import Any, Callable, Dict, List, Optional
import time
import uuid

from engine.item import Item, ItemCategory
from engine.ledgers import InventoryLedger, ItemLedger, TransactionLog
from engine.trade import InventoryEntry, TelemetryEvent, TradeSide, Transaction
from infrastructure.catalog import default_catalog
from infrastructure.logger import get_logger
from infrastructure.persistence import atomic_write_json, read_json

logger = get_logger(__name__)

SNAPSHOT_VERSION = 1


class RepositoryError(RuntimeError):
    """Storage-level failure (integrity violation, backend fault)."""


@dataclass(frozen=True)
class Player:
    player_id: str
    username: str
    coins: int
    credits: int = 100
    town_name: Optional[str] = None

    def __post_init__(self):
        if not self.player_id:
            raise ValueError("player_id cannot be empty")
        if self.coins < 0:
            raise ValueError(f"coins must be >= 0, got {self.coins}")


class MarketRepository(ABC):
    # ---------------- Players ----------------

    @abstractmethod
    def get_player(self, player_id: str) -> Optional[Player]: ...

    @abstractmethod
    def get_player_by_username(self, username: str) -> Optional[Player]: ...

    @abstractmethod
    def create_player(
        self,
        username: str,
        *,
        coins: int = 1000,
        credits: int = 100,
        town_name: Optional[str] = None,
        player_id: Optional[str] = None,
    ) -> Player: ...

    @abstractmethod
    def update_player(self, player_id: str, *, coins: int) -> Optional[Player]: ...

    # ---------------- Shop items ----------------

    @abstractmethod
    def list_shop_items(self) -> List[Item]: ...

    @abstractmethod
    def get_shop_item(self, item_id: str) -> Optional[Item]: ...

    @abstractmethod
    def create_shop_item(self, item: Item) -> Item: ...

    @abstractmethod
    def update_shop_item(
        self, item_id: str, *, stock: int, current_price: int, price_volatility: float
    ) -> Optional[Item]: ...

    # ---------------- Inventory ----------------

    @abstractmethod
    def get_inventory_item(self, player_id: str, item_id: str) -> Optional[InventoryEntry]: ...

    @abstractmethod
    def list_player_inventory(self, player_id: str) -> List[InventoryEntry]: ...

    @abstractmethod
    def update_inventory(self, player_id: str, item_id: str, delta: int) -> InventoryEntry: ...

    @abstractmethod
    def remove_inventory_item(self, player_id: str, item_id: str) -> Optional[InventoryEntry]: ...

    # ---------------- Transactions ----------------

    @abstractmethod
    def create_transaction(
        self,
        *,
        player_id: str,
        item_id: str,
        side: TradeSide,
        quantity: int,
        price: int,
        currency: str,
    ) -> Transaction: ...

    @abstractmethod
    def list_transactions_by_player(self, player_id: str, limit: int = 100) -> List[Transaction]: ...

    # ---------------- Telemetry ----------------

    @abstractmethod
    def create_telemetry_event(
        self,
        event_type: str,
        *,
        player_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> TelemetryEvent: ...

    @abstractmethod
    def list_telemetry_events(
        self, event_type: Optional[str] = None, limit: int = 1000
    ) -> List[TelemetryEvent]: ...


def _new_id() -> str:
    return str(uuid.uuid4())


class InMemoryRepository(MarketRepository):
    """
    Process-local repository.

    Each instance is independent; wire one per service, never share a
    module-level instance.
    """

    def __init__(
        self,
        *,
        floor_ratio: float = 0.5,
        clock: Callable[[], float] = time.time,
        id_factory: Callable[[], str] = _new_id,
    ):
        self._clock = clock
        self._new_id = id_factory
        self._lock = RLock()

        self.items = ItemLedger(floor_ratio=floor_ratio)
        self.inventory = InventoryLedger(clock=clock)
        self.transactions = TransactionLog()

        self._players: Dict[str, Player] = {}
        self._telemetry: List[TelemetryEvent] = []

    @property
    def floor_ratio(self) -> float:
        return self.items.floor_ratio

    @classmethod
    def with_default_catalog(cls, **kwargs) -> "InMemoryRepository":
        repo = cls(**kwargs)
        for item in default_catalog():
            repo.create_shop_item(item)
        return repo

    # ---------------- Players ----------------

    def get_player(self, player_id: str) -> Optional[Player]:
        with self._lock:
            return self._players.get(player_id)

    def get_player_by_username(self, username: str) -> Optional[Player]:
        with self._lock:
            for p in self._players.values():
                if p.username == username:
                    return p
            return None

    def create_player(
        self,
        username: str,
        *,
        coins: int = 1000,
        credits: int = 100,
        town_name: Optional[str] = None,
        player_id: Optional[str] = None,
    ) -> Player:
        with self._lock:
            if self.get_player_by_username(username) is not None:
                raise RepositoryError(f"Username already taken: {username}")
            pid = player_id or self._new_id()
            if pid in self._players:
                raise RepositoryError(f"Duplicate player id: {pid}")
            player = Player(
                player_id=pid,
                username=username,
                coins=coins,
                credits=credits,
                town_name=town_name,
            )
            self._players[pid] = player
            return player

    def update_player(self, player_id: str, *, coins: int) -> Optional[Player]:
        with self._lock:
            player = self._players.get(player_id)
            if player is None:
                return None
            if coins < 0:
                raise RepositoryError(f"Player {player_id}: coins cannot go negative ({coins})")
            updated = replace(player, coins=coins)
            self._players[player_id] = updated
            return updated

    # ---------------- Shop items ----------------

    def list_shop_items(self) -> List[Item]:
        return self.items.list()

    def get_shop_item(self, item_id: str) -> Optional[Item]:
        return self.items.get(item_id)

    def create_shop_item(self, item: Item) -> Item:
        with self._lock:
            if item.item_id in self.items:
                raise RepositoryError(f"Duplicate item id: {item.item_id}")
            return self.items.put(item)

    def update_shop_item(
        self, item_id: str, *, stock: int, current_price: int, price_volatility: float
    ) -> Optional[Item]:
        with self._lock:
            item = self.items.get(item_id)
            if item is None:
                return None
            return self.items.put(
                item.with_market_state(
                    stock=stock,
                    current_price=current_price,
                    price_volatility=price_volatility,
                )
            )

    # ---------------- Inventory ----------------

    def get_inventory_item(self, player_id: str, item_id: str) -> Optional[InventoryEntry]:
        return self.inventory.get(player_id, item_id)

    def list_player_inventory(self, player_id: str) -> List[InventoryEntry]:
        return self.inventory.list_for_player(player_id)

    def update_inventory(self, player_id: str, item_id: str, delta: int) -> InventoryEntry:
        return self.inventory.adjust(player_id, item_id, delta)

    def remove_inventory_item(self, player_id: str, item_id: str) -> Optional[InventoryEntry]:
        return self.inventory.remove(player_id, item_id)

    # ---------------- Transactions ----------------

    def create_transaction(
        self,
        *,
        player_id: str,
        item_id: str,
        side: TradeSide,
        quantity: int,
        price: int,
        currency: str,
    ) -> Transaction:
        record = Transaction(
            transaction_id=self._new_id(),
            player_id=player_id,
            item_id=item_id,
            side=side,
            quantity=quantity,
            price=price,
            currency=currency,
            timestamp=self._clock(),
        )
        return self.transactions.append(record)

    def list_transactions_by_player(self, player_id: str, limit: int = 100) -> List[Transaction]:
        return self.transactions.list_by_player(player_id, limit)

    # ---------------- Telemetry ----------------

    def create_telemetry_event(
        self,
        event_type: str,
        *,
        player_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> TelemetryEvent:
        event = TelemetryEvent(
            event_id=self._new_id(),
            event_type=event_type,
            timestamp=self._clock(),
            player_id=player_id,
            metadata=dict(metadata or {}),
        )
        with self._lock:
            self._telemetry.append(event)
        return event

    def list_telemetry_events(
        self, event_type: Optional[str] = None, limit: int = 1000
    ) -> List[TelemetryEvent]:
        with self._lock:
            events = [e for e in self._telemetry if event_type is None or e.event_type == event_type]
        # Stable sort: equal timestamps keep newest-appended first after reversal
        events = list(reversed(events))
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:max(0, limit)]

    # ---------------- Snapshots ----------------

    def save_snapshot(self, path: str) -> None:
        """Write the whole store to one JSON file (atomic replace)."""
        with self._lock:
            payload = {
                "version": SNAPSHOT_VERSION,
                "saved_at": self._clock(),
                "players": list(self._players.values()),
                "items": self.items.list(),
                "inventory": self.inventory.all(),
                "transactions": self.transactions.all(),
                "telemetry": list(self._telemetry),
            }
            atomic_write_json(path, payload)
        logger.info("Saved snapshot to %s", path)

    @classmethod
    def load_snapshot(cls, path: str, **kwargs) -> "InMemoryRepository":
        data = read_json(path)
        version = data.get("version")
        if version != SNAPSHOT_VERSION:
            raise RepositoryError(f"Unsupported snapshot version: {version!r}")

        repo = cls(**kwargs)
        for p in data.get("players", []):
            repo._players[p["player_id"]] = Player(**p)
        for d in data.get("items", []):
            repo.items.put(Item(**{**d, "category": ItemCategory(d["category"])}))
        for e in data.get("inventory", []):
            repo.inventory.restore(InventoryEntry(**e))
        for t in data.get("transactions", []):
            repo.transactions.append(Transaction(**{**t, "side": TradeSide(t["side"])}))
        for ev in data.get("telemetry", []):
            repo._telemetry.append(TelemetryEvent(**ev))

        logger.info(
            "Loaded snapshot %s: %d players, %d items, %d transactions",
            path, len(repo._players), len(repo.items), len(repo.transactions),
        )
        return repo
