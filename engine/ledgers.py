"""
Thread-safe keyed stores for the market core.

- ItemLedger: item_id -> Item, invariant-checked on every put
- InventoryLedger: (player_id, item_id) -> InventoryEntry, lazy creation
- TransactionLog: append-only trade history, newest-first per player

Each ledger guards its own map with an RLock, so a single call is atomic.
Multi-step consistency across ledgers (a whole trade) is the
TradeCoordinator's job, not the ledgers'.
"""
from __future__ import annotations

from dataclasses import replace
from threading import RLock
from typing import Callable, DefaultDict, Dict, List, Optional, Tuple
from collections import defaultdict
import itertools
import time

from .item import Item, price_floor, volatility_of
from .trade import InventoryEntry, Transaction


class LedgerError(RuntimeError):
    """Raised when a write would break a ledger invariant."""


class ItemLedger:
    """
    Owns Item records.

    put() enforces:
    - current_price >= floor_ratio * base_price
    - price_volatility equals the value derived from the prices
    - base_price never changes once an item exists
    """

    def __init__(self, floor_ratio: float = 0.5):
        self.floor_ratio = floor_ratio
        self._lock = RLock()
        self._items: Dict[str, Item] = {}

    def get(self, item_id: str) -> Optional[Item]:
        with self._lock:
            return self._items.get(item_id)

    def put(self, item: Item) -> Item:
        with self._lock:
            self._check_invariants(item)
            self._items[item.item_id] = item
            return item

    def list(self) -> List[Item]:
        with self._lock:
            return list(self._items.values())

    def __contains__(self, item_id: str) -> bool:
        with self._lock:
            return item_id in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def _check_invariants(self, item: Item) -> None:
        floor = price_floor(item.base_price, self.floor_ratio)
        if item.current_price < floor:
            raise LedgerError(
                f"{item.item_id}: price {item.current_price} below floor {floor}"
            )
        expected = volatility_of(item.current_price, item.base_price)
        if item.price_volatility != expected:
            raise LedgerError(
                f"{item.item_id}: volatility {item.price_volatility} != derived {expected}"
            )
        existing = self._items.get(item.item_id)
        if existing is not None and existing.base_price != item.base_price:
            raise LedgerError(f"{item.item_id}: base_price is immutable")


class InventoryLedger:
    """Per-player, per-item quantity accumulator."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = RLock()
        self._entries: Dict[Tuple[str, str], InventoryEntry] = {}

    def get(self, player_id: str, item_id: str) -> Optional[InventoryEntry]:
        with self._lock:
            entry = self._entries.get((player_id, item_id))
            return replace(entry) if entry is not None else None

    def get_or_default(self, player_id: str, item_id: str, default: int = 0) -> int:
        with self._lock:
            entry = self._entries.get((player_id, item_id))
            return entry.quantity if entry is not None else default

    def adjust(self, player_id: str, item_id: str, delta: int) -> InventoryEntry:
        """Add delta to the entry, creating it on first use. Returns a copy."""
        with self._lock:
            key = (player_id, item_id)
            entry = self._entries.get(key)
            if entry is None:
                entry = InventoryEntry(
                    player_id=player_id,
                    item_id=item_id,
                    quantity=0,
                    acquired_at=self._clock(),
                )
                self._entries[key] = entry
            entry.quantity += delta
            return replace(entry)

    def remove(self, player_id: str, item_id: str) -> Optional[InventoryEntry]:
        """Drop the entry entirely. Returns the removed entry, or None."""
        with self._lock:
            return self._entries.pop((player_id, item_id), None)

    def restore(self, entry: InventoryEntry) -> None:
        """Reinstate a previously saved entry verbatim."""
        with self._lock:
            self._entries[(entry.player_id, entry.item_id)] = replace(entry)

    def list_for_player(self, player_id: str) -> List[InventoryEntry]:
        with self._lock:
            return [replace(e) for (pid, _), e in self._entries.items() if pid == player_id]

    def all(self) -> List[InventoryEntry]:
        with self._lock:
            return [replace(e) for e in self._entries.values()]


class TransactionLog:
    """
    Append-only trade history.

    Records are never mutated or removed. Per-player queries return
    newest first; equal timestamps fall back to append order.
    """

    def __init__(self):
        self._lock = RLock()
        self._records: List[Transaction] = []
        self._seq: Dict[str, int] = {}
        self._by_player: DefaultDict[str, List[Transaction]] = defaultdict(list)
        self._counter = itertools.count()

    def append(self, record: Transaction) -> Transaction:
        with self._lock:
            if record.transaction_id in self._seq:
                raise LedgerError(f"Duplicate transaction id: {record.transaction_id}")
            self._seq[record.transaction_id] = next(self._counter)
            self._records.append(record)
            self._by_player[record.player_id].append(record)
            return record

    def list_by_player(self, player_id: str, limit: int = 100) -> List[Transaction]:
        with self._lock:
            records = sorted(
                self._by_player.get(player_id, ()),
                key=lambda t: (t.timestamp, self._seq[t.transaction_id]),
                reverse=True,
            )
            return records[:max(0, limit)]

    def all(self) -> List[Transaction]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
