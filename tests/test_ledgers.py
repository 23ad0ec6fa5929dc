"""
Item and ledger tests.

Critical tests:
- Item construction invariants
- ItemLedger rejects floor breaches, stale volatility, base price edits
- InventoryLedger lazy creation and accumulation
- TransactionLog ordering and append-only behavior
"""
import itertools

import pytest

from engine.item import Item, ItemCategory, price_floor, volatility_of
from engine.ledgers import InventoryLedger, ItemLedger, LedgerError, TransactionLog
from engine.trade import TradeSide, Transaction


def tx(tx_id, player="p1", ts=1.0, side=TradeSide.BUY):
    return Transaction(
        transaction_id=tx_id,
        player_id=player,
        item_id="wood",
        side=side,
        quantity=1,
        price=50,
        currency="coins",
        timestamp=ts,
    )


class TestItem:

    def test_create_derives_volatility(self):
        item = Item.create("stone", "Stone", ItemCategory.RESOURCE, 75, current_price=70, stock=120)
        assert item.price_volatility == (70 - 75) / 75
        assert item.stock == 120

    def test_create_defaults_price_to_base(self):
        item = Item.create("crown", "Golden Crown", ItemCategory.COSMETIC, 1000)
        assert item.current_price == 1000
        assert item.price_volatility == 0.0

    @pytest.mark.parametrize("field,value", [
        ("base_price", 0),
        ("base_price", 10.5),
        ("current_price", -1),
        ("stock", -1),
        ("stock", True),
        ("item_id", ""),
        ("category", "resource"),
    ])
    def test_invalid_fields_rejected(self, field, value):
        kwargs = dict(item_id="x", name="X", category=ItemCategory.TOOL,
                      base_price=10, current_price=10, stock=1)
        kwargs[field] = value
        with pytest.raises(ValueError):
            Item(**kwargs)

    def test_items_are_immutable(self):
        item = Item.create("x", "X", ItemCategory.TOOL, 10)
        with pytest.raises(AttributeError):
            item.stock = 5

    def test_helpers(self):
        assert volatility_of(130, 100) == pytest.approx(0.3)
        assert price_floor(75) == 38
        assert price_floor(100) == 50


class TestItemLedger:

    def setup_method(self):
        self.ledger = ItemLedger()
        self.item = Item.create("iron", "Iron", ItemCategory.RESOURCE, 100, stock=80)
        self.ledger.put(self.item)

    def test_get_and_list(self):
        assert self.ledger.get("iron") == self.item
        assert self.ledger.get("missing") is None
        assert self.ledger.list() == [self.item]
        assert "iron" in self.ledger
        assert len(self.ledger) == 1

    def test_put_replaces(self):
        updated = self.item.with_market_state(stock=70, current_price=101, price_volatility=0.01)
        self.ledger.put(updated)
        assert self.ledger.get("iron").stock == 70

    def test_below_floor_rejected(self):
        bad = self.item.with_market_state(stock=80, current_price=49, price_volatility=-0.51)
        with pytest.raises(LedgerError):
            self.ledger.put(bad)
        assert self.ledger.get("iron") == self.item

    def test_stale_volatility_rejected(self):
        bad = self.item.with_market_state(stock=80, current_price=110, price_volatility=0.0)
        with pytest.raises(LedgerError):
            self.ledger.put(bad)

    def test_base_price_immutable(self):
        rebased = Item.create("iron", "Iron", ItemCategory.RESOURCE, 120, stock=80)
        with pytest.raises(LedgerError):
            self.ledger.put(rebased)


class TestInventoryLedger:

    def setup_method(self):
        self.ledger = InventoryLedger(clock=lambda: 42.0)

    def test_default_when_absent(self):
        assert self.ledger.get("p1", "wood") is None
        assert self.ledger.get_or_default("p1", "wood") == 0
        assert self.ledger.get_or_default("p1", "wood", 7) == 7

    def test_adjust_creates_then_accumulates(self):
        first = self.ledger.adjust("p1", "wood", 5)
        assert first.quantity == 5
        assert first.acquired_at == 42.0

        self.ledger.adjust("p1", "wood", -2)
        assert self.ledger.get_or_default("p1", "wood") == 3

    def test_returned_entries_are_copies(self):
        entry = self.ledger.adjust("p1", "wood", 5)
        entry.quantity = 999
        assert self.ledger.get_or_default("p1", "wood") == 5

    def test_remove_drops_entry(self):
        self.ledger.adjust("p1", "wood", 2)
        removed = self.ledger.remove("p1", "wood")
        assert removed.quantity == 2
        assert self.ledger.get("p1", "wood") is None
        assert self.ledger.remove("p1", "wood") is None

    def test_list_for_player(self):
        self.ledger.adjust("p1", "wood", 1)
        self.ledger.adjust("p1", "iron", 2)
        self.ledger.adjust("p2", "wood", 3)
        assert {e.item_id for e in self.ledger.list_for_player("p1")} == {"wood", "iron"}


class TestTransactionLog:

    def setup_method(self):
        self.log = TransactionLog()

    def test_newest_first(self):
        self.log.append(tx("a", ts=1.0))
        self.log.append(tx("b", ts=3.0))
        self.log.append(tx("c", ts=2.0))
        assert [t.transaction_id for t in self.log.list_by_player("p1")] == ["b", "c", "a"]

    def test_equal_timestamps_fall_back_to_append_order(self):
        for tx_id in ("a", "b", "c"):
            self.log.append(tx(tx_id, ts=5.0))
        assert [t.transaction_id for t in self.log.list_by_player("p1")] == ["c", "b", "a"]

    def test_limit_and_player_filter(self):
        clock = itertools.count()
        for i in range(10):
            self.log.append(tx(f"t{i}", player="p1" if i % 2 else "p2", ts=float(next(clock))))
        recent = self.log.list_by_player("p1", limit=2)
        assert [t.transaction_id for t in recent] == ["t9", "t7"]
        assert self.log.list_by_player("nobody") == []
        assert len(self.log) == 10

    def test_duplicate_id_rejected(self):
        self.log.append(tx("a"))
        with pytest.raises(LedgerError):
            self.log.append(tx("a"))
        assert len(self.log) == 1
