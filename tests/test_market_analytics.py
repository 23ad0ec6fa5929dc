"""
Market analytics tests.
"""
import pytest

from engine.item import Item, ItemCategory
from engine.trade import TelemetryEvent, TradeSide, Transaction
from application.market_analytics import MarketAnalytics


def tx(tx_id, item_id, side, qty, price):
    return Transaction(tx_id, "p1", item_id, side, qty, price, "coins", 1.0)


class TestTradeSummary:

    def test_vwap_and_volumes(self):
        summary = MarketAnalytics.item_trade_summary([
            tx("1", "wood", TradeSide.BUY, 10, 100),
            tx("2", "wood", TradeSide.BUY, 10, 110),
            tx("3", "wood", TradeSide.SELL, 5, 90),
            tx("4", "iron", TradeSide.BUY, 1, 105),
        ])

        wood = summary["wood"]
        assert wood['buy_volume'] == 20
        assert wood['sell_volume'] == 5
        assert wood['trades'] == 3
        assert wood['turnover'] == pytest.approx(2550.0)
        assert wood['vwap'] == pytest.approx(2550.0 / 25)
        assert summary["iron"]['vwap'] == pytest.approx(105.0)

    def test_empty(self):
        assert MarketAnalytics.item_trade_summary([]) == {}


class TestMarketOverview:

    def test_frozen_and_floor(self):
        items = [
            Item.create("a", "A", ItemCategory.RESOURCE, 100, current_price=130, stock=5),
            Item.create("b", "B", ItemCategory.RESOURCE, 100, current_price=50, stock=7),
            Item.create("c", "C", ItemCategory.TOOL, 100, current_price=110, stock=0),
        ]

        overview = MarketAnalytics.market_overview(items)

        assert overview['items'] == 3
        assert overview['frozen'] == ["a", "b"]
        assert overview['at_floor'] == ["b"]
        assert overview['max_abs_volatility'] == pytest.approx(0.5)
        assert overview['mean_abs_volatility'] == pytest.approx(0.3)
        assert overview['total_stock'] == 12

    def test_empty_catalog(self):
        assert MarketAnalytics.market_overview([])['frozen'] == []


class TestTelemetry:

    def setup_method(self):
        self.events = [
            TelemetryEvent("e1", "shop_purchase", 1.0, "p1", {"quantity": 2}),
            TelemetryEvent("e2", "shop_purchase", 2.0, "p2", {}),
            TelemetryEvent("e3", "microgame_play", 3.0, "p1", {}),
            TelemetryEvent("e4", "session_start", 4.0, None, {}),
        ]

    def test_stats(self):
        stats = MarketAnalytics.telemetry_stats(self.events)
        assert stats['dau'] == 2
        assert stats['transactions'] == 2
        assert stats['microgame_plays'] == 1
        assert stats['tl_upgrades'] == 0
        assert stats['by_type']['session_start'] == 1

    def test_csv(self):
        lines = MarketAnalytics.telemetry_csv(self.events).splitlines()
        assert lines[0] == "timestamp,eventType,playerId,metadata"
        assert len(lines) == 5
        assert lines[1].startswith("1.0,shop_purchase,p1,")
        assert '""quantity"": 2' in lines[1]
        assert lines[4].startswith("4.0,session_start,,")
