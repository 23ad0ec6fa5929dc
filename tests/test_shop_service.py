"""
ShopService tests.

Coverage:
- Player registration with configured starting balances
- Trading through the facade
- Building income payouts
- Reports, telemetry rollups and snapshots
"""
import pytest

from engine.trade import TradeRejection, TradeSide
from infrastructure.config import MarketConfig
from infrastructure.persistence import read_jsonl
from application.shop_service import ShopService


class TestShopService:

    def setup_method(self):
        self.shop = ShopService.with_default_catalog(MarketConfig.STANDARD())
        self.player = self.shop.register_player("alice", town_name="Oakvale")

    def teardown_method(self):
        self.shop.close()

    def test_register_player(self):
        assert self.player.coins == 1000
        assert self.player.credits == 100
        assert self.player.town_name == "Oakvale"
        assert self.shop.get_player(self.player.player_id) == self.player

    def test_unknown_lookups_raise(self):
        with pytest.raises(KeyError):
            self.shop.get_player("ghost")
        with pytest.raises(KeyError):
            self.shop.get_item("unobtainium")

    def test_buy_wood(self):
        result = self.shop.buy(self.player.player_id, "wood", 5)

        assert result.ok
        assert result.to_payload() == {"success": True, "spent": 260}
        assert self.shop.get_player(self.player.player_id).coins == 740
        assert self.shop.get_item("wood").stock == 145

        history = self.shop.transaction_history(self.player.player_id)
        assert len(history) == 1
        assert history[0].side == TradeSide.BUY
        assert history[0].price == 52

    def test_sell_without_holding(self):
        result = self.shop.sell(self.player.player_id, "wood", 1)
        assert result.rejection == TradeRejection.INSUFFICIENT_INVENTORY

    def test_inventory_after_round_trip(self):
        pid = self.player.player_id
        self.shop.buy(pid, "apple", 4)
        self.shop.sell(pid, "apple", 1)
        (entry,) = self.shop.inventory(pid)
        assert entry.item_id == "apple"
        assert entry.quantity == 3

    def test_collect_building_income(self):
        paid = self.shop.collect_building_income(self.player.player_id, 3)
        assert paid == 300
        assert self.shop.get_player(self.player.player_id).coins == 1300

    def test_collect_rejects_bad_level(self):
        with pytest.raises(ValueError):
            self.shop.collect_building_income(self.player.player_id, 0)

    def test_frozen_market(self):
        pid = self.player.player_id
        self.shop.credit_player(pid, 100_000, "test")
        self.shop.buy(pid, "apple", 30)

        assert self.shop.is_frozen("apple")
        assert self.shop.buy(pid, "apple", 1).rejection == TradeRejection.MARKET_FROZEN

    def test_market_report(self):
        pid = self.player.player_id
        self.shop.buy(pid, "wood", 5)

        report = self.shop.market_report(pid)

        assert set(report) == {"overview", "coordinator", "player_flow"}
        assert report['overview']['items'] == 10
        assert report['coordinator']['total_buys'] == 1
        assert report['player_flow']['wood']['buy_volume'] == 5
        assert "player_flow" not in self.shop.market_report()

    def test_telemetry_stats(self):
        pid = self.player.player_id
        self.shop.buy(pid, "wood", 1)
        self.shop.buy(pid, "stone", 1)
        self.shop.sell(pid, "wood", 1)

        stats = self.shop.telemetry_stats()

        assert stats['transactions'] == 2
        assert stats['dau'] == 1
        assert self.shop.export_telemetry_csv().count("shop_purchase") == 2

    def test_reads_still_work_after_close(self, tmp_path):
        self.shop.buy(self.player.player_id, "wood", 1)
        self.shop.close()

        assert self.shop.telemetry_stats()['transactions'] == 1
        assert "shop_purchase" in self.shop.export_telemetry_csv()
        self.shop.save(str(tmp_path / "closed.json"))


class TestSnapshots:

    def test_save_and_load(self, tmp_path):
        config = MarketConfig.SANDBOX()
        shop = ShopService.with_default_catalog(config)
        player = shop.register_player("bob")
        shop.buy(player.player_id, "iron", 10)
        path = str(tmp_path / "shop.json")
        shop.save(path)
        shop.close()

        restored = ShopService.load(path, config)
        try:
            assert restored.get_player(player.player_id).coins == player.coins - 1050
            assert restored.get_item("iron").current_price == 106
            assert restored.get_item("iron").stock == 70
            assert len(restored.transaction_history(player.player_id)) == 1
        finally:
            restored.close()

    def test_trade_journal(self, tmp_path):
        shop = ShopService.with_default_catalog(MarketConfig.SANDBOX())
        try:
            pid = shop.register_player("carol").player_id
            shop.buy(pid, "apple", 3)
            shop.sell(pid, "apple", 2)
            path = str(tmp_path / "journal.jsonl")

            assert shop.export_trade_journal(path, pid) == 2

            records = read_jsonl(path)
            assert [r['side'] for r in records] == ["buy", "sell"]
            assert records[0]['quantity'] == 3
            assert records[1]['player_id'] == pid
        finally:
            shop.close()
