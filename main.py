# main.py
from __future__ import annotations

from infrastructure.config import MarketConfig
from infrastructure.logger import configure_logging, LoggingConfig
from application.shop_service import ShopService


def main() -> None:
    configure_logging(LoggingConfig(level="INFO", log_file="runs/market.log", audit_file="runs/trades.log"))

    shop = ShopService.with_default_catalog(MarketConfig.STANDARD())
    player = shop.register_player("demo", town_name="Demo Town")

    shop.coordinator.subscribe_to_trades(lambda tx: print(f"  filled {tx.side.value} {tx.quantity} {tx.item_id} @ {tx.price}"))

    # Push apple past its circuit breaker, then sell back into the band
    for _ in range(4):
        result = shop.buy(player.player_id, "apple", 20)
        print("buy apple x20 ->", result.to_payload())

    shop.collect_building_income(player.player_id, building_level=3)
    print("sell apple x20 ->", shop.sell(player.player_id, "apple", 20).to_payload())
    print("buy apple x1 ->", shop.buy(player.player_id, "apple", 1).to_payload())

    apple = shop.get_item("apple")
    print(f"apple px={apple.current_price} vol={apple.price_volatility:+.3f} frozen={shop.is_frozen('apple')}")

    report = shop.market_report(player.player_id)
    print("frozen items:", report["overview"]["frozen"])
    print("player flow:", report["player_flow"])
    print("telemetry:", shop.telemetry_stats())

    shop.save("runs/last_snapshot.json")
    shop.close()
    print("OK: coins=", shop.get_player(player.player_id).coins)


if __name__ == "__main__":
    main()
