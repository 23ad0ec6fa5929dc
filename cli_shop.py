# cli_shop.py

from __future__ import annotations

import os
from typing import List

from infrastructure.config import MarketConfig
from infrastructure.logger import configure_logging, LoggingConfig
from application.shop_service import ShopService

SNAPSHOT_PATH = "runs/shop_snapshot.json"
JOURNAL_PATH = "runs/trade_journal.jsonl"


def _fmt_vol(v: float) -> str:
    return f"{v * 100:+.1f}%"


def print_items(shop: ShopService) -> None:
    print(f"\n{'id':<14}{'name':<15}{'cat':<10}{'price':>7}{'base':>7}{'stock':>7}{'vol':>9}")
    for item in sorted(shop.list_items(), key=lambda i: i.item_id):
        flag = "  FROZEN" if shop.coordinator.pricing.is_frozen(item) else ""
        print(
            f"{item.item_id:<14}{item.name:<15}{item.category.value:<10}"
            f"{item.current_price:>7}{item.base_price:>7}{item.stock:>7}"
            f"{_fmt_vol(item.price_volatility):>9}{flag}"
        )
    print()


def print_player(shop: ShopService, player_id: str) -> None:
    player = shop.get_player(player_id)
    holdings = [e for e in shop.inventory(player_id) if e.quantity]
    inv = ", ".join(f"{e.item_id}x{e.quantity}" for e in holdings) or "-"
    print(f"{player.username}: coins={player.coins} credits={player.credits} inv={inv}")


def print_inventory(shop: ShopService, player_id: str) -> None:
    holdings = [e for e in shop.inventory(player_id) if e.quantity]
    if not holdings:
        print("Inventory empty.")
        return
    for e in sorted(holdings, key=lambda e: e.item_id):
        item = shop.get_item(e.item_id)
        print(f"  {e.item_id:<14} x{e.quantity:<5} worth {e.quantity * item.current_price} coins")


def print_history(shop: ShopService, player_id: str, limit: int = 10) -> None:
    txs = shop.transaction_history(player_id, limit)
    if not txs:
        print("No trades yet.")
        return
    for tx in txs:
        print(f"  {tx.side.value:<4} {tx.quantity:>4} {tx.item_id:<14} @ {tx.price} {tx.currency}")


def _qty(parts: List[str], idx: int) -> int:
    return int(parts[idx]) if len(parts) > idx else 1


def main() -> None:
    configure_logging(LoggingConfig(level="WARNING", log_file="runs/market.log", audit_file="runs/trades.log"))

    cfg = MarketConfig.STANDARD()
    if os.path.exists(SNAPSHOT_PATH):
        shop = ShopService.load(SNAPSHOT_PATH, cfg)
        print(f"Resumed from {SNAPSHOT_PATH}")
    else:
        shop = ShopService.with_default_catalog(cfg)

    username = os.environ.get("TOWN_MARKET_USER", "local")
    player = shop.repository.get_player_by_username(username)
    if player is None:
        player = shop.register_player(username)
    pid = player.player_id

    print("Commands:")
    print("  items              -> list catalog")
    print("  me                 -> balance + inventory")
    print("  inv                -> holdings at current prices")
    print("  buy <item> [q]     -> buy from the shop")
    print("  sell <item> [q]    -> sell back (80% of price)")
    print("  history [n]        -> recent trades")
    print("  collect [level]    -> collect building income")
    print("  report             -> market report")
    print("  save               -> save snapshot + trade journal")
    print("  quit               -> exit\n")

    print_items(shop)
    print_player(shop, pid)

    while True:
        try:
            line = input("market> ").strip()
        except (EOFError, KeyboardInterrupt):
            line = "quit"

        if not line:
            continue

        parts = line.split()
        cmd = parts[0].lower()

        try:
            if cmd == "quit":
                break

            if cmd == "items":
                print_items(shop)
                continue

            if cmd == "me":
                print_player(shop, pid)
                continue

            if cmd == "inv":
                print_inventory(shop, pid)
                continue

            if cmd in ("buy", "sell"):
                if len(parts) < 2:
                    print(f"Usage: {cmd} <item> [q]")
                    continue
                trade = shop.buy if cmd == "buy" else shop.sell
                result = trade(pid, parts[1], _qty(parts, 2))
                if result.ok:
                    verb = "Spent" if cmd == "buy" else "Earned"
                    print(f"{verb} {result.amount} coins.")
                else:
                    print(f"Rejected ({result.rejection.value}): {result.reason}")
                print_player(shop, pid)
                continue

            if cmd == "history":
                print_history(shop, pid, _qty(parts, 1) if len(parts) > 1 else 10)
                continue

            if cmd == "collect":
                amount = shop.collect_building_income(pid, _qty(parts, 1))
                print(f"Collected {amount} coins.")
                continue

            if cmd == "report":
                report = shop.market_report(pid)
                overview = report["overview"]
                print(f"Frozen: {overview['frozen'] or '-'}  At floor: {overview['at_floor'] or '-'}")
                print(f"Mean |vol|: {_fmt_vol(overview['mean_abs_volatility'])}")
                for item_id, flow in report.get("player_flow", {}).items():
                    print(f"  {item_id:<14} bought={flow['buy_volume']} sold={flow['sell_volume']} "
                          f"vwap={flow['vwap']:.1f}")
                continue

            if cmd == "save":
                shop.save(SNAPSHOT_PATH)
                n = shop.export_trade_journal(JOURNAL_PATH, pid)
                print(f"Saved snapshot and {n} trades to {JOURNAL_PATH}.")
                continue

            print("Unknown command.")

        except (KeyError, ValueError) as e:
            print("Error:", e)

    shop.save(SNAPSHOT_PATH)
    shop.close()
    print("Bye.")


if __name__ == "__main__":
    main()
