"""
Market analytics - trade flow, price health, telemetry rollups.

Calculations:
1. Per-item trade flow (buy/sell volume, VWAP, coin turnover)
2. Price health (volatility distribution, frozen items, items at floor)
3. Telemetry rollups (active players, purchases, per-type counts)
4. Telemetry CSV export

All functions are pure (stateless) - take records as input.

Used by:
- ShopService.market_report (CLI `report`)
- Operator exports
"""
from __future__ import annotations

import csv
import io
import json
from collections import Counter, defaultdict
from typing import Dict, Iterable, List, Sequence

import numpy as np

from engine.item import Item, price_floor
from engine.trade import TelemetryEvent, TradeSide, Transaction


class MarketAnalytics:
    """
    Pure analytics calculations.

    Design: All static methods - no state.
    """

    # ==================== Trade flow ====================

    @staticmethod
    def item_trade_summary(transactions: Iterable[Transaction]) -> Dict[str, Dict[str, float]]:
        """
        Aggregate executed trades per item.

        VWAP is weighted by quantity over both sides at the recorded
        (pre-trade) unit price.

        Returns:
            {item_id: {buy_volume, sell_volume, trades, vwap, turnover}}
        """
        by_item: Dict[str, List[Transaction]] = defaultdict(list)
        for tx in transactions:
            by_item[tx.item_id].append(tx)

        summary: Dict[str, Dict[str, float]] = {}
        for item_id, txs in by_item.items():
            prices = np.array([t.price for t in txs], dtype=float)
            qtys = np.array([t.quantity for t in txs], dtype=float)
            is_buy = np.array([t.side == TradeSide.BUY for t in txs])

            summary[item_id] = {
                'buy_volume': int(qtys[is_buy].sum()),
                'sell_volume': int(qtys[~is_buy].sum()),
                'trades': len(txs),
                'vwap': float(np.average(prices, weights=qtys)),
                'turnover': float(np.dot(prices, qtys)),
            }
        return summary

    # ==================== Price health ====================

    @staticmethod
    def market_overview(
        items: Sequence[Item],
        circuit_breaker_threshold: float = 0.25,
        floor_ratio: float = 0.5,
    ) -> Dict[str, object]:
        """
        Snapshot of price health across the catalog.

        Returns:
            Dict with mean/max absolute volatility, frozen item ids and
            items pinned at their price floor
        """
        if not items:
            return {
                'items': 0,
                'mean_abs_volatility': 0.0,
                'max_abs_volatility': 0.0,
                'frozen': [],
                'at_floor': [],
                'total_stock': 0,
            }

        vols = np.abs(np.array([i.price_volatility for i in items], dtype=float))
        frozen_mask = vols > circuit_breaker_threshold

        return {
            'items': len(items),
            'mean_abs_volatility': float(vols.mean()),
            'max_abs_volatility': float(vols.max()),
            'frozen': [i.item_id for i, f in zip(items, frozen_mask) if f],
            'at_floor': [
                i.item_id for i in items
                if i.current_price <= price_floor(i.base_price, floor_ratio)
            ],
            'total_stock': int(np.sum([i.stock for i in items])),
        }

    # ==================== Telemetry ====================

    @staticmethod
    def telemetry_stats(events: Iterable[TelemetryEvent]) -> Dict[str, object]:
        events = list(events)
        counts = Counter(e.event_type for e in events)
        return {
            'dau': len({e.player_id for e in events if e.player_id}),
            'microgame_plays': counts.get('microgame_play', 0),
            'microgame_shares': counts.get('microgame_share', 0),
            'transactions': counts.get('shop_purchase', 0),
            'tl_upgrades': counts.get('tl_upgrade', 0),
            'by_type': dict(counts),
        }

    @staticmethod
    def telemetry_csv(events: Iterable[TelemetryEvent]) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(["timestamp", "eventType", "playerId", "metadata"])
        for e in events:
            writer.writerow([
                e.timestamp,
                e.event_type,
                e.player_id or "",
                json.dumps(e.metadata or {}, sort_keys=True),
            ])
        return buf.getvalue()
