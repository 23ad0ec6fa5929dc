"""
Domain layer - Core market logic.
Pure functions, zero dependencies on application/infrastructure.
"""
from .item import Item, ItemCategory, price_floor, volatility_of
from .trade import (
    TradeSide,
    TradeRejection,
    TradeResult,
    Transaction,
    InventoryEntry,
    TelemetryEvent,
)
from .pricing_engine import PricingEngine
from .ledgers import ItemLedger, InventoryLedger, TransactionLog, LedgerError

__all__ = [
    'Item',
    'ItemCategory',
    'price_floor',
    'volatility_of',
    'TradeSide',
    'TradeRejection',
    'TradeResult',
    'Transaction',
    'InventoryEntry',
    'TelemetryEvent',
    'PricingEngine',
    'ItemLedger',
    'InventoryLedger',
    'TransactionLog',
    'LedgerError',
]
