"""
Application layer - trade orchestration, reporting, service facade.
"""
from .locks import KeyedLockRegistry
from .telemetry import TelemetryEmitter
from .trade_coordinator import TradeCoordinator
from .market_analytics import MarketAnalytics
from .shop_service import ShopService

__all__ = [
    'KeyedLockRegistry',
    'TelemetryEmitter',
    'TradeCoordinator',
    'MarketAnalytics',
    'ShopService',
]
