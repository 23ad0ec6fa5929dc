from .config import MarketConfig
from .logger import LoggingConfig, configure_logging, get_logger, get_audit_logger
from .repository import MarketRepository, InMemoryRepository, Player, RepositoryError

__all__ = [
    "MarketConfig",
    "LoggingConfig",
    "configure_logging",
    "get_logger",
    "get_audit_logger",
    "MarketRepository",
    "InMemoryRepository",
    "Player",
    "RepositoryError",
]
