# infrastructure/logger.py
from __future__ import annotations

import logging
import logging.config
from dataclasses import dataclass
from typing import Optional, Dict, Any
from pathlib import Path

AUDIT_LOGGER = "town_market.audit"


@dataclass(frozen=True)
class LoggingConfig:
    app_name: str = "town_market"
    level: str = "INFO"
    log_file: Optional[str] = None
    # Executed trades are mirrored here, one line per trade
    audit_file: Optional[str] = None


def build_dict_config(cfg: LoggingConfig) -> Dict[str, Any]:
    handlers: Dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": cfg.level,
            "formatter": "standard",
            "stream": "ext://sys.stdout",
        }
    }

    root_handlers = ["console"]

    if cfg.log_file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": cfg.level,
            "formatter": "standard",
            "filename": cfg.log_file,
            "maxBytes": 5_000_000,
            "backupCount": 3,
            "encoding": "utf-8",
        }
        root_handlers.append("file")

    loggers: Dict[str, Any] = {
        "engine": {"level": cfg.level},
        "application": {"level": cfg.level},
        "infrastructure": {"level": cfg.level},
    }

    if cfg.audit_file:
        handlers["audit"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "INFO",
            "formatter": "audit",
            "filename": cfg.audit_file,
            "maxBytes": 20_000_000,
            "backupCount": 10,
            "encoding": "utf-8",
        }
        loggers[AUDIT_LOGGER] = {"level": "INFO", "handlers": ["audit"]}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "audit": {
                "format": "%(asctime)s.%(msecs)03d " + cfg.app_name + " %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
            },
        },
        "handlers": handlers,
        "root": {
            "level": cfg.level,
            "handlers": root_handlers,
        },
        "loggers": loggers,
    }


def configure_logging(cfg: LoggingConfig) -> None:
    """
    Configure logging once from the entrypoint (main.py / cli_shop.py).
    """
    for path in (cfg.log_file, cfg.audit_file):
        if path:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_dict_config(cfg))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def get_audit_logger() -> logging.Logger:
    return logging.getLogger(AUDIT_LOGGER)
