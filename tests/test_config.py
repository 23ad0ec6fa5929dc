"""
Configuration and logging setup tests.
"""
import logging

import pytest

from infrastructure.config import MarketConfig
from infrastructure.logger import AUDIT_LOGGER, LoggingConfig, build_dict_config, configure_logging


class TestMarketConfig:

    def test_standard_preset(self):
        cfg = MarketConfig.STANDARD()
        assert cfg.circuit_breaker_threshold == 0.25
        assert cfg.price_floor_ratio == 0.5
        assert cfg.price_step_divisor == 10
        assert cfg.sell_payout_pct == 80
        assert cfg.starting_coins == 1000
        assert cfg.telemetry_async is True

    def test_sandbox_preset(self):
        cfg = MarketConfig.SANDBOX()
        assert cfg.circuit_breaker_threshold == 1.0
        assert cfg.starting_coins == 100_000
        assert cfg.telemetry_async is False

    def test_with_overrides(self):
        base = MarketConfig.STANDARD()
        cfg = base.with_overrides(sell_payout_pct=90, history_limit=5)
        assert cfg.sell_payout_pct == 90
        assert cfg.history_limit == 5
        assert base.sell_payout_pct == 80

    def test_frozen(self):
        with pytest.raises(AttributeError):
            MarketConfig.STANDARD().currency = "credits"


class TestLoggingConfig:

    def test_console_only_by_default(self):
        d = build_dict_config(LoggingConfig())
        assert set(d['handlers']) == {"console"}
        assert AUDIT_LOGGER not in d['loggers']

    def test_file_and_audit_handlers(self, tmp_path):
        cfg = LoggingConfig(
            level="DEBUG",
            log_file=str(tmp_path / "market.log"),
            audit_file=str(tmp_path / "trades.log"),
        )
        d = build_dict_config(cfg)
        assert set(d['handlers']) == {"console", "file", "audit"}
        assert d['root']['handlers'] == ["console", "file"]
        assert d['loggers'][AUDIT_LOGGER]['handlers'] == ["audit"]
        assert d['loggers']['engine']['level'] == "DEBUG"

    def test_configure_creates_directories(self, tmp_path):
        root = logging.getLogger()
        before = list(root.handlers)
        log_file = tmp_path / "logs" / "market.log"
        configure_logging(LoggingConfig(log_file=str(log_file)))
        try:
            assert log_file.parent.is_dir()
        finally:
            for handler in root.handlers[:]:
                if handler not in before:
                    handler.close()
                    root.removeHandler(handler)
