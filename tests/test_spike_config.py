"""
Tests for spike_config levers.

Covers:
  - apply_levers type coercion (str → float/int/str)
  - unknown / private / function keys rejected
  - BacktestConfig.from_levers() sees patched values
  - parse_lever_args + get_model_tags
"""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from spikebot.strategy import spike_config as cfg
from spikebot.strategy.backtest_engine import BacktestConfig

_LEVERS = ["TIMEFRAME", "SPIKE_THRESHOLD", "INITIAL_BALANCE", "OHLCV_PAGE_LIMIT"]


@pytest.fixture(autouse=True)
def restore_levers():
    saved = {k: getattr(cfg, k) for k in _LEVERS}
    yield
    for k, v in saved.items():
        setattr(cfg, k, v)


class TestApplyLevers:
    def test_coerces_to_existing_type(self):
        applied = cfg.apply_levers({
            "SPIKE_THRESHOLD": "0.025",
            "OHLCV_PAGE_LIMIT": "500",
            "TIMEFRAME": "15m",
        })
        assert applied == {"SPIKE_THRESHOLD": 0.025, "OHLCV_PAGE_LIMIT": 500, "TIMEFRAME": "15m"}
        assert isinstance(cfg.OHLCV_PAGE_LIMIT, int)
        assert cfg.SPIKE_THRESHOLD == 0.025

    def test_unknown_lever(self):
        with pytest.raises(ValueError, match="unknown lever"):
            cfg.apply_levers({"NOT_A_LEVER": 1})

    def test_function_is_not_a_lever(self):
        with pytest.raises(ValueError, match="function"):
            cfg.apply_levers({"get_model_tags": 1})

    def test_private_is_not_a_lever(self):
        with pytest.raises(ValueError, match="private"):
            cfg.apply_levers({"_env_float": 1})

    def test_backtest_config_snapshot(self):
        cfg.apply_levers({"SPIKE_THRESHOLD": 0.03, "INITIAL_BALANCE": 5_000, "TIMEFRAME": "1h"})
        bc = BacktestConfig.from_levers()
        assert bc == BacktestConfig(timeframe="1h", threshold=0.03, initial_balance=5_000.0)


class TestHelpers:
    def test_parse_lever_args(self):
        assert cfg.parse_lever_args(["A=1", " B = x=y "]) == {"A": "1", "B": "x=y"}
        assert cfg.parse_lever_args(None) == {}

    def test_parse_lever_args_needs_equals(self):
        with pytest.raises(ValueError):
            cfg.parse_lever_args(["SPIKE_THRESHOLD"])

    def test_model_tags_follow_levers(self):
        cfg.apply_levers({"SPIKE_THRESHOLD": 0.015, "TIMEFRAME": "1m"})
        tags = cfg.get_model_tags()
        assert "tf_1m" in tags
        assert "thr_1.50pct" in tags

    def test_defaults_are_positive(self):
        assert cfg.SPIKE_THRESHOLD > 0
        assert cfg.INITIAL_BALANCE > 0
        assert cfg.LIVE_SPIKE_THRESHOLD > 0
