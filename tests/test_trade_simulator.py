"""
Unit tests for trade resolution.

Covers:
  - target / stop levels (half move back / full move again)
  - win, loss and end-of-data exits for both directions
  - touch price: LOW for shorts, HIGH for longs; realised at the touch price
  - same-candle tie-break: target is checked before stop → WIN
  - open on the last candle → end of data, zero profit
  - compounding: profit is a fraction of the balance passed in
  - month_key follows the EXIT candle
"""
import json
import math
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from spikebot.strategy.candles import Candle, InvalidPriceData
from spikebot.strategy.spike_detector import Direction, SpikeSignal, detect
from spikebot.strategy.trade_simulator import (
    EXIT_END_OF_DATA, EXIT_STOP, EXIT_TARGET, Trade, resolve,
)

T0 = 1_704_067_200_000
STEP = 300_000


def bar(i, close, high=None, low=None, ts=None):
    high = close if high is None else high
    low = close if low is None else low
    return Candle(T0 + i * STEP if ts is None else ts, close, high, low, close, 1.0)


def spike_at(series, index, threshold=0.01):
    sig = detect(series, index, threshold)
    assert sig is not None, "fixture should produce a spike"
    return sig


# ── Levels ──────────────────────────────────────────────────────────────────

class TestLevels:
    def test_long_levels(self):
        t = Trade.open(SpikeSignal(1, Direction.LONG, -0.02, 98.0))
        assert t.target_price == pytest.approx(98.98)
        assert t.stop_price == pytest.approx(96.04)

    def test_short_levels(self):
        t = Trade.open(SpikeSignal(1, Direction.SHORT, 0.10, 110.0))
        assert t.target_price == pytest.approx(104.5)
        assert t.stop_price == pytest.approx(121.0)

    def test_risk_is_twice_reward(self):
        t = Trade.open(SpikeSignal(3, Direction.SHORT, 0.04, 50.0))
        reward = t.entry_price - t.target_price
        risk = t.stop_price - t.entry_price
        assert risk == pytest.approx(2 * reward)

    def test_non_positive_entry_rejected(self):
        with pytest.raises(InvalidPriceData):
            Trade.open(SpikeSignal(1, Direction.LONG, -1.0, 0.0))


# ── Wins ────────────────────────────────────────────────────────────────────

class TestWins:
    def test_long_win_realised_at_high(self):
        series = (bar(0, 100), bar(1, 98), bar(2, 102, high=103, low=97.5))
        out = resolve(series, 1, spike_at(series, 1), 1_000.0)
        assert out.exit_reason == EXIT_TARGET
        assert out.exit_index == 2
        assert out.exit_price == 103
        assert out.profit == pytest.approx((103 - 98) / 98 * 1_000)
        assert out.new_balance == pytest.approx(1_000 + out.profit)
        assert out.is_win

    def test_short_win_realised_at_low(self):
        series = (bar(0, 100), bar(1, 110), bar(2, 108, high=109), bar(3, 104, high=106, low=103))
        out = resolve(series, 1, spike_at(series, 1), 500.0)
        assert out.exit_reason == EXIT_TARGET
        assert out.exit_index == 3
        assert out.profit == pytest.approx((110 - 103) / 110 * 500)

    def test_scan_skips_quiet_candles(self):
        series = (bar(0, 100), bar(1, 95), bar(2, 95.5, high=96, low=94), bar(3, 98, high=98))
        out = resolve(series, 1, spike_at(series, 1), 1_000.0)
        assert out.exit_index == 3
        assert out.exit_reason == EXIT_TARGET


# ── Losses ──────────────────────────────────────────────────────────────────

class TestLosses:
    def test_long_stop(self):
        series = (bar(0, 100), bar(1, 95), bar(2, 89.5, high=90, low=89))
        out = resolve(series, 1, spike_at(series, 1), 1_000.0)
        assert out.exit_reason == EXIT_STOP
        assert out.exit_price == 90
        assert out.profit == pytest.approx(-(5 / 95) * 1_000)
        assert not out.is_win

    def test_short_stop_needs_low_above_stop(self):
        # stop = 110.25; low 111 → whole candle above stop
        series = (bar(0, 100), bar(1, 105), bar(2, 111.5, high=112, low=111))
        out = resolve(series, 1, spike_at(series, 1), 1_000.0)
        assert out.exit_reason == EXIT_STOP
        assert out.profit == pytest.approx(-(6 / 105) * 1_000)

    def test_short_high_through_stop_alone_does_not_stop(self):
        # high pierces 110.25 but the low does not → not a stop for a short
        series = (bar(0, 100), bar(1, 105), bar(2, 106, high=115, low=105.5))
        out = resolve(series, 1, spike_at(series, 1), 1_000.0)
        assert out.exit_reason == EXIT_END_OF_DATA
        assert out.exit_price == 106


# ── Tie-break ───────────────────────────────────────────────────────────────

class TestSameCandleTieBreak:
    def test_long_spanning_candle_is_a_win(self):
        # target 94.5, stop 81: next candle 80..95 spans both
        series = (bar(0, 100), bar(1, 90), bar(2, 88, high=95, low=80))
        out = resolve(series, 1, spike_at(series, 1), 1_000.0)
        assert out.exit_reason == EXIT_TARGET
        assert out.profit == pytest.approx((95 - 90) / 90 * 1_000)

    def test_short_spanning_candle_is_a_win(self):
        # target 104.5, stop 121: next candle 104..125 spans both
        series = (bar(0, 100), bar(1, 110), bar(2, 120, high=125, low=104))
        out = resolve(series, 1, spike_at(series, 1), 1_000.0)
        assert out.exit_reason == EXIT_TARGET
        assert out.profit > 0


# ── End of data ─────────────────────────────────────────────────────────────

class TestEndOfData:
    def test_long_force_closed_at_last_close(self):
        series = (bar(0, 100), bar(1, 98), bar(2, 98.4, high=98.5), bar(3, 97, high=97.5))
        out = resolve(series, 1, spike_at(series, 1), 1_000.0)
        assert out.exit_reason == EXIT_END_OF_DATA
        assert out.exit_index == 3
        assert out.profit == pytest.approx((97 - 98) / 98 * 1_000)

    def test_short_force_closed_at_last_close(self):
        series = (bar(0, 100), bar(1, 102), bar(2, 101.5, high=101.6, low=101.2))
        out = resolve(series, 1, spike_at(series, 1), 1_000.0)
        assert out.exit_reason == EXIT_END_OF_DATA
        assert out.profit == pytest.approx(-(101.5 - 102) / 102 * 1_000)

    def test_open_on_last_candle(self):
        series = (bar(0, 100), bar(1, 98))
        out = resolve(series, 1, spike_at(series, 1), 1_000.0)
        assert out.exit_reason == EXIT_END_OF_DATA
        assert out.exit_index == 1
        assert out.profit == 0
        assert out.new_balance == 1_000.0

    def test_flat_short_close_is_positive_zero(self):
        series = (bar(0, 100), bar(1, 102))
        out = resolve(series, 1, spike_at(series, 1), 1_000.0)
        assert out.trade.direction == Direction.SHORT
        assert out.profit == 0.0
        assert math.copysign(1.0, out.profit) == 1.0
        assert json.dumps(out.to_dict()["profit"]) == "0.0"
        assert not out.is_win

# ── Compounding + month ─────────────────────────────────────────────────────

class TestCompoundingAndMonth:
    def test_profit_scales_with_balance(self):
        series = (bar(0, 100), bar(1, 98), bar(2, 102, high=103))
        sig = spike_at(series, 1)
        small = resolve(series, 1, sig, 1_000.0)
        big = resolve(series, 1, sig, 2_000.0)
        assert big.profit == pytest.approx(2 * small.profit)

    def test_month_key_from_exit_candle(self):
        jan_31 = 1_706_745_000_000      # 2024-01-31 23:50 UTC
        series = (
            bar(0, 100, ts=jan_31),
            bar(1, 98, ts=jan_31 + STEP),
            bar(2, 102, high=103, ts=jan_31 + 2 * STEP),   # 2024-02-01 00:00
        )
        out = resolve(series, 1, spike_at(series, 1), 1_000.0)
        assert out.month_key == "2024-02"
        assert out.to_dict()["month"] == "2024-02"
