"""
Unit tests for the spike detector.

Covers:
  - strict threshold (exactly threshold → no signal, threshold + ε → signal)
  - reversal polarity (up move → SHORT, down move → LONG)
  - entry price = close of the flagging candle
  - guards: previous close ≤ 0, bad index, bad threshold
"""
import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from spikebot.strategy.candles import Candle, InvalidPriceData
from spikebot.strategy.spike_detector import Direction, detect, relative_change

T0 = 1_704_067_200_000


def make_series(closes):
    return tuple(
        Candle(T0 + i * 300_000, c, c, c, c, 1.0) for i, c in enumerate(closes)
    )


class TestThreshold:
    def test_exact_threshold_up_is_not_a_spike(self):
        assert detect(make_series([100, 101]), 1, 0.01) is None

    def test_exact_threshold_down_is_not_a_spike(self):
        assert detect(make_series([100, 99]), 1, 0.01) is None

    def test_just_above_threshold_is_a_spike(self):
        sig = detect(make_series([100, 101.0001]), 1, 0.01)
        assert sig is not None
        assert sig.relative_change == pytest.approx(0.010001)

    def test_small_move_ignored(self):
        assert detect(make_series([100, 100.5]), 1, 0.01) is None


class TestPolarity:
    def test_rise_is_faded_short(self):
        sig = detect(make_series([100, 102]), 1, 0.01)
        assert sig.direction == Direction.SHORT
        assert sig.relative_change == pytest.approx(0.02)

    def test_fall_is_faded_long(self):
        sig = detect(make_series([100, 98, 102]), 1, 0.01)
        assert sig.direction == Direction.LONG
        assert sig.relative_change == pytest.approx(-0.02)
        assert sig.magnitude == pytest.approx(0.02)

    def test_signal_fields(self):
        sig = detect(make_series([50, 50, 45]), 2, 0.05)
        assert sig.index == 2
        assert sig.entry_price == 45
        assert sig.direction.label == "LONG"


class TestGuards:
    def test_zero_previous_close(self):
        with pytest.raises(InvalidPriceData):
            detect(make_series([0, 10]), 1, 0.01)

    def test_negative_previous_close(self):
        with pytest.raises(InvalidPriceData):
            relative_change(-1.0, 10.0)

    def test_invalid_price_is_a_value_error(self):
        assert issubclass(InvalidPriceData, ValueError)

    @pytest.mark.parametrize("index", [0, -1, 2])
    def test_index_out_of_range(self, index):
        with pytest.raises(ValueError):
            detect(make_series([100, 102]), index, 0.01)

    def test_non_positive_threshold(self):
        with pytest.raises(ValueError):
            detect(make_series([100, 102]), 1, 0.0)

    def test_pure(self):
        series = make_series([100, 102])
        assert detect(series, 1, 0.01) == detect(series, 1, 0.01)
