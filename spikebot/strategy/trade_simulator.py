"""
Trade simulator: resolves one spike trade against the candles that follow it.

Levels (m = |relative change| of the spike):
  target = half the spike back    SHORT: entry × (1 − m/2)   LONG: entry × (1 + m/2)
  stop   = the full spike again   SHORT: entry × (1 + m)     LONG: entry × (1 − m)

Risk is 2× reward by construction.

Exit scan, candle by candle after the open:
  - touch price is the LOW for a short, the HIGH for a long;
  - the touch price is tested against the target first, then the stop, so a
    candle whose range spans both levels resolves as a WIN;
  - if nothing hits, the position is force-closed at the last candle's close.

Profit is a fraction of the balance at open time (compounding), realised at
the touch price rather than the level itself.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .candles import Candle, InvalidPriceData
from .spike_detector import Direction, SpikeSignal


EXIT_TARGET      = "target"
EXIT_STOP        = "stop"
EXIT_END_OF_DATA = "end_of_data"


@dataclass(frozen=True)
class Trade:
    entry_price:  float
    target_price: float
    stop_price:   float
    direction:    Direction
    open_index:   int

    @classmethod
    def open(cls, signal: SpikeSignal) -> "Trade":
        entry = signal.entry_price
        if entry <= 0:
            raise InvalidPriceData(f"entry price must be > 0, got {entry}")
        m = signal.magnitude
        if signal.direction == Direction.SHORT:
            target, stop = entry * (1 - m / 2), entry * (1 + m)
        else:
            target, stop = entry * (1 + m / 2), entry * (1 - m)
        return cls(entry, target, stop, signal.direction, signal.index)

    def touch_price(self, candle: Candle) -> float:
        return candle.low if self.direction == Direction.SHORT else candle.high

    def hit_target(self, price: float) -> bool:
        if self.direction == Direction.SHORT:
            return price <= self.target_price
        return price >= self.target_price

    def hit_stop(self, price: float) -> bool:
        if self.direction == Direction.SHORT:
            return price >= self.stop_price
        return price <= self.stop_price

    def pnl_fraction(self, exit_price: float) -> float:
        """Signed return of the position if closed at *exit_price*."""
        move = (exit_price - self.entry_price) / self.entry_price
        return -move if self.direction == Direction.SHORT else move


@dataclass(frozen=True)
class TradeOutcome:
    trade:          Trade
    exit_index:     int
    exit_price:     float
    exit_reason:    str      # EXIT_TARGET | EXIT_STOP | EXIT_END_OF_DATA
    exit_timestamp: int
    profit:         float
    balance_before: float
    new_balance:    float
    month_key:      str

    @property
    def is_win(self) -> bool:
        return self.profit > 0

    def to_dict(self) -> dict:
        return {
            "direction":      self.trade.direction.value,
            "open_index":     self.trade.open_index,
            "entry_price":    self.trade.entry_price,
            "target_price":   self.trade.target_price,
            "stop_price":     self.trade.stop_price,
            "exit_index":     self.exit_index,
            "exit_price":     self.exit_price,
            "exit_reason":    self.exit_reason,
            "exit_timestamp": self.exit_timestamp,
            "profit":         self.profit,
            "balance_before": self.balance_before,
            "balance_after":  self.new_balance,
            "month":          self.month_key,
        }


def resolve(
    series: Sequence[Candle],
    open_index: int,
    signal: SpikeSignal,
    current_balance: float,
) -> TradeOutcome:
    """
    Walk forward from open_index+1 until target, stop or end of data.

    Raises InvalidPriceData when the entry price is not positive.  An open on
    the last candle resolves immediately at end of data with zero profit.
    """
    trade = Trade.open(signal)

    for i in range(open_index + 1, len(series)):
        candle = series[i]
        touch = trade.touch_price(candle)

        if trade.hit_target(touch):
            profit = trade.pnl_fraction(touch) * current_balance
            return _outcome(trade, candle, i, touch, EXIT_TARGET, profit, current_balance)

        if trade.hit_stop(touch):
            profit = -abs((touch - trade.entry_price) / trade.entry_price * current_balance)
            return _outcome(trade, candle, i, touch, EXIT_STOP, profit, current_balance)

    last_index = len(series) - 1
    last = series[last_index]
    profit = trade.pnl_fraction(last.close) * current_balance
    return _outcome(trade, last, last_index, last.close, EXIT_END_OF_DATA, profit, current_balance)


def _outcome(
    trade: Trade,
    candle: Candle,
    index: int,
    exit_price: float,
    reason: str,
    profit: float,
    balance: float,
) -> TradeOutcome:
    profit += 0.0  # -0.0 from a flat short close
    return TradeOutcome(
        trade=trade,
        exit_index=index,
        exit_price=exit_price,
        exit_reason=reason,
        exit_timestamp=candle.timestamp,
        profit=profit,
        balance_before=balance,
        new_balance=balance + profit,
        month_key=candle.month_key,
    )
