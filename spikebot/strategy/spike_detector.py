"""
Spike detector: flags abrupt close-to-close moves.

A move up is faded SHORT, a move down is faded LONG.  That polarity is the
strategy (reversal bias), not a labelling slip.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from .candles import Candle, InvalidPriceData


class Direction(Enum):
    LONG  = "long"
    SHORT = "short"

    @property
    def label(self) -> str:
        return self.name


@dataclass(frozen=True)
class SpikeSignal:
    index:           int
    direction:       Direction
    relative_change: float     # signed fraction, e.g. -0.02
    entry_price:     float     # close of the flagging candle

    @property
    def magnitude(self) -> float:
        return abs(self.relative_change)


def relative_change(previous_close: float, current_close: float) -> float:
    if previous_close <= 0:
        raise InvalidPriceData(f"previous close must be > 0, got {previous_close}")
    return (current_close - previous_close) / previous_close


def detect(series: Sequence[Candle], index: int, threshold: float) -> Optional[SpikeSignal]:
    """
    Compare candle[index] with candle[index-1].

    Emits only when abs(change) is STRICTLY above threshold: a move of
    exactly threshold is not a spike.
    """
    if index < 1 or index >= len(series):
        raise ValueError(f"detect: index {index} out of range 1..{len(series) - 1}")
    if threshold <= 0:
        raise ValueError(f"detect: threshold must be positive, got {threshold}")

    current_close = series[index].close
    change = relative_change(series[index - 1].close, current_close)

    if abs(change) <= threshold:
        return None

    return SpikeSignal(
        index=index,
        direction=Direction.SHORT if change > 0 else Direction.LONG,
        relative_change=change,
        entry_price=current_close,
    )
