"""
candles.py: Candle record + series builder
============================================
Turns a raw OHLCV feed into the ordered, read-only series the backtester
walks over.

Accepted raw shapes
-------------------
  ccxt rows        [[ts_ms, open, high, low, close, volume], ...]
  dict rows        [{"timestamp": ..., "open": ..., ...}, ...]
  pd.DataFrame     columns timestamp/open/high/low/close/volume

Shaping rules
-------------
- Sorted by timestamp; duplicate timestamps keep the LAST row.
- Rows with non-numeric, NaN or negative fields are dropped (logged).
  A missing volume is read as 0 and never drops a row.
- Time gaps are fine.  No resampling, no fill.
- high/low consistency is NOT checked: garbage in, garbage out.

Zero prices are kept on purpose: the engine turns them into InvalidPriceData
at the index where they are used as a division base.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence, Tuple, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

OHLCV_COLUMNS = ["timestamp", "open", "high", "low", "close", "volume"]


# ── Errors ────────────────────────────────────────────────────────────────────

class SpikeBotError(Exception):
    """Base class for backtester errors."""


class InvalidPriceData(SpikeBotError, ValueError):
    """A non-positive price was about to be used as a division base."""


class EmptySeries(SpikeBotError):
    """Fewer than two candles: nothing to compare."""


# ── Candle ────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Candle:
    timestamp: int      # ms since epoch, UTC
    open:      float
    high:      float
    low:       float
    close:     float
    volume:    float

    @classmethod
    def from_ccxt(cls, row: Sequence[Any]) -> "Candle":
        ts, o, h, l, c, v = row[:6]
        return cls(int(ts), float(o), float(h), float(l), float(c), float(v or 0.0))

    @property
    def dt(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc)

    @property
    def month_key(self) -> str:
        """UTC calendar month, "YYYY-MM"."""
        return self.dt.strftime("%Y-%m")


CandleSeries = Tuple[Candle, ...]
RawFeed = Union[pd.DataFrame, Iterable[Sequence[Any]], Iterable[dict]]


# ── Builder ───────────────────────────────────────────────────────────────────

def _to_frame(raw: RawFeed) -> pd.DataFrame:
    if isinstance(raw, pd.DataFrame):
        df = raw.copy()
        if "timestamp" not in df.columns:
            # datetime-indexed frame (e.g. from to_frame()) → pull the index back out
            df = df.reset_index().rename(columns={df.index.name or "index": "timestamp"})
    else:
        rows = list(raw)
        if not rows:
            return pd.DataFrame(columns=OHLCV_COLUMNS)
        if isinstance(rows[0], dict):
            df = pd.DataFrame(rows)
        else:
            df = pd.DataFrame([list(r)[:6] for r in rows], columns=OHLCV_COLUMNS)

    missing = [c for c in OHLCV_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"build_series: raw feed missing columns {missing}")

    df = df[OHLCV_COLUMNS]
    if pd.api.types.is_datetime64_any_dtype(df["timestamp"]):
        ts = df["timestamp"]
        if ts.dt.tz is None:
            ts = ts.dt.tz_localize("UTC")
        epoch = pd.Timestamp("1970-01-01", tz="UTC")
        df = df.assign(timestamp=(ts.dt.tz_convert("UTC") - epoch) // pd.Timedelta(milliseconds=1))
    return df


def build_series(raw: RawFeed) -> CandleSeries:
    """
    Normalise a raw OHLCV feed into an ordered CandleSeries.

    Never raises on bad rows: they are dropped and counted in the log.
    Raises ValueError only when the feed is missing OHLCV columns entirely.
    """
    df = _to_frame(raw)
    n_raw = len(df)
    if n_raw == 0:
        return tuple()

    df = df.apply(pd.to_numeric, errors="coerce")
    # a missing volume alone does not make a row malformed
    df["volume"] = df["volume"].fillna(0.0)
    df = df.replace([np.inf, -np.inf], np.nan).dropna()
    df = df[(df[OHLCV_COLUMNS] >= 0).all(axis=1)]
    n_clean = len(df)

    df = df.sort_values("timestamp", kind="mergesort")
    df = df.drop_duplicates(subset="timestamp", keep="last")

    dropped = n_raw - n_clean
    dupes = n_clean - len(df)
    if dropped or dupes:
        logger.warning(
            f"build_series: dropped {dropped} malformed row(s), "
            f"{dupes} duplicate timestamp(s): {len(df)}/{n_raw} candles kept"
        )

    return tuple(Candle.from_ccxt(r) for r in df.itertuples(index=False))


def require_tradeable(series: Sequence[Candle]) -> None:
    """Raise EmptySeries when the series cannot produce a single comparison."""
    if len(series) < 2:
        raise EmptySeries(f"need at least 2 candles, got {len(series)}")


def series_span(series: Sequence[Candle]) -> str:
    """Human-readable first → last candle range for logs."""
    if not series:
        return "empty"
    return f"{series[0].dt:%Y-%m-%d %H:%M} → {series[-1].dt:%Y-%m-%d %H:%M} UTC"
