"""
spike_config.py: Single Source of Truth for spike strategy settings
=====================================================================

Both the backtester (backtesting/spike_backtest.py) and the live signal path
(spikebot/strategy/live_signal.py) read these constants.  Change a value
HERE, not in the caller.

Values can be overridden from <repo>/.env (python-dotenv) using the same
names, e.g.  SPIKE_THRESHOLD=0.015

LEVER SYSTEM
============
One-off experiments without editing source:

    python3 -m backtesting.spike_backtest --symbols BTC/USDT \\
        --lever SPIKE_THRESHOLD=0.02 --lever INITIAL_BALANCE=5000

apply_levers(overrides) patches module globals at runtime; callers that
import this module by reference (import spike_config as _cfg) see the
patched values immediately.
"""
import os as _os
import sys as _sys
from pathlib import Path as _Path

from dotenv import load_dotenv as _load_dotenv

_load_dotenv(_Path(__file__).resolve().parents[2] / ".env")


def _env_float(name: str, default: float) -> float:
    raw = _os.getenv(name)
    return float(raw) if raw not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    raw = _os.getenv(name)
    return int(raw) if raw not in (None, "") else default


def _env_str(name: str, default: str) -> str:
    raw = _os.getenv(name)
    return raw if raw else default


# ── Backtest ───────────────────────────────────────────────────────────────
# Candle size.  Informational for the engine; used by the feed to fetch.
TIMEFRAME: str = _env_str("TIMEFRAME", "5m")

# Close-to-close move that counts as a spike (0.01 = 1%).
# Strict inequality: a move of exactly this size is ignored.
SPIKE_THRESHOLD: float = _env_float("SPIKE_THRESHOLD", 0.01)

# Starting balance for every per-symbol run.  Profits compound from here.
INITIAL_BALANCE: float = _env_float("INITIAL_BALANCE", 1_000.0)

# First candle to fetch (UTC date, YYYY-MM-DD).
BACKTEST_SINCE: str = _env_str("BACKTEST_SINCE", "2024-01-01")

# ── Market data ────────────────────────────────────────────────────────────
# ccxt exchange id.
EXCHANGE_ID: str = _env_str("EXCHANGE_ID", "binance")

# Only markets quoted in this currency are scanned ("BTC/USDT" etc.).
QUOTE_CURRENCY: str = _env_str("QUOTE_CURRENCY", "USDT")

# Candles per fetch_ohlcv page.  A short page means we reached the present.
OHLCV_PAGE_LIMIT: int = _env_int("OHLCV_PAGE_LIMIT", 1000)

# ── Live signal ────────────────────────────────────────────────────────────
# Live path runs a slightly wider threshold than the backtest default.
LIVE_SPIKE_THRESHOLD: float = _env_float("LIVE_SPIKE_THRESHOLD", 0.013)

# Quote-currency notional per order request.
LIVE_ORDER_AMOUNT_USD: float = _env_float("LIVE_ORDER_AMOUNT_USD", 30.0)

# Skip symbols whose 24h quote volume is below this.
LIVE_MIN_QUOTE_VOLUME: float = _env_float("LIVE_MIN_QUOTE_VOLUME", 10_000_000.0)

# Cap on order requests emitted in one scan pass.
LIVE_MAX_OPEN_ORDERS: int = _env_int("LIVE_MAX_OPEN_ORDERS", 10)


# ══════════════════════════════════════════════════════════════════════════════
# LEVER RUNTIME SYSTEM
# ══════════════════════════════════════════════════════════════════════════════

def apply_levers(overrides: dict) -> dict:
    """
    Patch module-level constants at runtime.

    Type coercion follows the existing type of each constant.
    Returns the dict of applied overrides (useful for logging).
    Raises ValueError for unknown or private keys.

    Example:
        apply_levers({"SPIKE_THRESHOLD": "0.02", "INITIAL_BALANCE": 5000})
    """
    m = _sys.modules[__name__]
    applied = {}
    for key, raw_val in overrides.items():
        if key.startswith("_"):
            raise ValueError(f"apply_levers: '{key}' is private, not a lever")
        existing = getattr(m, key, _MISSING := object())
        if existing is _MISSING:
            raise ValueError(f"apply_levers: unknown lever '{key}'")
        if callable(existing):
            raise ValueError(f"apply_levers: '{key}' is a function, not a lever")
        if isinstance(existing, bool):
            if isinstance(raw_val, str):
                val = raw_val.strip().lower() not in ("false", "0", "no", "off")
            else:
                val = bool(raw_val)
        elif isinstance(existing, float):
            val = float(raw_val)
        elif isinstance(existing, int):
            val = int(raw_val)
        elif isinstance(existing, str):
            val = str(raw_val)
        else:
            val = raw_val
        setattr(m, key, val)
        applied[key] = val
    return applied


def parse_lever_args(pairs: list) -> dict:
    """["A=1", "B=x"] → {"A": "1", "B": "x"}.  Raises ValueError on a missing '='."""
    out = {}
    for p in pairs or []:
        if "=" not in p:
            raise ValueError(f"lever '{p}' must look like KEY=VALUE")
        k, v = p.split("=", 1)
        out[k.strip()] = v.strip()
    return out


def get_model_tags() -> list:
    """
    Short tags describing the active config.  Written into every summary so
    a number can always be traced back to the settings that produced it.
    """
    m = _sys.modules[__name__]
    return [
        f"tf_{m.TIMEFRAME}",
        f"thr_{m.SPIKE_THRESHOLD * 100:.2f}pct",
        f"bal_{m.INITIAL_BALANCE:.0f}",
        f"since_{m.BACKTEST_SINCE}",
        f"ex_{m.EXCHANGE_ID}",
    ]
