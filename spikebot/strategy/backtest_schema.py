"""
backtest_schema.py: Canonical Summary schema
=============================================
Data contract between run() and any consumer (CLI, journal, notifier, tests).

Canonical field names
---------------------
  final_balance   : balance after the last recorded trade
  total_trades    : winning_trades + losing_trades
  return_pct      : (final − initial) / initial × 100
  max_dd_pct      : peak-to-trough drawdown %
  monthly_profit  : "YYYY-MM" → signed profit, in first-exit order
  win_rate        : fraction 0..1, NaN when total_trades == 0 (guard it!)

Aliases
-------
  Summary.get("balance")   → final_balance
  Summary["n_trades"]      → total_trades
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List


_ALIASES: Dict[str, str] = {
    "balance":   "final_balance",
    "n_trades":  "total_trades",
    "ret_pct":   "return_pct",
}


@dataclass
class Summary:
    """Typed result returned by backtest_engine.run()."""

    symbol:          str   = ""
    timeframe:       str   = ""
    threshold:       float = 0.0
    n_candles:       int   = 0

    # ── Core performance ─────────────────────────────────────────────────
    initial_balance: float = 0.0
    final_balance:   float = 0.0
    total_trades:    int   = 0
    winning_trades:  int   = 0
    losing_trades:   int   = 0
    return_pct:      float = 0.0
    max_dd_pct:      float = 0.0

    # ── Breakdown ────────────────────────────────────────────────────────
    n_target:        int   = 0     # exits at take-profit
    n_stop:          int   = 0     # exits at stop-loss
    n_end_of_data:   int   = 0     # force-closed at last candle
    skipped_indices: List[int] = field(default_factory=list)   # InvalidPriceData

    # ── Raw (large: last in repr) ───────────────────────────────────────
    monthly_profit:  Dict[str, float]      = field(default_factory=dict)
    trades:          List[Dict[str, Any]]  = field(default_factory=list)

    @property
    def win_rate(self) -> float:
        if self.total_trades == 0:
            return math.nan
        return self.winning_trades / self.total_trades

    @property
    def win_rate_display(self) -> str:
        wr = self.win_rate
        return "n/a" if math.isnan(wr) else f"{wr * 100:.2f}%"

    # ── Dict-style access ────────────────────────────────────────────────

    def get(self, key: str, default: Any = None) -> Any:
        actual = _ALIASES.get(key, key)
        return getattr(self, actual, default)

    def __getitem__(self, key: str) -> Any:
        actual = _ALIASES.get(key, key)
        try:
            return getattr(self, actual)
        except AttributeError:
            raise KeyError(key)

    def __contains__(self, key: str) -> bool:
        actual = _ALIASES.get(key, key)
        return hasattr(self, actual)

    def to_dict(self) -> Dict[str, Any]:
        """Flat dict with canonical names (for JSON serialisation)."""
        from dataclasses import asdict
        d = asdict(self)
        wr = self.win_rate
        d["win_rate"] = None if math.isnan(wr) else wr
        return d
