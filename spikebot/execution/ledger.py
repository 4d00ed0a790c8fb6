"""
spikebot/execution/ledger.py
============================
AccountLedger: running balance + trade counters for ONE backtest run.

Design rules
------------
- record() is the only mutator.  Outcomes arrive in chronological order,
  one per spike, never concurrently.
- A zero-profit trade counts as a LOSS (only profit > 0 is a win).
- monthly_profit is insertion-ordered: months appear in the order their
  first trade closed, not sorted.
- peak_balance only ever increases (watermark logic).

Invariants
----------
    balance      == initial_balance + sum(o.profit for o in history)
    total_trades == winning_trades + losing_trades
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List

from spikebot.strategy.trade_simulator import TradeOutcome

logger = logging.getLogger(__name__)


class AccountLedger:
    """
    Attributes
    ----------
    balance : float
        Current balance; starts at initial_balance.
    peak_balance : float
        High-water mark of balance.
    max_drawdown_pct : float
        Worst peak-to-trough drop seen so far, in percent (≥ 0).
    monthly_profit : Dict[str, float]
        "YYYY-MM" → summed signed profit of trades that EXITED that month.
    history : List[TradeOutcome]
        Every recorded outcome, in record order.
    """

    def __init__(self, initial_balance: float):
        self.initial_balance: float = float(initial_balance)
        self.balance: float = self.initial_balance
        self.peak_balance: float = self.initial_balance
        self.max_drawdown_pct: float = 0.0
        self.total_trades: int = 0
        self.winning_trades: int = 0
        self.losing_trades: int = 0
        self.monthly_profit: Dict[str, float] = {}
        self.history: List[TradeOutcome] = []

    # ── Mutation ──────────────────────────────────────────────────────────────

    def record(self, outcome: TradeOutcome) -> None:
        profit = outcome.profit
        self.total_trades += 1
        if outcome.is_win:
            self.winning_trades += 1
        else:
            self.losing_trades += 1

        self.monthly_profit[outcome.month_key] = (
            self.monthly_profit.get(outcome.month_key, 0.0) + profit
        )
        self.balance += profit
        self.history.append(outcome)

        if self.balance > self.peak_balance:
            self.peak_balance = self.balance
        elif self.peak_balance > 0:
            dd = (self.peak_balance - self.balance) / self.peak_balance * 100
            if dd > self.max_drawdown_pct:
                self.max_drawdown_pct = dd

        logger.debug(
            f"Ledger: {profit:+,.2f} → balance {self.balance:,.2f} "
            f"({self.winning_trades}W/{self.losing_trades}L)"
        )

    # ── Queries ───────────────────────────────────────────────────────────────

    @property
    def win_rate(self) -> float:
        """winning/total as a fraction; NaN when no trades were recorded."""
        if self.total_trades == 0:
            return math.nan
        return self.winning_trades / self.total_trades

    @property
    def net_profit(self) -> float:
        return self.balance - self.initial_balance

    @property
    def return_pct(self) -> float:
        if self.initial_balance == 0:
            return 0.0
        return self.net_profit / self.initial_balance * 100

    def __repr__(self) -> str:
        return (
            f"AccountLedger(balance={self.balance:,.2f}, trades={self.total_trades}, "
            f"wins={self.winning_trades}, losses={self.losing_trades})"
        )
