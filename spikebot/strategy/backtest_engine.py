"""
Spike backtest engine: one symbol, one candle series, one ledger.

    for i in 1 .. n-1:
        signal = detect(series, i, threshold)
        if signal:
            outcome = resolve(series, i, signal, ledger.balance)
            ledger.record(outcome)

The scan resumes at i+1 after every spike, even when the previous trade's
simulated exit lies further ahead.  Trades therefore overlap in simulated
time; each one is sized off the balance left by all trades recorded before
it.

Performance: every spike triggers a forward scan that can run to the end of
the data, so a very volatile series costs O(n²) in the worst case.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from spikebot.execution.ledger import AccountLedger
from spikebot.execution.trade_journal import TradeJournal
from . import spike_config as _cfg
from .backtest_schema import Summary
from .candles import Candle, EmptySeries, InvalidPriceData, require_tradeable, series_span
from .spike_detector import detect
from .trade_simulator import EXIT_END_OF_DATA, EXIT_STOP, EXIT_TARGET, TradeOutcome, resolve

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BacktestConfig:
    timeframe:       str   = "5m"     # informational only
    threshold:       float = 0.01
    initial_balance: float = 1_000.0

    def __post_init__(self):
        if self.threshold <= 0:
            raise ValueError(f"BacktestConfig: threshold must be positive, got {self.threshold}")

    @classmethod
    def from_levers(cls) -> "BacktestConfig":
        """Snapshot of spike_config as it stands (after any apply_levers())."""
        return cls(
            timeframe=_cfg.TIMEFRAME,
            threshold=_cfg.SPIKE_THRESHOLD,
            initial_balance=_cfg.INITIAL_BALANCE,
        )


def run(
    series: Sequence[Candle],
    config: BacktestConfig,
    symbol: str = "",
    journal: Optional[TradeJournal] = None,
) -> Summary:
    """
    Backtest the spike-reversal rule over *series*.

    Fewer than two candles returns a zero-trade Summary.  An index whose
    prices are not positive is logged, recorded in skipped_indices and
    skipped; the run carries on.
    """
    ledger = AccountLedger(config.initial_balance)
    summary = Summary(
        symbol=symbol,
        timeframe=config.timeframe,
        threshold=config.threshold,
        n_candles=len(series),
        initial_balance=config.initial_balance,
    )

    try:
        require_tradeable(series)
    except EmptySeries as e:
        logger.warning(f"{symbol or 'series'}: {e}: zero-trade summary")
        return _finish(summary, ledger)

    logger.info(
        f"{symbol}: backtesting {len(series)} {config.timeframe} candles "
        f"({series_span(series)}), threshold {config.threshold:.2%}, "
        f"balance {config.initial_balance:,.2f}"
    )

    for i in range(1, len(series)):
        try:
            signal = detect(series, i, config.threshold)
            if signal is None:
                continue
            _log_spike(symbol, series, signal, journal)
            outcome = resolve(series, i, signal, ledger.balance)
        except InvalidPriceData as e:
            logger.warning(f"{symbol}: skipping index {i}: {e}")
            summary.skipped_indices.append(i)
            if journal:
                journal.log_invalid_price(symbol, i, str(e))
            continue

        ledger.record(outcome)
        _log_outcome(symbol, outcome, journal)

    return _finish(summary, ledger)


def _finish(summary: Summary, ledger: AccountLedger) -> Summary:
    summary.final_balance  = ledger.balance
    summary.total_trades   = ledger.total_trades
    summary.winning_trades = ledger.winning_trades
    summary.losing_trades  = ledger.losing_trades
    summary.return_pct     = ledger.return_pct
    summary.max_dd_pct     = ledger.max_drawdown_pct
    summary.monthly_profit = dict(ledger.monthly_profit)
    summary.trades         = [o.to_dict() for o in ledger.history]
    summary.n_target       = sum(1 for o in ledger.history if o.exit_reason == EXIT_TARGET)
    summary.n_stop         = sum(1 for o in ledger.history if o.exit_reason == EXIT_STOP)
    summary.n_end_of_data  = sum(1 for o in ledger.history if o.exit_reason == EXIT_END_OF_DATA)
    return summary


# ── Event stream ──────────────────────────────────────────────────────────────

def _log_spike(symbol, series, signal, journal):
    candle = series[signal.index]
    prev = series[signal.index - 1]
    logger.info(
        f"[{signal.direction.label}] Price spike on {candle.dt:%Y-%m-%d %H:%M} in {symbol}! "
        f"Previous: {prev.close}, Current: {candle.close}, "
        f"Change: {signal.relative_change * 100:.2f}%, Volume: {candle.volume}"
    )
    if journal:
        journal.log_spike_detected(
            symbol=symbol,
            timestamp=candle.timestamp,
            direction=signal.direction.value,
            previous_close=prev.close,
            current_close=candle.close,
            relative_change=signal.relative_change,
            volume=candle.volume,
        )


def _log_outcome(symbol: str, outcome: TradeOutcome, journal: Optional[TradeJournal]):
    side = outcome.trade.direction.label
    when = datetime.fromtimestamp(outcome.exit_timestamp / 1000, tz=timezone.utc)
    if outcome.exit_reason == EXIT_TARGET:
        tag = f"[{side} WIN] Take profit hit"
    elif outcome.exit_reason == EXIT_STOP:
        tag = f"[{side} LOSS] Stop loss hit"
    else:
        tag = f"[{side} END OF DATA] Position closed at end of data"
    logger.info(
        f"{tag} on {when:%Y-%m-%d %H:%M} in {symbol}. Entry: {outcome.trade.entry_price}, "
        f"Exit: {outcome.exit_price}, P&L: {outcome.profit:+.2f}, "
        f"Balance: {outcome.new_balance:.2f}"
    )
    if journal:
        journal.log_trade_closed(symbol, outcome.to_dict())
