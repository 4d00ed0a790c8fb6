"""
Spike reversal backtest: every QUOTE_CURRENCY market (or a chosen few).

For each symbol: fetch all candles since --since, run the spike engine with
a fresh ledger, print the summary.  Symbols run one after another; a symbol
whose fetch fails is logged and skipped.

Usage:
    python3 -m backtesting.spike_backtest
    python3 -m backtesting.spike_backtest --symbols BTC/USDT ETH/USDT --threshold 0.015
    python3 -m backtesting.spike_backtest --symbols SOL/USDT --lever INITIAL_BALANCE=5000 --journal
"""

import argparse
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import ccxt

from spikebot.exchange.ccxt_feed import CandleFeed, since_ms
from spikebot.execution.notifier import Notifier
from spikebot.execution.trade_journal import JOURNAL_PATH, TradeJournal
from spikebot.strategy import spike_config as _cfg
from spikebot.strategy.backtest_engine import BacktestConfig, run
from spikebot.strategy.backtest_schema import Summary
from spikebot.strategy.candles import build_series

LOG_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'logs')

logger = logging.getLogger('spike_backtest')


def setup_logging(verbose: bool = False):
    os.makedirs(LOG_DIR, exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[
            logging.FileHandler(os.path.join(LOG_DIR, 'spike_backtest.log')),
            logging.StreamHandler(sys.stdout),
        ]
    )


def format_summary(summary: Summary) -> str:
    s = summary.symbol
    lines = [
        f"Final balance for {s}: {summary.final_balance:.2f}",
        f"Total trades for {s}: {summary.total_trades}",
        f"Winning trades for {s}: {summary.winning_trades}",
        f"Losing trades for {s}: {summary.losing_trades}",
        f"Win rate for {s}: {summary.win_rate_display}",
        f"Return / max DD for {s}: {summary.return_pct:+.2f}% / {summary.max_dd_pct:.2f}%",
        f"Monthly profit for {s}:",
    ]
    for month, pnl in summary.monthly_profit.items():
        lines.append(f"  {month}: {pnl:.2f}")
    if summary.skipped_indices:
        lines.append(f"Skipped {len(summary.skipped_indices)} index(es) with invalid prices")
    return "\n".join(lines)


def backtest_symbol(feed, symbol, config, since, journal=None) -> Summary:
    rows = feed.fetch_all_ohlcv(symbol, config.timeframe, since)
    logger.info(f"Total data points fetched for {symbol}: {len(rows)}")
    return run(build_series(rows), config, symbol=symbol, journal=journal)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Spike reversal backtest")
    p.add_argument("--symbols", nargs="*", default=None,
                   help="e.g. BTC/USDT ETH/USDT (default: every QUOTE_CURRENCY market)")
    p.add_argument("--timeframe", default=None, help=f"default {_cfg.TIMEFRAME}")
    p.add_argument("--since", default=None, help=f"YYYY-MM-DD, default {_cfg.BACKTEST_SINCE}")
    p.add_argument("--threshold", type=float, default=None,
                   help=f"spike threshold fraction, default {_cfg.SPIKE_THRESHOLD}")
    p.add_argument("--balance", type=float, default=None,
                   help=f"initial balance, default {_cfg.INITIAL_BALANCE}")
    p.add_argument("--lever", action="append", default=[], metavar="KEY=VAL",
                   help="override any spike_config constant (repeatable)")
    p.add_argument("--journal", nargs="?", const=str(JOURNAL_PATH), default=None,
                   help="append events to a JSONL journal (default path if no value)")
    p.add_argument("--notify", action="store_true", help="send each summary via Telegram")
    p.add_argument("-v", "--verbose", action="store_true")
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)

    levers = _cfg.parse_lever_args(args.lever)
    if args.timeframe:
        levers["TIMEFRAME"] = args.timeframe
    if args.since:
        levers["BACKTEST_SINCE"] = args.since
    if args.threshold is not None:
        levers["SPIKE_THRESHOLD"] = args.threshold
    if args.balance is not None:
        levers["INITIAL_BALANCE"] = args.balance
    if levers:
        logger.info(f"Levers applied: {_cfg.apply_levers(levers)}")

    config = BacktestConfig.from_levers()
    since = since_ms(_cfg.BACKTEST_SINCE)
    tags = _cfg.get_model_tags()
    journal = TradeJournal(args.journal) if args.journal else None
    notifier = Notifier() if args.notify else None

    feed = CandleFeed()
    symbols = args.symbols or feed.quote_symbols()
    logger.info(f"Backtesting {len(symbols)} symbol(s) | {' '.join(tags)}")

    done = 0
    for symbol in symbols:
        logger.info(f"Starting backtest for {symbol}...")
        try:
            summary = backtest_symbol(feed, symbol, config, since, journal)
        except ccxt.BaseError as e:
            logger.error(f"Error fetching data for {symbol}: {e}")
            continue
        print(format_summary(summary))
        if journal:
            journal.log_backtest_summary(summary.to_dict(), tags)
        if notifier:
            notifier.send_backtest_summary(summary)
        done += 1

    logger.info(f"Finished {done}/{len(symbols)} symbol(s)")
    return 0 if done or not symbols else 1


if __name__ == "__main__":
    sys.exit(main())
