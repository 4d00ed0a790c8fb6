"""
One live scan pass: check the latest two candles of every liquid
QUOTE_CURRENCY market and report spikes / order requests.

No orders are placed.  Schedule this (cron, systemd timer) to poll.

Usage:
    python3 -m scripts.spike_scan
    python3 -m scripts.spike_scan --symbols BTC/USDT SOL/USDT --journal
"""
import argparse
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from spikebot.exchange.ccxt_feed import CandleFeed
from spikebot.execution.notifier import Notifier
from spikebot.execution.trade_journal import JOURNAL_PATH, TradeJournal
from spikebot.strategy.live_signal import scan_symbols

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
)
logger = logging.getLogger('spike_scan')


def main(argv=None) -> int:
    p = argparse.ArgumentParser(description="One live spike scan pass")
    p.add_argument("--symbols", nargs="*", default=None)
    p.add_argument("--threshold", type=float, default=None)
    p.add_argument("--journal", nargs="?", const=str(JOURNAL_PATH), default=None)
    args = p.parse_args(argv)

    journal = TradeJournal(args.journal) if args.journal else None
    spikes = scan_symbols(
        CandleFeed(), Notifier(), symbols=args.symbols,
        threshold=args.threshold, journal=journal,
    )
    for s in spikes:
        print(s.message + (" → order request" if s.order else ""))
    return 0


if __name__ == "__main__":
    sys.exit(main())
