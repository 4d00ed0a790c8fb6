"""
Trade Journal: Structured event log for every backtest / live decision.

Format: JSON Lines (.jsonl): one JSON object per line.
File: <repo>/logs/spike_journal.jsonl (override with path=...)

Events:
  SPIKE_DETECTED   : a candle pair crossed the threshold
  TRADE_CLOSED     : simulated position resolved (target / stop / end of data)
  INVALID_PRICE    : index skipped because a price was not positive
  ORDER_REQUEST    : live path produced an order request (not placed)
  BACKTEST_SUMMARY : one per symbol at the end of a run
"""
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

JOURNAL_PATH = Path(__file__).resolve().parents[2] / "logs" / "spike_journal.jsonl"


def _iso(ts_ms: int) -> str:
    return datetime.fromtimestamp(ts_ms / 1000, tz=timezone.utc).isoformat()


class TradeJournal:
    """
    Append-only journal. Safe for single-process use.
    """

    def __init__(self, path: Path = JOURNAL_PATH):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    # ── Write ─────────────────────────────────────────────────────────

    def _write(self, entry: dict):
        entry.setdefault("logged_at", datetime.now(timezone.utc).isoformat())
        with open(self.path, "a") as f:
            f.write(json.dumps(entry) + "\n")
        logger.debug(f"[JOURNAL] {entry['event']} | {entry.get('symbol', '?')}")

    def log_spike_detected(
        self,
        symbol: str,
        timestamp: int,
        direction: str,
        previous_close: float,
        current_close: float,
        relative_change: float,
        volume: float,
    ):
        self._write({
            "event": "SPIKE_DETECTED",
            "symbol": symbol,
            "candle_time": _iso(timestamp),
            "direction": direction,
            "previous_close": previous_close,
            "current_close": current_close,
            "change_pct": round(relative_change * 100, 4),
            "volume": volume,
        })

    def log_trade_closed(self, symbol: str, trade: Dict[str, Any]):
        """*trade* is TradeOutcome.to_dict()."""
        self._write({
            "event": "TRADE_CLOSED",
            "symbol": symbol,
            "exit_time": _iso(trade["exit_timestamp"]),
            **trade,
        })

    def log_invalid_price(self, symbol: str, index: int, reason: str):
        self._write({
            "event": "INVALID_PRICE",
            "symbol": symbol,
            "index": index,
            "notes": reason,
        })

    def log_order_request(self, symbol: str, order: Dict[str, Any], notes: str = ""):
        self._write({
            "event": "ORDER_REQUEST",
            "symbol": symbol,
            **order,
            "notes": notes,
        })

    def log_backtest_summary(self, summary: Dict[str, Any], tags: Optional[List[str]] = None):
        """*summary* is Summary.to_dict(); per-trade rows are already journaled."""
        row = {k: v for k, v in summary.items() if k != "trades"}
        self._write({
            "event": "BACKTEST_SUMMARY",
            "tags": tags or [],
            **row,
        })

    # ── Read ──────────────────────────────────────────────────────────

    def read_all(self, event: Optional[str] = None) -> List[dict]:
        """All journal entries, optionally filtered by event type."""
        if not self.path.exists():
            return []
        entries = []
        with open(self.path) as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    e = json.loads(line)
                except json.JSONDecodeError:
                    logger.warning(f"TradeJournal: skipping unreadable line in {self.path}")
                    continue
                if event is None or e.get("event") == event:
                    entries.append(e)
        return entries
