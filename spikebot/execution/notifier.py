"""
Notifier: Sends spike alerts and backtest summaries via Telegram.

Configure in <repo>/.env:
  TELEGRAM_BOT_TOKEN=<bot token from @BotFather>
  TELEGRAM_CHAT_ID=<chat id>

Message types:
  send()                 : raw message
  send_spike_alert()     : live spike detected (either direction)
  send_order_request()   : LONG spike → order request produced (not placed)
  send_backtest_summary(): end-of-run summary for one symbol
"""
import os
import logging
from pathlib import Path
from typing import Optional

import requests
from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parents[2] / ".env")

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"


class Notifier:
    def __init__(
        self,
        bot_token: Optional[str] = None,
        chat_id:   Optional[str] = None,
    ):
        self.bot_token = bot_token or os.getenv("TELEGRAM_BOT_TOKEN")
        self.chat_id   = chat_id   or os.getenv("TELEGRAM_CHAT_ID")
        self._ok       = bool(self.bot_token and self.chat_id)

        if self._ok:
            logger.info(f"Notifier: Telegram ready (chat={self.chat_id})")
        else:
            logger.warning(
                "Notifier: TELEGRAM_BOT_TOKEN / TELEGRAM_CHAT_ID not set: alerts will only log."
            )

    @property
    def enabled(self) -> bool:
        return self._ok

    # ── Core Send ─────────────────────────────────────────────────────

    def send(self, message: str, parse_mode: str = "HTML") -> bool:
        logger.info(f"[ALERT] {message}")
        if not self._ok:
            return False
        try:
            resp = requests.post(
                f"{TELEGRAM_API}/bot{self.bot_token}/sendMessage",
                json={
                    "chat_id":    self.chat_id,
                    "text":       message,
                    "parse_mode": parse_mode,
                },
                timeout=10,
            )
            if resp.status_code == 200:
                return True
            logger.error(f"Telegram send failed: {resp.status_code} {resp.text[:200]}")
            return False
        except requests.RequestException as e:
            logger.error(f"Telegram send error: {e}")
            return False

    # ── Live alerts ───────────────────────────────────────────────────

    def send_spike_alert(self, message: str) -> bool:
        return self.send(f"<b>⚡ SPIKE</b>\n{message}")

    def send_order_request(self, order) -> bool:
        """*order* is a live_signal.OrderRequest."""
        return self.send(
            f"<b>✅ Order Request</b> [not placed]\n\n"
            f"  Symbol:      <b>{order.symbol}</b>\n"
            f"  Side:        <b>{order.side.upper()}</b>\n"
            f"  Amount:      {order.amount:.8g}\n"
            f"  Price:       {order.price:.8g}\n"
            f"  Take Profit: {order.take_profit:.8g}\n"
            f"  Stop Loss:   {order.stop_loss:.8g}"
        )

    # ── Backtest ──────────────────────────────────────────────────────

    def send_backtest_summary(self, summary) -> bool:
        """*summary* is a backtest_schema.Summary."""
        lines = [
            f"<b>📊 Backtest: {summary.symbol}</b> ({summary.timeframe})",
            f"  Final balance: <b>{summary.final_balance:,.2f}</b> "
            f"({summary.return_pct:+.2f}%)",
            f"  Trades: {summary.total_trades}  |  "
            f"{summary.winning_trades}W / {summary.losing_trades}L  |  "
            f"WR {summary.win_rate_display}",
            f"  Max DD: {summary.max_dd_pct:.1f}%",
        ]
        if summary.monthly_profit:
            lines.append("\n<b>Monthly:</b>")
            for month, pnl in summary.monthly_profit.items():
                lines.append(f"  {month}: {pnl:+,.2f}")
        return self.send("\n".join(lines))
