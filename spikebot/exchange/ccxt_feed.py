"""
Candle feed: ccxt wrapper for OHLCV history and market listings.
Public endpoints only; no API keys, no order methods.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import ccxt
import pandas as pd

from spikebot.strategy import spike_config as _cfg
from spikebot.strategy.candles import OHLCV_COLUMNS

logger = logging.getLogger(__name__)


def since_ms(date_str: str) -> int:
    """"2024-01-01" → ms since epoch at 00:00 UTC."""
    dt = datetime.strptime(date_str, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    return int(dt.timestamp() * 1000)


def to_frame(rows: list) -> pd.DataFrame:
    """ccxt OHLCV rows → DataFrame indexed by UTC datetime."""
    df = pd.DataFrame(rows, columns=OHLCV_COLUMNS)
    df.index = pd.to_datetime(df["timestamp"], unit="ms", utc=True)
    df.index.name = "time"
    return df


class CandleFeed:
    """
    Thin wrapper around a ccxt exchange.  All methods return plain lists /
    dicts / floats.  No business logic here.
    """

    def __init__(self, exchange_id: Optional[str] = None, exchange=None):
        if exchange is not None:
            self._exchange = exchange
        else:
            exchange_id = exchange_id or _cfg.EXCHANGE_ID
            try:
                exchange_cls = getattr(ccxt, exchange_id)
            except AttributeError:
                raise ValueError(f"Unknown ccxt exchange id: {exchange_id}")
            self._exchange = exchange_cls({"enableRateLimit": True})
        logger.info(f"CandleFeed initialized ({getattr(self._exchange, 'id', '?')})")

    # ------------------------------------------------------------------ #
    # Candles                                                              #
    # ------------------------------------------------------------------ #

    def fetch_all_ohlcv(
        self,
        symbol: str,
        timeframe: str,
        since: int,
        limit: Optional[int] = None,
    ) -> list:
        """
        Page forward from *since* (ms) until the exchange runs out of data.
        Each page starts 1 ms after the previous page's last candle; a page
        shorter than *limit* means we reached the present.
        """
        limit = limit or _cfg.OHLCV_PAGE_LIMIT
        rows: list = []
        cursor = since
        while True:
            page = self._exchange.fetch_ohlcv(symbol, timeframe, cursor, limit)
            if not page:
                break
            rows.extend(page)
            cursor = page[-1][0] + 1
            if len(page) < limit:
                break
        logger.info(f"Fetched {len(rows)} {timeframe} candles for {symbol}")
        return rows

    def fetch_latest(self, symbol: str, timeframe: str, n: int = 2) -> list:
        """The last *n* candles (the newest one may still be forming)."""
        return self._exchange.fetch_ohlcv(symbol, timeframe, None, n)

    # ------------------------------------------------------------------ #
    # Markets                                                              #
    # ------------------------------------------------------------------ #

    def quote_symbols(self, quote: Optional[str] = None) -> list:
        """All market symbols quoted in *quote*, e.g. "BTC/USDT"."""
        quote = quote or _cfg.QUOTE_CURRENCY
        markets = self._exchange.load_markets()
        suffix = f"/{quote}"
        return [s for s in markets if s.endswith(suffix)]

    def quote_volume_24h(self, symbol: str) -> float:
        """24h volume in quote currency; 0.0 when the ticker has none."""
        try:
            ticker = self._exchange.fetch_ticker(symbol)
        except ccxt.BaseError as e:
            logger.error(f"fetch_ticker failed for {symbol}: {e}")
            return 0.0
        return float(ticker.get("quoteVolume") or 0.0)
