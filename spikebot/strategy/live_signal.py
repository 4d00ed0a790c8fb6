"""
Live spike signal: the backtest rule applied to the latest two candles.

Only a LONG spike (price fell through the threshold) produces an order
request.  SHORT spikes are alerted but never traded live: the account is
spot-only.

Live levels are symmetric around the entry at ±threshold, unlike the
backtest's half-move target / full-move stop.

Nothing here places an order.  scan_symbols() does one pass over a symbol
list and hands each request to the notifier (and journal): running it on a
schedule is the caller's business.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import List, Optional, Sequence

import ccxt

from . import spike_config as _cfg
from .candles import InvalidPriceData, build_series
from .spike_detector import Direction, SpikeSignal, detect

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderRequest:
    symbol:      str
    side:        str      # 'buy' | 'sell'
    amount:      float    # base units
    price:       float    # reference price (last close)
    take_profit: float
    stop_loss:   float

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class LiveSpike:
    symbol:  str
    signal:  SpikeSignal
    message: str
    order:   Optional[OrderRequest] = None


def build_order_request(
    symbol: str,
    price: float,
    threshold: float,
    order_amount_usd: float,
) -> OrderRequest:
    if price <= 0:
        raise InvalidPriceData(f"{symbol}: cannot size an order at price {price}")
    return OrderRequest(
        symbol=symbol,
        side="buy",
        amount=order_amount_usd / price,
        price=price,
        take_profit=price * (1 + threshold),
        stop_loss=price * (1 - threshold),
    )


def evaluate_window(
    symbol: str,
    candles: Sequence,
    threshold: Optional[float] = None,
    order_amount_usd: Optional[float] = None,
) -> Optional[LiveSpike]:
    """
    *candles*: ccxt rows or dicts, oldest first.  Only the last two are
    compared.  Returns None when there is no spike or fewer than 2 candles.
    """
    threshold = threshold if threshold is not None else _cfg.LIVE_SPIKE_THRESHOLD
    order_amount_usd = (
        order_amount_usd if order_amount_usd is not None else _cfg.LIVE_ORDER_AMOUNT_USD
    )

    series = build_series(candles)
    if len(series) < 2:
        return None

    window = series[-2:]
    signal = detect(window, 1, threshold)
    if signal is None:
        return None

    prev, cur = window
    message = (
        f"[{signal.direction.label}] Price spike detected for {symbol} on "
        f"{cur.dt:%Y-%m-%d %H:%M} UTC! Previous: {prev.close}, Current: {cur.close}, "
        f"Change: {signal.relative_change * 100:.2f}%, Volume: {cur.volume}"
    )

    order = None
    if signal.direction == Direction.LONG:
        order = build_order_request(symbol, cur.close, threshold, order_amount_usd)

    return LiveSpike(symbol=symbol, signal=signal, message=message, order=order)


def scan_symbols(
    feed,
    notifier,
    symbols: Optional[List[str]] = None,
    timeframe: Optional[str] = None,
    threshold: Optional[float] = None,
    journal=None,
) -> List[LiveSpike]:
    """
    One pass over *symbols* (default: every QUOTE_CURRENCY market).

    A symbol is skipped when its 24h quote volume is under
    LIVE_MIN_QUOTE_VOLUME.  Exchange errors are logged per symbol and the
    pass continues.  At most LIVE_MAX_OPEN_ORDERS order requests are emitted;
    spikes past the cap are still alerted.
    """
    timeframe = timeframe or _cfg.TIMEFRAME
    symbols = symbols if symbols is not None else feed.quote_symbols()
    spikes: List[LiveSpike] = []
    n_orders = 0

    for symbol in symbols:
        try:
            volume = feed.quote_volume_24h(symbol)
            if volume < _cfg.LIVE_MIN_QUOTE_VOLUME:
                logger.debug(f"{symbol}: 24h volume {volume:,.0f} under floor, skipped")
                continue
            spike = evaluate_window(symbol, feed.fetch_latest(symbol, timeframe, 2), threshold)
        except (ccxt.BaseError, InvalidPriceData) as e:
            logger.error(f"Error scanning {symbol}: {e}")
            continue

        if spike is None:
            continue

        logger.info(spike.message)
        spikes.append(spike)

        if spike.order is None:
            continue
        if n_orders >= _cfg.LIVE_MAX_OPEN_ORDERS:
            logger.warning(
                f"{symbol}: max order requests ({_cfg.LIVE_MAX_OPEN_ORDERS}) reached this pass"
            )
            notifier.send_spike_alert(spike.message)
            continue

        n_orders += 1
        notifier.send_order_request(spike.order)
        if journal:
            journal.log_order_request(symbol, spike.order.to_dict(), notes=spike.message)

    logger.info(f"Live scan: {len(symbols)} symbols, {len(spikes)} spikes, {n_orders} order requests")
    return spikes
