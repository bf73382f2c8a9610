from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Sequence

from dateutil import parser as date_parser

from app.domain import OrderbookSnapshot, OrderbookSummary, OrderLevel

from .numeric import clamp_probability


def _best_bid(levels: Sequence[OrderLevel]) -> float | None:
    if not levels:
        return None
    return max(level.price for level in levels)


def _best_ask(levels: Sequence[OrderLevel]) -> float | None:
    if not levels:
        return None
    return min(level.price for level in levels)


def _isoformat_utc(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_instant(value: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp into an aware UTC datetime, or ``None``.

    Parsing is strict: partial values such as ``"11:30"`` are rejected rather
    than completed from the current date. Naive values are read as UTC.
    """

    if not value:
        return None
    try:
        parsed = date_parser.isoparse(str(value))
    except (ValueError, OverflowError, TypeError):
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def normalize_timestamp(timestamp: str) -> str:
    """Return ``timestamp`` as an ISO instant when it can be understood.

    Epoch milliseconds are tried first, then ISO 8601. Anything else is
    passed through unchanged.
    """

    try:
        millis = float(timestamp)
    except (TypeError, ValueError):
        millis = math.nan

    if math.isfinite(millis) and millis > 0:
        try:
            return _isoformat_utc(datetime.fromtimestamp(millis / 1000, tz=timezone.utc))
        except (OverflowError, OSError, ValueError):
            return timestamp

    parsed = parse_instant(timestamp)
    if parsed is not None:
        return _isoformat_utc(parsed)
    return timestamp


def to_orderbook_snapshot(orderbook: OrderbookSummary) -> OrderbookSnapshot:
    best_bid = _best_bid(orderbook.bids)
    best_ask = _best_ask(orderbook.asks)

    midpoint: float | None = None
    spread_bps: float | None = None
    if best_bid is not None and best_ask is not None:
        midpoint = (best_bid + best_ask) / 2
        if midpoint > 0:
            spread_bps = max(0.0, (best_ask - best_bid) / midpoint * 10_000)

    return OrderbookSnapshot(
        token_id=orderbook.asset_id,
        best_bid=best_bid,
        best_ask=best_ask,
        midpoint=None if midpoint is None else clamp_probability(midpoint),
        spread_bps=spread_bps,
        timestamp=normalize_timestamp(orderbook.timestamp),
    )
