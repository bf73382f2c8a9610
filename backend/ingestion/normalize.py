from __future__ import annotations

import json
import math
from typing import Any, Callable, TypeVar

from app.domain import Market, OrderbookSummary, OrderLevel, PolymarketEvent

T = TypeVar("T")


def is_record(value: Any) -> bool:
    return isinstance(value, dict)


def as_string(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def as_boolean(value: Any, fallback: bool = False) -> bool:
    return value if isinstance(value, bool) else fallback


def as_number(value: Any) -> float | None:
    """Coerce finite numbers and numeric strings; everything else is ``None``."""

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str) and value:
        try:
            parsed = float(value)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def _as_list(value: Any) -> list[Any]:
    """Return value as a list when possible, decoding JSON strings."""
    if isinstance(value, list):
        return value
    if isinstance(value, str) and value:
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return []
        return parsed if isinstance(parsed, list) else []
    return []


def _coerce_items(value: Any, coerce: Callable[[Any], T | None]) -> list[T]:
    items: list[T] = []
    for item in _as_list(value):
        coerced = coerce(item)
        if coerced is not None:
            items.append(coerced)
    return items


def _first_number(*values: Any) -> float | None:
    for value in values:
        parsed = as_number(value)
        if parsed is not None:
            return parsed
    return None


def normalize_market(raw_market: dict[str, Any]) -> Market:
    events = [item for item in _as_list(raw_market.get("events")) if is_record(item)]
    event_id = as_string(events[0].get("id")) if events else None

    return Market(
        id=as_string(raw_market.get("id")) or "",
        condition_id=as_string(raw_market.get("conditionId")),
        slug=as_string(raw_market.get("slug")),
        question=as_string(raw_market.get("question")),
        event_id=event_id,
        outcomes=_coerce_items(raw_market.get("outcomes"), as_string),
        outcome_prices=_coerce_items(raw_market.get("outcomePrices"), as_number),
        active=as_boolean(raw_market.get("active")),
        closed=as_boolean(raw_market.get("closed")),
        accepting_orders=as_boolean(raw_market.get("acceptingOrders")),
        end_date=as_string(raw_market.get("endDateIso")) or as_string(raw_market.get("endDate")),
        volume=_first_number(raw_market.get("volumeNum"), raw_market.get("volume")),
        volume_24hr=as_number(raw_market.get("volume24hr")),
        liquidity=_first_number(raw_market.get("liquidityNum"), raw_market.get("liquidity")),
        best_bid=as_number(raw_market.get("bestBid")),
        best_ask=as_number(raw_market.get("bestAsk")),
        spread=as_number(raw_market.get("spread")),
        one_hour_price_change=as_number(raw_market.get("oneHourPriceChange")),
        one_day_price_change=as_number(raw_market.get("oneDayPriceChange")),
        one_week_price_change=as_number(raw_market.get("oneWeekPriceChange")),
        one_month_price_change=as_number(raw_market.get("oneMonthPriceChange")),
        last_trade_price=as_number(raw_market.get("lastTradePrice")),
        clob_token_ids=_coerce_items(raw_market.get("clobTokenIds"), as_string),
    )


def normalize_event(raw_event: dict[str, Any]) -> PolymarketEvent:
    markets = [
        normalize_market(item) for item in _as_list(raw_event.get("markets")) if is_record(item)
    ]

    return PolymarketEvent(
        id=as_string(raw_event.get("id")) or "",
        slug=as_string(raw_event.get("slug")),
        title=as_string(raw_event.get("title")),
        description=as_string(raw_event.get("description")),
        active=as_boolean(raw_event.get("active")),
        closed=as_boolean(raw_event.get("closed")),
        end_date=as_string(raw_event.get("endDate")),
        volume=as_number(raw_event.get("volume")),
        volume_24hr=as_number(raw_event.get("volume24hr")),
        liquidity=as_number(raw_event.get("liquidity")),
        markets=markets,
    )


def _normalize_order_levels(payload: Any) -> list[OrderLevel]:
    if not isinstance(payload, list):
        return []

    levels: list[OrderLevel] = []
    for entry in payload:
        if not is_record(entry):
            continue
        price = as_number(entry.get("price"))
        size = as_number(entry.get("size"))
        if price is None or size is None:
            continue
        levels.append(OrderLevel(price=price, size=size))
    return levels


def normalize_orderbook_summary(
    raw_book: dict[str, Any], token_id: str, *, fallback_timestamp: str
) -> OrderbookSummary:
    """Build an :class:`OrderbookSummary` from a CLOB ``/book`` payload.

    ``fallback_timestamp`` is used when the payload carries no timestamp.
    """

    bids = _normalize_order_levels(raw_book.get("bids"))
    asks = _normalize_order_levels(raw_book.get("asks"))

    return OrderbookSummary(
        market=as_string(raw_book.get("market")) or "",
        asset_id=as_string(raw_book.get("asset_id")) or token_id,
        timestamp=as_string(raw_book.get("timestamp")) or fallback_timestamp,
        hash=as_string(raw_book.get("hash")) or "",
        bids=bids,
        asks=asks,
        best_bid=bids[0].price if bids else None,
        best_ask=asks[0].price if asks else None,
        min_order_size=as_number(raw_book.get("min_order_size")),
        tick_size=as_number(raw_book.get("tick_size")),
        neg_risk=as_boolean(raw_book.get("neg_risk")),
    )
