"""Read-only market and event listings over the Polymarket Gamma API."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Iterable, Sequence

from app.domain import Market, PolymarketEvent
from ingestion.client import ListEventsParams, ListMarketsParams, PolymarketClient

DEFAULT_LIST_LIMIT = 20
MAX_LIST_LIMIT = 100
DISCLAIMER = "Educational analysis only. This output is informational and not investment advice."


class InvalidQueryError(ValueError):
    """Listing parameters rejected before any upstream request is made."""


def normalize_query(value: str | None) -> str | None:
    if not value:
        return None
    normalized = value.strip().lower()
    return normalized or None


def matches_query(query: str | None, *fields: str | None) -> bool:
    """True when every whitespace-separated term appears in the joined fields."""

    if not query:
        return True
    haystack = " ".join(item or "" for item in fields).lower()
    return all(term in haystack for term in query.split())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _require_limit(value: int, maximum: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidQueryError("limit must be a positive integer.")
    if value > maximum:
        raise InvalidQueryError(f"limit must be <= {maximum}.")
    return value


def _require_non_negative(*values: float) -> None:
    for value in values:
        if not math.isfinite(value) or value < 0:
            raise InvalidQueryError("minVolume and minLiquidity must be non-negative numbers.")


@dataclass(slots=True)
class MarketQuery:
    query: str | None = None
    limit: int = DEFAULT_LIST_LIMIT
    min_volume: float = 0.0
    min_liquidity: float = 0.0
    active_only: bool = True
    accepting_orders_only: bool = True
    require_token_ids: bool = True


@dataclass(slots=True)
class EventQuery:
    query: str | None = None
    limit: int = DEFAULT_LIST_LIMIT
    min_volume: float = 0.0
    min_liquidity: float = 0.0


@dataclass(slots=True)
class MarketSnapshot:
    market: Market
    midpoint: float | None
    spread_bps: float | None


@dataclass(slots=True)
class ActiveEvent:
    event: PolymarketEvent
    market_count: int
    open_markets: int
    accepting_order_markets: int


@dataclass(slots=True)
class MarketQueryResult:
    query: str | None
    generated_at: str
    parameters: MarketQuery
    markets: Sequence[MarketSnapshot] = field(default_factory=list)
    disclaimer: str = DISCLAIMER


@dataclass(slots=True)
class EventQueryResult:
    query: str | None
    generated_at: str
    parameters: EventQuery
    events: Sequence[ActiveEvent] = field(default_factory=list)
    disclaimer: str = DISCLAIMER


def to_market_snapshot(market: Market) -> MarketSnapshot:
    midpoint: float | None = None
    if market.best_bid is not None and market.best_ask is not None:
        midpoint = (market.best_bid + market.best_ask) / 2

    if market.spread is not None:
        spread_bps: float | None = max(0.0, market.spread * 10_000)
    elif midpoint is not None and midpoint > 0:
        spread_bps = max(0.0, (market.best_ask - market.best_bid) / midpoint * 10_000)
    else:
        spread_bps = None

    return MarketSnapshot(market=market, midpoint=midpoint, spread_bps=spread_bps)


def to_active_event(event: PolymarketEvent) -> ActiveEvent:
    return ActiveEvent(
        event=event,
        market_count=len(event.markets),
        open_markets=sum(1 for market in event.markets if not market.closed),
        accepting_order_markets=sum(1 for market in event.markets if market.accepting_orders),
    )


def _filter_markets(markets: Iterable[Market], query: MarketQuery) -> list[Market]:
    selected: list[Market] = []
    for market in markets:
        if not matches_query(query.query, market.question, market.slug):
            continue
        if query.active_only and not (market.active and not market.closed):
            continue
        if query.accepting_orders_only and not market.accepting_orders:
            continue
        if query.require_token_ids and not market.clob_token_ids:
            continue
        selected.append(market)
    return selected


class MarketService:
    """Listing facade used by the API and the CLI."""

    def __init__(self, client: PolymarketClient):
        self._client = client

    def list_markets(self, query: MarketQuery) -> MarketQueryResult:
        _require_limit(query.limit, MAX_LIST_LIMIT)
        _require_non_negative(query.min_volume, query.min_liquidity)
        query = replace(query, query=normalize_query(query.query))
        generated_at = utc_now_iso()

        markets = self._client.list_markets(
            ListMarketsParams(
                limit=query.limit,
                closed=False if query.active_only else None,
                min_volume=query.min_volume,
                min_liquidity=query.min_liquidity,
            )
        )
        snapshots = [to_market_snapshot(market) for market in _filter_markets(markets, query)]
        return MarketQueryResult(
            query=query.query,
            generated_at=generated_at,
            parameters=query,
            markets=snapshots,
        )

    def list_active_events(self, query: EventQuery) -> EventQueryResult:
        _require_limit(query.limit, MAX_LIST_LIMIT)
        _require_non_negative(query.min_volume, query.min_liquidity)
        query = replace(query, query=normalize_query(query.query))
        generated_at = utc_now_iso()

        events = self._client.list_events(
            ListEventsParams(
                limit=query.limit,
                active=True,
                closed=False,
                min_volume=query.min_volume,
                min_liquidity=query.min_liquidity,
            )
        )
        selected = [
            to_active_event(event)
            for event in events
            if event.active and not event.closed and matches_query(query.query, event.title, event.slug)
        ]
        return EventQueryResult(
            query=query.query,
            generated_at=generated_at,
            parameters=query,
            events=selected,
        )
