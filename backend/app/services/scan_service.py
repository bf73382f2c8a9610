"""Scan Polymarket listings for potentially mispriced contracts.

The service is the I/O side of the scoring engine: it lists candidate
markets, fetches one order book per market through a bounded worker pool,
groups siblings by event, and hands everything to
:func:`scoring.rank_mispricing_signals` with a single "now".
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from typing import Callable, Sequence, TypeVar

from loguru import logger

from app.core.config import Settings, get_settings
from app.domain import Market, MispricingSignal, MispricingTrace, OrderbookSnapshot, ScoringCandidate
from ingestion.client import ListMarketsParams, PolymarketApiError, PolymarketClient
from scoring import rank_mispricing_signals, to_orderbook_snapshot, yes_outcome_index
from scoring.momentum import MAX_HORIZON_HOURS, MIN_HORIZON_HOURS

from .market_service import DISCLAIMER, matches_query, normalize_query, utc_now_iso

T = TypeVar("T")
U = TypeVar("U")


class InvalidScanParameters(ValueError):
    """Scan parameters rejected before any scoring work begins."""


@dataclass(slots=True)
class ScanRequest:
    query: str | None = None
    limit: int | None = None
    min_volume: float | None = None
    max_spread_bps: float | None = None
    time_horizon_hours: float | None = None
    concurrency: int | None = None
    include_trace: bool = False


@dataclass(slots=True)
class ScanParameters:
    limit: int
    min_volume: float
    max_spread_bps: float
    time_horizon_hours: float
    concurrency: int


@dataclass(slots=True)
class ScanReport:
    query: str | None
    generated_at: str
    parameters: ScanParameters
    scanned_markets: int
    opportunities: list[MispricingSignal]
    warnings: list[str] = field(default_factory=list)
    trace: list[MispricingTrace] | None = None
    disclaimer: str = DISCLAIMER

    @property
    def returned_signals(self) -> int:
        return len(self.opportunities)


def _positive_int(value: int | None, fallback: int, maximum: int) -> int:
    resolved = fallback if value is None else value
    if isinstance(resolved, bool) or not isinstance(resolved, int) or resolved <= 0:
        raise InvalidScanParameters("limit and concurrency must be positive integers.")
    return min(resolved, maximum)


def _positive_number(value: float | None, fallback: float, message: str) -> float:
    resolved = fallback if value is None else value
    if not math.isfinite(resolved) or resolved <= 0:
        raise InvalidScanParameters(message)
    return float(resolved)


def resolve_scan_parameters(request: ScanRequest, settings: Settings) -> ScanParameters:
    limit = _positive_int(request.limit, settings.scan_default_limit, settings.scan_max_limit)
    concurrency = _positive_int(
        request.concurrency, settings.scan_default_concurrency, settings.scan_max_concurrency
    )

    min_volume = 0.0 if request.min_volume is None else request.min_volume
    if not math.isfinite(min_volume) or min_volume < 0:
        raise InvalidScanParameters("minVolume must be a non-negative number.")

    max_spread_bps = _positive_number(
        request.max_spread_bps,
        settings.scan_default_max_spread_bps,
        "maxSpreadBps must be a positive number.",
    )
    time_horizon_hours = _positive_number(
        request.time_horizon_hours,
        settings.scan_default_time_horizon_hours,
        "timeHorizonHours must be a positive number.",
    )

    return ScanParameters(
        limit=limit,
        min_volume=float(min_volume),
        max_spread_bps=max_spread_bps,
        time_horizon_hours=min(MAX_HORIZON_HOURS, max(MIN_HORIZON_HOURS, time_horizon_hours)),
        concurrency=concurrency,
    )


def map_with_concurrency(
    items: Sequence[T], concurrency: int, mapper: Callable[[T, int], U]
) -> list[U]:
    """Apply ``mapper`` with at most ``concurrency`` calls in flight.

    A fixed set of worker threads pulls indices from a shared cursor until the
    input is exhausted. Results are index-aligned with ``items``. ``mapper``
    is expected to handle its own failures.
    """

    if not items:
        return []

    results: list[U | None] = [None] * len(items)
    cursor = 0
    lock = threading.Lock()

    def worker() -> None:
        nonlocal cursor
        while True:
            with lock:
                if cursor >= len(items):
                    return
                index = cursor
                cursor += 1
            results[index] = mapper(items[index], index)

    workers = [
        threading.Thread(target=worker, name=f"orderbook-fetch-{slot}", daemon=True)
        for slot in range(max(1, min(concurrency, len(items))))
    ]
    for thread in workers:
        thread.start()
    for thread in workers:
        thread.join()

    return results  # type: ignore[return-value]


def reference_token_id(market: Market) -> str | None:
    if not market.clob_token_ids:
        return None
    index = yes_outcome_index(market)
    if index < len(market.clob_token_ids) and market.clob_token_ids[index]:
        return market.clob_token_ids[index]
    return market.clob_token_ids[0] or None


def group_by_event_id(markets: Sequence[Market]) -> dict[str, list[Market]]:
    groups: dict[str, list[Market]] = {}
    for market in markets:
        key = (market.event_id or "").strip()
        if not key:
            continue
        groups.setdefault(key, []).append(market)
    return groups


def related_markets_for(groups: dict[str, list[Market]], market: Market) -> list[Market]:
    key = (market.event_id or "").strip()
    if not key:
        return []
    return [peer for peer in groups.get(key, []) if peer.id != market.id]


class ScanService:
    def __init__(self, client: PolymarketClient, settings: Settings | None = None):
        self._client = client
        self._settings = settings or get_settings()

    def _fetch_snapshot(self, market: Market, warnings: list[str]) -> OrderbookSnapshot | None:
        token_id = reference_token_id(market)
        if not token_id:
            warnings.append(f"Skipped {market.id}: missing tokenId.")
            return None

        label = market.slug or market.id
        try:
            return to_orderbook_snapshot(self._client.get_orderbook_summary(token_id))
        except PolymarketApiError as exc:
            logger.warning("Order book fetch failed for {}: {}", label, exc)
            warnings.append(f"Failed orderbook for {label}: {exc}")
        except Exception as exc:  # noqa: BLE001
            # One bad payload must not stop this worker's remaining markets.
            logger.opt(exception=exc).warning("Unexpected order book failure for {}", label)
            warnings.append(f"Failed orderbook for {label}: {exc}")
        return None

    def scan(self, request: ScanRequest, *, now_iso: str | None = None) -> ScanReport:
        parameters = resolve_scan_parameters(request, self._settings)
        query = normalize_query(request.query)
        now_iso = now_iso or utc_now_iso()
        fetch_limit = min(
            self._settings.scan_max_fetch_limit,
            max(parameters.limit * self._settings.scan_fetch_multiplier, 25),
        )

        markets = self._client.list_markets(
            ListMarketsParams(limit=fetch_limit, closed=False, min_volume=parameters.min_volume)
        )
        candidates = [
            market
            for market in markets
            if market.active
            and not market.closed
            and market.accepting_orders
            and market.clob_token_ids
            and matches_query(query, market.question, market.slug)
        ]
        groups = group_by_event_id(candidates)

        warnings: list[str] = []
        snapshots = map_with_concurrency(
            candidates,
            parameters.concurrency,
            lambda market, _index: self._fetch_snapshot(market, warnings),
        )

        scoring_candidates = [
            ScoringCandidate(
                market=market,
                orderbook=snapshots[index],
                related_markets=related_markets_for(groups, market),
            )
            for index, market in enumerate(candidates)
        ]

        ranking = rank_mispricing_signals(
            scoring_candidates,
            now_iso,
            time_horizon_hours=parameters.time_horizon_hours,
            min_volume=parameters.min_volume,
            max_spread_bps=parameters.max_spread_bps,
            limit=parameters.limit,
            include_trace=request.include_trace,
        )

        logger.info(
            "Scanned {} markets, returning {} signals ({} warnings)",
            len(scoring_candidates),
            len(ranking.signals),
            len(warnings),
        )

        return ScanReport(
            query=query,
            generated_at=now_iso,
            parameters=parameters,
            scanned_markets=len(scoring_candidates),
            opportunities=ranking.signals,
            warnings=warnings,
            trace=ranking.traces if request.include_trace else None,
        )
