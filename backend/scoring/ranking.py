from __future__ import annotations

import math
from typing import Iterable

from app.domain import RankingResult, ScoredCandidate, ScoringCandidate

from .composite import score_mispricing_candidate
from .numeric import SCORE_EPSILON
from .probability import resolve_spread_bps

DEFAULT_TIME_HORIZON_HOURS = 24.0
DEFAULT_LIMIT = 20


def _sort_key(item: ScoredCandidate) -> tuple[float, float, str]:
    signal = item.signal
    return (-signal.mispricing_score, -signal.edge_pct, signal.market_slug)


def rank_mispricing_signals(
    candidates: Iterable[ScoringCandidate],
    now_iso: str,
    *,
    time_horizon_hours: float = DEFAULT_TIME_HORIZON_HOURS,
    min_volume: float | None = None,
    max_spread_bps: float | None = None,
    min_edge_pct: float = 0.0,
    limit: int = DEFAULT_LIMIT,
    include_trace: bool = False,
) -> RankingResult:
    """Score, filter, and order a batch of candidates.

    Volume and spread filters run before scoring. Candidates with an unknown
    spread are kept. The edge filter runs on the rounded signal with a small
    tolerance so boundary values are not rejected by float noise. Ordering is
    by score, then edge (both descending), then slug ascending.
    """

    scored: list[ScoredCandidate] = []

    for candidate in candidates:
        market = candidate.market
        if min_volume is not None:
            volume = market.volume_24hr if market.volume_24hr is not None else -math.inf
            if volume < min_volume:
                continue

        if max_spread_bps is not None:
            preview_spread = resolve_spread_bps(market, candidate.orderbook)
            if preview_spread is not None and preview_spread > max_spread_bps:
                continue

        result = score_mispricing_candidate(
            market,
            candidate.orderbook,
            candidate.related_markets,
            now_iso,
            time_horizon_hours,
        )
        if result.signal.edge_pct + SCORE_EPSILON < min_edge_pct:
            continue

        scored.append(result)

    scored.sort(key=_sort_key)
    trimmed = scored[: max(0, limit)]

    return RankingResult(
        signals=[item.signal for item in trimmed],
        traces=[item.trace for item in trimmed] if include_trace else None,
    )
