from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from app.domain import Market

from .numeric import SCORE_EPSILON, clamp
from .probability import yes_probability

MIN_PEERS = 3
MIN_PARTITION_SUM = 0.6
MAX_PARTITION_SUM = 1.4
SATURATING_DISLOCATION = 0.25
MAX_FAIR_ADJUSTMENT = 0.2


@dataclass(frozen=True, slots=True)
class PartitionConsistency:
    score: float
    fair_adjustment: float
    partition_dislocation: float | None
    peer_count: int


def _dedupe_by_id(markets: Iterable[Market]) -> list[Market]:
    seen: set[str] = set()
    output: list[Market] = []
    for market in markets:
        if market.id in seen:
            continue
        seen.add(market.id)
        output.append(market)
    return output


def _no_adjustment(peer_count: int) -> PartitionConsistency:
    return PartitionConsistency(
        score=0.0,
        fair_adjustment=0.0,
        partition_dislocation=None,
        peer_count=peer_count,
    )


def compute_partition_consistency(
    market: Market,
    market_prob: float,
    related_markets: Sequence[Market],
) -> PartitionConsistency:
    """Check whether sibling YES prices in one event sum to roughly one.

    The market under evaluation is part of the peer pool. Groups with fewer
    than three priced peers, or whose total lies outside [0.6, 1.4], are
    considered too partial or noisy and yield no adjustment.
    """

    peers = [item for item in _dedupe_by_id([market, *related_markets]) if item.active and not item.closed]
    peer_count = max(0, len(peers) - 1)
    if len(peers) < MIN_PEERS:
        return _no_adjustment(peer_count)

    probabilities = [prob for prob in (yes_probability(peer) for peer in peers) if prob is not None]
    if len(probabilities) < MIN_PEERS:
        return _no_adjustment(peer_count)

    total = sum(probabilities)
    if total < MIN_PARTITION_SUM or total > MAX_PARTITION_SUM:
        return _no_adjustment(peer_count)

    # Positive dislocation means the group is underpriced in aggregate.
    dislocation = 1 - total
    share = clamp(market_prob / max(total, SCORE_EPSILON), 0.05, 0.95)

    return PartitionConsistency(
        score=clamp(abs(dislocation) / SATURATING_DISLOCATION, 0, 1),
        fair_adjustment=clamp(dislocation * share * 0.75, -MAX_FAIR_ADJUSTMENT, MAX_FAIR_ADJUSTMENT),
        partition_dislocation=dislocation,
        peer_count=peer_count,
    )
