"""Composite mispricing score for a single prediction-market contract.

The scorer merges the probability, momentum, and partition estimates into a
fair-value proxy, grades microstructure quality, subtracts staleness and
low-activity penalties, and explains the result in plain sentences. It reads
only its arguments: "now" is supplied by the caller so the output is
reproducible.
"""

from __future__ import annotations

import math
from typing import Sequence

from app.domain import (
    ComponentScores,
    Confidence,
    Market,
    MispricingSignal,
    MispricingTrace,
    OrderbookSnapshot,
    Penalties,
    ScoredCandidate,
    ScoringThresholds,
    ScoringWeights,
    Side,
)

from .momentum import compute_momentum_dislocation
from .numeric import clamp, clamp_probability, round2, round4, round_half_up
from .orderbook import parse_instant
from .partition import compute_partition_consistency
from .probability import resolve_market_probability

DEFAULT_WEIGHTS = ScoringWeights()
DEFAULT_THRESHOLDS = ScoringThresholds()

MISSING_SPREAD_QUALITY = 0.2
WIDE_SPREAD_BPS = 400
THIN_LIQUIDITY = 1_000
FALLBACK_RISK_FLAG = "educational signal only"


def score_spread_quality(spread_bps: float | None) -> float:
    if spread_bps is None:
        return MISSING_SPREAD_QUALITY
    return 1 - clamp((spread_bps - 25) / 475, 0, 1)


def _has_two_sided_quote(market: Market, orderbook: OrderbookSnapshot | None) -> bool:
    if orderbook is not None and orderbook.best_bid is not None and orderbook.best_ask is not None:
        return True
    return market.best_bid is not None and market.best_ask is not None


def score_liquidity_depth_quality(market: Market, orderbook: OrderbookSnapshot | None) -> float:
    liquidity_score = (
        0.0 if market.liquidity is None else clamp(math.log10(market.liquidity + 1) / 5, 0, 1)
    )
    volume_score = (
        0.0 if market.volume_24hr is None else clamp(math.log10(market.volume_24hr + 1) / 6, 0, 1)
    )
    two_sided = 1.0 if _has_two_sided_quote(market, orderbook) else 0.0
    return clamp(liquidity_score * 0.55 + volume_score * 0.3 + two_sided * 0.15, 0, 1)


def compute_orderbook_age_minutes(orderbook: OrderbookSnapshot | None, now_iso: str) -> float | None:
    if orderbook is None:
        return None

    captured_at = parse_instant(orderbook.timestamp)
    now = parse_instant(now_iso)
    if captured_at is None or now is None:
        return None

    return round2(max(0.0, (now - captured_at).total_seconds() / 60))


def _is_low_activity(market: Market, thresholds: ScoringThresholds) -> bool:
    return market.volume_24hr is None or market.volume_24hr < thresholds.low_volume_24h


def compute_penalties(
    market: Market,
    orderbook: OrderbookSnapshot | None,
    now_iso: str,
    thresholds: ScoringThresholds = DEFAULT_THRESHOLDS,
) -> Penalties:
    if _is_low_activity(market, thresholds):
        low_activity_penalty = 0.16
    elif market.volume_24hr < thresholds.moderate_volume_24h:
        low_activity_penalty = 0.08
    else:
        low_activity_penalty = 0.0

    age_minutes = compute_orderbook_age_minutes(orderbook, now_iso)
    if age_minutes is None:
        stale_penalty = 0.04
    elif age_minutes >= thresholds.very_stale_after_minutes:
        stale_penalty = 0.14
    elif age_minutes >= thresholds.stale_after_minutes:
        stale_penalty = 0.07
    else:
        stale_penalty = 0.0

    return Penalties(stale_penalty=stale_penalty, low_activity_penalty=low_activity_penalty)


def determine_confidence(score: float, edge_pct: float, penalty_total: float) -> Confidence:
    if score >= 70 and edge_pct >= 1.5 and penalty_total < 0.09:
        return Confidence.HIGH
    if score >= 45 and edge_pct >= 0.75:
        return Confidence.MEDIUM
    return Confidence.LOW


def build_rationale(
    *,
    edge_pct: float,
    spread_bps: float | None,
    component_scores: ComponentScores,
    partition_dislocation: float | None,
) -> list[str]:
    rationale: list[str] = []

    if edge_pct >= 0.75:
        rationale.append(f"Fair-value proxy diverges from market by {round2(edge_pct):g}%.")

    if spread_bps is not None and component_scores.spread_quality >= 0.65:
        rationale.append(f"Spread quality is favorable ({int(round_half_up(spread_bps))} bps).")

    if component_scores.liquidity_depth_quality >= 0.6:
        rationale.append("Liquidity and two-sided depth support executable pricing.")

    if component_scores.momentum_dislocation >= 0.45:
        rationale.append("Recent short-term move looks dislocated versus microstructure baseline.")

    if partition_dislocation is not None and component_scores.related_market_consistency >= 0.35:
        rationale.append(
            f"Related market partition drift is {round2(abs(partition_dislocation) * 100):g}%."
        )

    if not rationale:
        rationale.append("Composite microstructure signals indicate a modest opportunity.")

    return rationale


def build_risk_flags(
    *,
    spread_bps: float | None,
    market: Market,
    orderbook_age_minutes: float | None,
    confidence: Confidence,
    thresholds: ScoringThresholds,
    has_momentum_data: bool,
) -> list[str]:
    risk_flags: list[str] = []

    if spread_bps is None:
        risk_flags.append("missing spread data")
    elif spread_bps > WIDE_SPREAD_BPS:
        risk_flags.append("wide spread execution risk")

    if market.liquidity is None or market.liquidity < THIN_LIQUIDITY:
        risk_flags.append("thin liquidity")

    if _is_low_activity(market, thresholds):
        risk_flags.append("low 24h activity")

    if orderbook_age_minutes is not None and orderbook_age_minutes >= thresholds.very_stale_after_minutes:
        risk_flags.append("stale orderbook snapshot")

    if not has_momentum_data:
        risk_flags.append("limited momentum history")

    if confidence is Confidence.LOW:
        risk_flags.append("low confidence signal")

    if not risk_flags:
        risk_flags.append(FALLBACK_RISK_FLAG)

    return risk_flags


def _weighted_sum(scores: ComponentScores, weights: ScoringWeights) -> float:
    return (
        scores.spread_quality * weights.spread_quality
        + scores.liquidity_depth_quality * weights.liquidity_depth_quality
        + scores.momentum_dislocation * weights.momentum_dislocation
        + scores.related_market_consistency * weights.related_market_consistency
        + scores.edge_magnitude * weights.edge_magnitude
    )


def score_mispricing_candidate(
    market: Market,
    orderbook: OrderbookSnapshot | None,
    related_markets: Sequence[Market],
    now_iso: str,
    time_horizon_hours: float,
    *,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
    thresholds: ScoringThresholds = DEFAULT_THRESHOLDS,
) -> ScoredCandidate:
    probability = resolve_market_probability(market, orderbook)
    market_prob = probability.market_prob
    spread_bps = probability.spread_bps

    momentum = compute_momentum_dislocation(market, time_horizon_hours)
    consistency = compute_partition_consistency(market, market_prob, related_markets)

    fair_prob_proxy = clamp_probability(
        market_prob + momentum.fair_adjustment + consistency.fair_adjustment
    )
    signed_edge = fair_prob_proxy - market_prob
    side = Side.YES if signed_edge >= 0 else Side.NO
    edge_pct = abs(signed_edge) * 100

    component_scores = ComponentScores(
        spread_quality=score_spread_quality(spread_bps),
        liquidity_depth_quality=score_liquidity_depth_quality(market, orderbook),
        momentum_dislocation=momentum.score,
        related_market_consistency=consistency.score,
        edge_magnitude=clamp(edge_pct / 4, 0, 1),
    )

    penalties = compute_penalties(market, orderbook, now_iso, thresholds)
    mispricing_score = clamp(
        (_weighted_sum(component_scores, weights) - penalties.total) * 100, 0, 100
    )
    confidence = determine_confidence(mispricing_score, edge_pct, penalties.total)
    orderbook_age_minutes = compute_orderbook_age_minutes(orderbook, now_iso)

    rationale = build_rationale(
        edge_pct=edge_pct,
        spread_bps=spread_bps,
        component_scores=component_scores,
        partition_dislocation=consistency.partition_dislocation,
    )
    risk_flags = build_risk_flags(
        spread_bps=spread_bps,
        market=market,
        orderbook_age_minutes=orderbook_age_minutes,
        confidence=confidence,
        thresholds=thresholds,
        has_momentum_data=momentum.has_data,
    )

    signal = MispricingSignal(
        market_id=market.id,
        market_slug=market.slug or market.id,
        side=side,
        market_prob=round4(market_prob),
        fair_prob_proxy=round4(fair_prob_proxy),
        edge_pct=round2(edge_pct),
        mispricing_score=round2(mispricing_score),
        confidence=confidence,
        rationale=rationale,
        risk_flags=risk_flags,
    )

    trace = MispricingTrace(
        market_id=signal.market_id,
        market_slug=signal.market_slug,
        market_prob=signal.market_prob,
        fair_prob_proxy=signal.fair_prob_proxy,
        selected_side=signal.side,
        edge_pct=signal.edge_pct,
        component_scores=ComponentScores(
            spread_quality=round4(component_scores.spread_quality),
            liquidity_depth_quality=round4(component_scores.liquidity_depth_quality),
            momentum_dislocation=round4(component_scores.momentum_dislocation),
            related_market_consistency=round4(component_scores.related_market_consistency),
            edge_magnitude=round4(component_scores.edge_magnitude),
        ),
        penalties=Penalties(
            stale_penalty=round4(penalties.stale_penalty),
            low_activity_penalty=round4(penalties.low_activity_penalty),
        ),
        spread_bps=None if spread_bps is None else round2(spread_bps),
        liquidity=market.liquidity,
        volume_24h=market.volume_24hr,
        orderbook_age_minutes=orderbook_age_minutes,
        peer_count=consistency.peer_count,
        partition_dislocation=(
            None
            if consistency.partition_dislocation is None
            else round4(consistency.partition_dislocation)
        ),
        rationale=rationale,
        risk_flags=risk_flags,
    )

    return ScoredCandidate(signal=signal, trace=trace)
