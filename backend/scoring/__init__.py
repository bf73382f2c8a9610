"""Deterministic mispricing scoring engine for prediction-market contracts."""

from .composite import DEFAULT_THRESHOLDS, DEFAULT_WEIGHTS, score_mispricing_candidate
from .momentum import MomentumEstimate, compute_momentum_dislocation
from .orderbook import normalize_timestamp, to_orderbook_snapshot
from .partition import PartitionConsistency, compute_partition_consistency
from .probability import (
    ProbabilitySnapshot,
    resolve_market_probability,
    resolve_spread_bps,
    yes_outcome_index,
    yes_probability,
)
from .ranking import rank_mispricing_signals

__all__ = [
    "DEFAULT_THRESHOLDS",
    "DEFAULT_WEIGHTS",
    "MomentumEstimate",
    "PartitionConsistency",
    "ProbabilitySnapshot",
    "compute_momentum_dislocation",
    "compute_partition_consistency",
    "normalize_timestamp",
    "rank_mispricing_signals",
    "resolve_market_probability",
    "resolve_spread_bps",
    "score_mispricing_candidate",
    "to_orderbook_snapshot",
    "yes_outcome_index",
    "yes_probability",
]
