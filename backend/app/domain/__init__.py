"""Domain models representing normalized market data and scoring output."""

from .models import (
    ComponentScores,
    Confidence,
    Market,
    MispricingSignal,
    MispricingTrace,
    OrderbookSnapshot,
    OrderbookSummary,
    OrderLevel,
    Penalties,
    PolymarketEvent,
    RankingResult,
    ScoredCandidate,
    ScoringCandidate,
    ScoringThresholds,
    ScoringWeights,
    Side,
)

__all__ = [
    "ComponentScores",
    "Confidence",
    "Market",
    "MispricingSignal",
    "MispricingTrace",
    "OrderbookSnapshot",
    "OrderbookSummary",
    "OrderLevel",
    "Penalties",
    "PolymarketEvent",
    "RankingResult",
    "ScoredCandidate",
    "ScoringCandidate",
    "ScoringThresholds",
    "ScoringWeights",
    "Side",
]
