"""Typed domain representations shared by ingestion, scoring, and the API."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Side(str, Enum):
    """Contract side a mispricing edge favors."""

    YES = "YES"
    NO = "NO"


class Confidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True, slots=True)
class Market:
    """Point-in-time snapshot of a tradeable Polymarket contract.

    ``outcome_prices[i]`` and ``clob_token_ids[i]`` line up with
    ``outcomes[i]``. Optional numerics are ``None`` when upstream did not
    report them; they are never defaulted to zero.
    """

    id: str
    slug: str | None = None
    question: str | None = None
    event_id: str | None = None
    condition_id: str | None = None
    outcomes: list[str] = field(default_factory=list)
    outcome_prices: list[float] = field(default_factory=list)
    active: bool = False
    closed: bool = False
    accepting_orders: bool = False
    end_date: str | None = None
    volume: float | None = None
    volume_24hr: float | None = None
    liquidity: float | None = None
    best_bid: float | None = None
    best_ask: float | None = None
    spread: float | None = None
    one_hour_price_change: float | None = None
    one_day_price_change: float | None = None
    one_week_price_change: float | None = None
    one_month_price_change: float | None = None
    last_trade_price: float | None = None
    clob_token_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class PolymarketEvent:
    """Event grouping sibling markets (e.g. every candidate in an election)."""

    id: str
    slug: str | None = None
    title: str | None = None
    description: str | None = None
    active: bool = False
    closed: bool = False
    end_date: str | None = None
    volume: float | None = None
    volume_24hr: float | None = None
    liquidity: float | None = None
    markets: list[Market] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class OrderLevel:
    price: float
    size: float


@dataclass(frozen=True, slots=True)
class OrderbookSummary:
    """Raw CLOB book for a single outcome token."""

    asset_id: str
    timestamp: str
    bids: list[OrderLevel] = field(default_factory=list)
    asks: list[OrderLevel] = field(default_factory=list)
    market: str = ""
    hash: str = ""
    best_bid: float | None = None
    best_ask: float | None = None
    min_order_size: float | None = None
    tick_size: float | None = None
    neg_risk: bool = False


@dataclass(frozen=True, slots=True)
class OrderbookSnapshot:
    """Canonical top-of-book view derived from an :class:`OrderbookSummary`."""

    token_id: str
    best_bid: float | None
    best_ask: float | None
    midpoint: float | None
    spread_bps: float | None
    timestamp: str


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    spread_quality: float = 0.23
    liquidity_depth_quality: float = 0.25
    momentum_dislocation: float = 0.18
    related_market_consistency: float = 0.18
    edge_magnitude: float = 0.16


@dataclass(frozen=True, slots=True)
class ScoringThresholds:
    low_volume_24h: float = 250.0
    moderate_volume_24h: float = 2_500.0
    stale_after_minutes: float = 20.0
    very_stale_after_minutes: float = 60.0


@dataclass(frozen=True, slots=True)
class ComponentScores:
    spread_quality: float
    liquidity_depth_quality: float
    momentum_dislocation: float
    related_market_consistency: float
    edge_magnitude: float


@dataclass(frozen=True, slots=True)
class Penalties:
    stale_penalty: float
    low_activity_penalty: float

    @property
    def total(self) -> float:
        return self.stale_penalty + self.low_activity_penalty


@dataclass(frozen=True, slots=True)
class MispricingSignal:
    market_id: str
    market_slug: str
    side: Side
    market_prob: float
    fair_prob_proxy: float
    edge_pct: float
    mispricing_score: float
    confidence: Confidence
    rationale: list[str]
    risk_flags: list[str]


@dataclass(frozen=True, slots=True)
class MispricingTrace:
    """Diagnostic twin of a :class:`MispricingSignal` exposing every input."""

    market_id: str
    market_slug: str
    market_prob: float
    fair_prob_proxy: float
    selected_side: Side
    edge_pct: float
    component_scores: ComponentScores
    penalties: Penalties
    spread_bps: float | None
    liquidity: float | None
    volume_24h: float | None
    orderbook_age_minutes: float | None
    peer_count: int
    partition_dislocation: float | None
    rationale: list[str]
    risk_flags: list[str]


@dataclass(frozen=True, slots=True)
class ScoringCandidate:
    market: Market
    orderbook: OrderbookSnapshot | None = None
    related_markets: list[Market] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ScoredCandidate:
    signal: MispricingSignal
    trace: MispricingTrace


@dataclass(frozen=True, slots=True)
class RankingResult:
    signals: list[MispricingSignal]
    traces: list[MispricingTrace] | None = None
