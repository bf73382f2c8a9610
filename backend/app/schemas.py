from dataclasses import asdict
from typing import Any

from pydantic import BaseModel, Field, field_validator

from app.domain import Confidence, Side
from app.services.market_service import ActiveEvent, MarketSnapshot
from app.services.scan_service import ScanReport


class MarketBase(BaseModel):
    id: str
    slug: str | None = None
    question: str | None = None
    event_id: str | None = None
    condition_id: str | None = None
    outcomes: list[str] = Field(default_factory=list)
    outcome_prices: list[float] = Field(default_factory=list)
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
    clob_token_ids: list[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}

    @field_validator("volume", "volume_24hr", "liquidity", mode="before")
    @classmethod
    def _coerce_numeric(cls, value: Any) -> float | None:
        if value is None:
            return None
        return float(value)


class Market(MarketBase):
    midpoint: float | None = None
    spread_bps: float | None = None

    @classmethod
    def from_snapshot(cls, snapshot: MarketSnapshot) -> "Market":
        return cls(**asdict(snapshot.market), midpoint=snapshot.midpoint, spread_bps=snapshot.spread_bps)


class MarketList(BaseModel):
    ok: bool = True
    query: str | None = None
    generated_at: str
    returned_markets: int
    items: list[Market]
    disclaimer: str


class Event(BaseModel):
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
    market_count: int = 0
    open_markets: int = 0
    accepting_order_markets: int = 0

    @classmethod
    def from_active_event(cls, active_event: ActiveEvent) -> "Event":
        event = active_event.event
        return cls(
            id=event.id,
            slug=event.slug,
            title=event.title,
            description=event.description,
            active=event.active,
            closed=event.closed,
            end_date=event.end_date,
            volume=event.volume,
            volume_24hr=event.volume_24hr,
            liquidity=event.liquidity,
            market_count=active_event.market_count,
            open_markets=active_event.open_markets,
            accepting_order_markets=active_event.accepting_order_markets,
        )


class EventList(BaseModel):
    ok: bool = True
    query: str | None = None
    generated_at: str
    returned_events: int
    items: list[Event]
    disclaimer: str


class MispricingSignal(BaseModel):
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

    model_config = {"from_attributes": True}


class ComponentScores(BaseModel):
    spread_quality: float
    liquidity_depth_quality: float
    momentum_dislocation: float
    related_market_consistency: float
    edge_magnitude: float

    model_config = {"from_attributes": True}


class Penalties(BaseModel):
    stale_penalty: float
    low_activity_penalty: float

    model_config = {"from_attributes": True}


class MispricingTrace(BaseModel):
    market_id: str
    market_slug: str
    market_prob: float
    fair_prob_proxy: float
    selected_side: Side
    edge_pct: float
    component_scores: ComponentScores
    penalties: Penalties
    spread_bps: float | None = None
    liquidity: float | None = None
    volume_24h: float | None = None
    orderbook_age_minutes: float | None = None
    peer_count: int
    partition_dislocation: float | None = None
    rationale: list[str]
    risk_flags: list[str]

    model_config = {"from_attributes": True}


class ScanParameters(BaseModel):
    limit: int
    min_volume: float
    max_spread_bps: float
    time_horizon_hours: float
    concurrency: int

    model_config = {"from_attributes": True}


class ScanResponse(BaseModel):
    ok: bool = True
    query: str | None = None
    generated_at: str
    parameters: ScanParameters
    scanned_markets: int
    returned_signals: int
    opportunities: list[MispricingSignal]
    warnings: list[str] = Field(default_factory=list)
    trace: list[MispricingTrace] | None = None
    disclaimer: str

    model_config = {"from_attributes": True}

    @classmethod
    def from_report(cls, report: ScanReport) -> "ScanResponse":
        return cls.model_validate(report)


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
