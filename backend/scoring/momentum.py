from __future__ import annotations

from dataclasses import dataclass

from app.domain import Market

from .numeric import clamp

MIN_HORIZON_HOURS = 1.0
MAX_HORIZON_HOURS = 168.0
# A six point composite move saturates the score.
SATURATING_MOVE = 0.06
MEAN_REVERSION_FACTOR = 0.35
MAX_FAIR_ADJUSTMENT = 0.12


@dataclass(frozen=True, slots=True)
class MomentumEstimate:
    score: float
    fair_adjustment: float
    has_data: bool


NO_MOMENTUM = MomentumEstimate(score=0.0, fair_adjustment=0.0, has_data=False)


def horizon_weights(time_horizon_hours: float) -> tuple[float, float]:
    """Return ``(hour_weight, day_weight)``; short horizons lean on the 1h move."""

    horizon = clamp(time_horizon_hours, MIN_HORIZON_HOURS, MAX_HORIZON_HOURS)
    hour_weight = clamp(0.8 - (horizon - 1) / 120, 0.2, 0.8)
    return hour_weight, 1 - hour_weight


def compute_momentum_dislocation(market: Market, time_horizon_hours: float) -> MomentumEstimate:
    one_hour = market.one_hour_price_change
    one_day = market.one_day_price_change

    if one_hour is None and one_day is None:
        return NO_MOMENTUM

    hour_weight, day_weight = horizon_weights(time_horizon_hours)
    day_leg = one_day if one_day is not None else (one_hour if one_hour is not None else 0.0)
    composite = (one_hour or 0.0) * hour_weight + day_leg * day_weight

    # Recent moves are treated as partly mean-reverting, so a rally pulls fair value down.
    return MomentumEstimate(
        score=clamp(abs(composite) / SATURATING_MOVE, 0, 1),
        fair_adjustment=clamp(
            -composite * MEAN_REVERSION_FACTOR, -MAX_FAIR_ADJUSTMENT, MAX_FAIR_ADJUSTMENT
        ),
        has_data=True,
    )
