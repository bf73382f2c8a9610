from __future__ import annotations

from dataclasses import dataclass

from app.domain import Market, OrderbookSnapshot

from .numeric import blend, clamp_probability

ORDERBOOK_BLEND_WEIGHT = 0.55
QUOTE_BLEND_WEIGHT = 0.7
UNINFORMED_PROBABILITY = 0.5


@dataclass(frozen=True, slots=True)
class ProbabilitySnapshot:
    market_prob: float
    spread_bps: float | None


def yes_outcome_index(market: Market) -> int:
    """Index of the outcome labelled YES, falling back to the first outcome."""

    for index, outcome in enumerate(market.outcomes):
        if outcome.strip().upper() == "YES":
            return index
    return 0


def yes_probability(market: Market) -> float | None:
    if not market.outcome_prices:
        return None

    index = yes_outcome_index(market)
    if index >= len(market.outcome_prices):
        return None
    return clamp_probability(market.outcome_prices[index])


def quote_midpoint(market: Market) -> float | None:
    if market.best_bid is None or market.best_ask is None:
        return None
    return clamp_probability((market.best_bid + market.best_ask) / 2)


def resolve_spread_bps(market: Market, orderbook: OrderbookSnapshot | None) -> float | None:
    """Spread in bps, preferring the live book over the market's own quote."""

    if orderbook is not None and orderbook.spread_bps is not None:
        return max(0.0, orderbook.spread_bps)

    if market.spread is not None:
        return max(0.0, market.spread * 10_000)

    if market.best_bid is not None and market.best_ask is not None:
        mid = (market.best_bid + market.best_ask) / 2
        if mid > 0:
            return max(0.0, (market.best_ask - market.best_bid) / mid * 10_000)

    return None


def resolve_market_probability(
    market: Market, orderbook: OrderbookSnapshot | None
) -> ProbabilitySnapshot:
    """Blend book midpoint, quoted midpoint, and outcome price into one estimate.

    Precedence is order book, then the market's quote, then the last outcome
    price; with none of them the contract is treated as a coin flip.
    """

    outcome_prob = yes_probability(market)
    quote_mid = quote_midpoint(market)
    orderbook_mid = orderbook.midpoint if orderbook is not None else None

    if orderbook_mid is not None:
        fallback = next(
            value for value in (quote_mid, outcome_prob, orderbook_mid) if value is not None
        )
        market_prob = blend(orderbook_mid, fallback, ORDERBOOK_BLEND_WEIGHT)
    elif quote_mid is not None:
        fallback = outcome_prob if outcome_prob is not None else quote_mid
        market_prob = blend(quote_mid, fallback, QUOTE_BLEND_WEIGHT)
    elif outcome_prob is not None:
        market_prob = outcome_prob
    else:
        market_prob = UNINFORMED_PROBABILITY

    return ProbabilitySnapshot(
        market_prob=clamp_probability(market_prob),
        spread_bps=resolve_spread_bps(market, orderbook),
    )
