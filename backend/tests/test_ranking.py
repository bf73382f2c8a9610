from __future__ import annotations

import pytest

from app.domain import ScoringCandidate
from scoring import rank_mispricing_signals


@pytest.fixture
def candidates(make_market, make_snapshot):
    return [
        ScoringCandidate(
            market=make_market(id="quiet", slug="quiet-market", one_hour_price_change=None),
            orderbook=make_snapshot(),
        ),
        ScoringCandidate(
            market=make_market(id="mover", slug="moving-market", one_hour_price_change=0.05),
            orderbook=make_snapshot(),
        ),
        ScoringCandidate(
            market=make_market(id="thin", slug="thin-market", volume_24hr=500.0, liquidity=200.0),
            orderbook=None,
        ),
    ]


def test_signals_are_sorted_by_score_then_edge_then_slug(candidates, now_iso):
    result = rank_mispricing_signals(candidates, now_iso)

    keys = [(-signal.mispricing_score, -signal.edge_pct, signal.market_slug) for signal in result.signals]
    assert keys == sorted(keys)
    assert result.signals[0].market_id == "mover"
    assert result.traces is None


def test_ties_fall_back_to_slug(make_market, make_snapshot, now_iso):
    twins = [
        ScoringCandidate(market=make_market(id="b", slug="b-market"), orderbook=make_snapshot()),
        ScoringCandidate(market=make_market(id="a", slug="a-market"), orderbook=make_snapshot()),
    ]

    result = rank_mispricing_signals(twins, now_iso)

    assert [signal.market_slug for signal in result.signals] == ["a-market", "b-market"]


def test_ranking_is_deterministic(candidates, now_iso):
    first = rank_mispricing_signals(candidates, now_iso, include_trace=True)
    second = rank_mispricing_signals(list(reversed(candidates)), now_iso, include_trace=True)

    assert first == second


def test_min_volume_excludes_candidates(candidates, now_iso):
    result = rank_mispricing_signals(candidates, now_iso, min_volume=1_000)

    assert "thin" not in {signal.market_id for signal in result.signals}
    assert len(result.signals) == 2


def test_missing_volume_fails_min_volume(make_market, now_iso):
    candidate = ScoringCandidate(market=make_market(volume_24hr=None))

    assert rank_mispricing_signals([candidate], now_iso, min_volume=0).signals == []


def test_max_spread_excludes_wide_markets_but_keeps_unknown(make_market, make_snapshot, now_iso):
    wide = ScoringCandidate(market=make_market(id="wide", slug="wide"), orderbook=make_snapshot(spread_bps=900.0))
    unknown = ScoringCandidate(
        market=make_market(id="unknown", slug="unknown", spread=None, best_bid=None, best_ask=None),
        orderbook=None,
    )

    result = rank_mispricing_signals([wide, unknown], now_iso, max_spread_bps=800)

    assert [signal.market_id for signal in result.signals] == ["unknown"]


def test_min_edge_filter_tolerates_float_noise(make_market, now_iso):
    candidate = ScoringCandidate(market=make_market(one_hour_price_change=0.03))
    edge = rank_mispricing_signals([candidate], now_iso, time_horizon_hours=1).signals[0].edge_pct

    kept = rank_mispricing_signals([candidate], now_iso, time_horizon_hours=1, min_edge_pct=edge + 5e-7)
    dropped = rank_mispricing_signals([candidate], now_iso, time_horizon_hours=1, min_edge_pct=edge + 0.01)

    assert len(kept.signals) == 1
    assert dropped.signals == []


def test_limit_truncates_and_traces_align(candidates, now_iso):
    result = rank_mispricing_signals(candidates, now_iso, limit=2, include_trace=True)

    assert len(result.signals) == 2
    assert [trace.market_id for trace in result.traces] == [signal.market_id for signal in result.signals]


@pytest.mark.parametrize("limit", [0, -3])
def test_non_positive_limit_returns_nothing(candidates, now_iso, limit):
    result = rank_mispricing_signals(candidates, now_iso, limit=limit, include_trace=True)

    assert result.signals == []
    assert result.traces == []


def test_every_signal_has_rationale_and_risk_flags(candidates, now_iso):
    for signal in rank_mispricing_signals(candidates, now_iso).signals:
        assert signal.rationale
        assert signal.risk_flags
        assert 0.01 <= signal.market_prob <= 0.99
        assert 0.01 <= signal.fair_prob_proxy <= 0.99
        assert 0 <= signal.mispricing_score <= 100
