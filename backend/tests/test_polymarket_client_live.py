from __future__ import annotations

import pytest

from ingestion.client import ListMarketsParams, PolymarketApiError, PolymarketClient


@pytest.mark.network
def test_polymarket_client_live_fetches_markets():
    client = PolymarketClient()
    try:
        markets = client.list_markets(ListMarketsParams(limit=5, closed=False))
    except PolymarketApiError as exc:
        pytest.skip(f"Polymarket API unavailable: {exc}")
    finally:
        client.close()

    assert markets, "Polymarket API returned no markets"
    for market in markets:
        assert market.id, "market payload missing identifier"
        assert market.question, "market payload missing question text"
