from __future__ import annotations

import httpx
import pytest

from ingestion.client import (
    ListEventsParams,
    ListMarketsParams,
    PolymarketApiError,
    PolymarketClient,
)


def _client(handler) -> PolymarketClient:
    return PolymarketClient(
        gamma_base_url="https://gamma.test/",
        clob_base_url="https://clob.test",
        timeout=2.0,
        transport=httpx.MockTransport(handler),
    )


def test_list_markets_serializes_query(sample_market_payload):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[sample_market_payload, "junk"])

    with _client(handler) as client:
        markets = client.list_markets(
            ListMarketsParams(limit=25, closed=False, min_volume=1000.0, min_liquidity=None)
        )

    assert [market.id for market in markets] == ["516710"]
    request = seen[0]
    assert request.url.host == "gamma.test"
    assert request.url.path == "/markets"
    assert dict(request.url.params) == {"limit": "25", "closed": "false", "volume_num_min": "1000"}


def test_list_markets_rejects_non_list_payload():
    with _client(lambda request: httpx.Response(200, json={"data": []})) as client:
        with pytest.raises(PolymarketApiError, match="Unexpected markets response format."):
            client.list_markets()


def test_http_error_status_includes_body():
    with _client(lambda request: httpx.Response(500, text="upstream exploded")) as client:
        with pytest.raises(PolymarketApiError) as excinfo:
            client.list_markets(ListMarketsParams(limit=1))

    message = str(excinfo.value)
    assert message.startswith("Polymarket API error (500) for https://gamma.test/markets?limit=1")
    assert message.endswith("upstream exploded")


def test_invalid_json_is_reported():
    with _client(lambda request: httpx.Response(200, text="<html>")) as client:
        with pytest.raises(PolymarketApiError, match="Invalid JSON response"):
            client.list_markets()


def test_transport_failure_is_wrapped():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with _client(handler) as client:
        with pytest.raises(PolymarketApiError, match="Failed to fetch https://gamma.test/markets"):
            client.list_markets()


def test_list_events_passes_active_flag(sample_market_payload):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json=[{"id": "16084", "title": "Fed decision", "active": True, "markets": [sample_market_payload]}],
        )

    with _client(handler) as client:
        events = client.list_events(ListEventsParams(limit=10, active=True, closed=False))

    assert seen[0].url.path == "/events"
    assert dict(seen[0].url.params) == {"limit": "10", "active": "true", "closed": "false"}
    assert events[0].id == "16084"
    assert events[0].markets[0].id == "516710"


def test_get_event_by_slug_escapes_path():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "e-1", "slug": "a b"})

    with _client(handler) as client:
        event = client.get_event_by_slug("  a b ")

    assert event.id == "e-1"
    assert seen[0].url.raw_path == b"/events/slug/a%20b"


def test_get_event_by_slug_requires_slug():
    with _client(lambda request: httpx.Response(200, json={})) as client:
        with pytest.raises(PolymarketApiError, match="slug is required."):
            client.get_event_by_slug("   ")


def test_get_orderbook_summary_hits_clob():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "market": "0xabc",
                "asset_id": "token-1",
                "timestamp": "1767225600000",
                "bids": [{"price": "0.41", "size": "10"}],
                "asks": [{"price": "0.45", "size": "12"}],
            },
        )

    with _client(handler) as client:
        summary = client.get_orderbook_summary(" token-1 ")

    assert seen[0].url.host == "clob.test"
    assert seen[0].url.path == "/book"
    assert seen[0].url.params["token_id"] == "token-1"
    assert summary.asset_id == "token-1"
    assert summary.best_bid == 0.41
    assert summary.best_ask == 0.45


def test_get_orderbook_summary_requires_token():
    with _client(lambda request: httpx.Response(200, json={})) as client:
        with pytest.raises(PolymarketApiError, match="tokenId is required."):
            client.get_orderbook_summary("")


def test_get_orderbook_summary_rejects_non_object():
    with _client(lambda request: httpx.Response(200, json=[])) as client:
        with pytest.raises(PolymarketApiError, match="Unexpected orderbook response format."):
            client.get_orderbook_summary("token-1")
