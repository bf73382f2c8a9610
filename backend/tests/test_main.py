from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.domain import PolymarketEvent
from app.main import _market_service, _scan_service, app
from app.services.market_service import (
    ActiveEvent,
    EventQuery,
    EventQueryResult,
    InvalidQueryError,
    MarketQuery,
    MarketQueryResult,
    to_market_snapshot,
)
from app.services.scan_service import InvalidScanParameters, ScanService
from ingestion.client import PolymarketApiError

from conftest import NOW_ISO, build_market


class StubScanClient:
    def __init__(self, markets):
        self.markets = markets

    def list_markets(self, params=None):
        return list(self.markets)

    def get_orderbook_summary(self, token_id):
        raise PolymarketApiError(f"Polymarket API error (404) for https://clob.test/book?token_id={token_id}: missing")


@pytest.fixture
def client():
    """Test client that cleans up dependency overrides after each test."""
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_healthcheck(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_list_markets(client):
    """Verify the /markets endpoint wraps snapshots with midpoint and spread."""
    mock_service = MagicMock()
    mock_service.list_markets.return_value = MarketQueryResult(
        query="fed",
        generated_at=NOW_ISO,
        parameters=MarketQuery(query="fed"),
        markets=[to_market_snapshot(build_market())],
    )
    app.dependency_overrides[_market_service] = lambda: mock_service

    response = client.get("/markets", params={"query": "Fed", "limit": 5, "min_volume": 100})

    assert response.status_code == 200
    payload = response.json()
    assert payload["ok"] is True
    assert payload["returned_markets"] == 1
    item = payload["items"][0]
    assert item["id"] == "m-1"
    assert item["midpoint"] == pytest.approx(0.5)
    assert item["spread_bps"] == pytest.approx(200.0)
    assert payload["disclaimer"].startswith("Educational analysis only.")

    sent: MarketQuery = mock_service.list_markets.call_args.args[0]
    assert sent.query == "Fed"
    assert sent.limit == 5
    assert sent.min_volume == 100


def test_list_events(client):
    mock_service = MagicMock()
    event = PolymarketEvent(
        id="e-1",
        slug="fed-decision",
        title="Fed decision",
        active=True,
        markets=[build_market(), build_market(id="m-2", closed=True, accepting_orders=False)],
    )
    mock_service.list_active_events.return_value = EventQueryResult(
        query=None,
        generated_at=NOW_ISO,
        parameters=EventQuery(),
        events=[ActiveEvent(event=event, market_count=2, open_markets=1, accepting_order_markets=1)],
    )
    app.dependency_overrides[_market_service] = lambda: mock_service

    response = client.get("/events")

    assert response.status_code == 200
    item = response.json()["items"][0]
    assert item["id"] == "e-1"
    assert item["market_count"] == 2
    assert item["open_markets"] == 1
    assert item["accepting_order_markets"] == 1


def test_invalid_listing_parameters_return_422(client):
    mock_service = MagicMock()
    mock_service.list_markets.side_effect = InvalidQueryError("limit must be <= 100.")
    app.dependency_overrides[_market_service] = lambda: mock_service

    response = client.get("/markets", params={"limit": 500})

    assert response.status_code == 422
    assert response.json() == {"ok": False, "error": "limit must be <= 100."}


def test_upstream_failure_returns_502(client):
    mock_service = MagicMock()
    mock_service.list_active_events.side_effect = PolymarketApiError("Unexpected events response format.")
    app.dependency_overrides[_market_service] = lambda: mock_service

    response = client.get("/events")

    assert response.status_code == 502
    assert response.json() == {"ok": False, "error": "Unexpected events response format."}


def test_scan_returns_ranked_signals_with_trace(client, test_settings):
    markets = [
        build_market(id="a", slug="alpha", one_hour_price_change=0.04),
        build_market(id="b", slug="beta"),
    ]
    service = ScanService(StubScanClient(markets), test_settings)
    app.dependency_overrides[_scan_service] = lambda: service

    response = client.get("/scan", params={"limit": 1, "include_trace": "true", "time_horizon_hours": 6})

    assert response.status_code == 200
    payload = response.json()
    assert payload["ok"] is True
    assert payload["scanned_markets"] == 2
    assert payload["returned_signals"] == 1
    assert payload["parameters"]["time_horizon_hours"] == 6
    assert payload["parameters"]["limit"] == 1
    assert payload["opportunities"][0]["market_id"] == "a"
    assert payload["opportunities"][0]["side"] in {"YES", "NO"}
    assert payload["trace"][0]["market_id"] == "a"
    assert len(payload["warnings"]) == 2


def test_scan_rejects_bad_parameters(client):
    mock_service = MagicMock()
    mock_service.scan.side_effect = InvalidScanParameters("maxSpreadBps must be a positive number.")
    app.dependency_overrides[_scan_service] = lambda: mock_service

    response = client.get("/scan", params={"max_spread_bps": -1})

    assert response.status_code == 422
    assert response.json()["error"] == "maxSpreadBps must be a positive number."



def test_openapi_documents_error_payloads(client):
    paths = client.get("/openapi.json").json()["paths"]

    for path in ("/markets", "/events", "/scan"):
        responses = paths[path]["get"]["responses"]
        assert responses["422"]["content"]["application/json"]["schema"] == {"$ref": "#/components/schemas/ErrorResponse"}
        assert responses["502"]["content"]["application/json"]["schema"] == {"$ref": "#/components/schemas/ErrorResponse"}
