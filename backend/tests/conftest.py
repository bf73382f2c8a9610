from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import pytest

from app.core.config import Settings
from app.domain import Market, OrderbookSnapshot

NOW_ISO = "2026-02-01T12:00:00.000Z"


def build_market(**overrides: Any) -> Market:
    fields: dict[str, Any] = {
        "id": "m-1",
        "slug": "fed-cut-march",
        "question": "Will the Fed cut rates in March?",
        "event_id": None,
        "outcomes": ["Yes", "No"],
        "outcome_prices": [0.5, 0.5],
        "active": True,
        "closed": False,
        "accepting_orders": True,
        "volume_24hr": 10_000.0,
        "liquidity": 100_000.0,
        "best_bid": 0.49,
        "best_ask": 0.51,
        "spread": 0.02,
        "clob_token_ids": ["yes-token", "no-token"],
    }
    fields.update(overrides)
    return Market(**fields)


def build_snapshot(**overrides: Any) -> OrderbookSnapshot:
    fields: dict[str, Any] = {
        "token_id": "yes-token",
        "best_bid": 0.49,
        "best_ask": 0.51,
        "midpoint": 0.5,
        "spread_bps": 400.0,
        "timestamp": "2026-02-01T11:55:00.000Z",
    }
    fields.update(overrides)
    return OrderbookSnapshot(**fields)


@pytest.fixture
def make_market() -> Callable[..., Market]:
    return build_market


@pytest.fixture
def make_snapshot() -> Callable[..., OrderbookSnapshot]:
    return build_snapshot


@pytest.fixture
def now_iso() -> str:
    return NOW_ISO


@pytest.fixture
def sample_market_payload() -> dict[str, object]:
    path = Path(__file__).parent / "data" / "sample_market.json"
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def test_settings(monkeypatch) -> Settings:
    settings = Settings(
        polymarket_gamma_base_url="https://gamma.test",
        polymarket_clob_base_url="https://clob.test",
        http_timeout_seconds=2.0,
    )
    monkeypatch.setattr("app.core.config.get_settings", lambda: settings)
    monkeypatch.setattr("app.core.config.settings", settings)
    return settings
