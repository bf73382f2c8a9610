from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import httpx
from loguru import logger

from app.core.config import settings
from app.domain import Market, OrderbookSummary, PolymarketEvent

from .normalize import is_record, normalize_event, normalize_market, normalize_orderbook_summary


class PolymarketApiError(RuntimeError):
    """Raised for any failed or malformed Polymarket API exchange."""


@dataclass(slots=True)
class ListMarketsParams:
    limit: int | None = None
    offset: int | None = None
    order: str | None = None
    ascending: bool | None = None
    closed: bool | None = None
    min_volume: float | None = None
    min_liquidity: float | None = None

    def to_query(self) -> dict[str, Any]:
        return {
            "limit": self.limit,
            "offset": self.offset,
            "order": self.order,
            "ascending": self.ascending,
            "closed": self.closed,
            "volume_num_min": self.min_volume,
            "liquidity_num_min": self.min_liquidity,
        }


@dataclass(slots=True)
class ListEventsParams:
    limit: int | None = None
    offset: int | None = None
    active: bool | None = None
    closed: bool | None = None
    min_volume: float | None = None
    min_liquidity: float | None = None

    def to_query(self) -> dict[str, Any]:
        return {
            "limit": self.limit,
            "offset": self.offset,
            "active": self.active,
            "closed": self.closed,
            "volume_num_min": self.min_volume,
            "liquidity_num_min": self.min_liquidity,
        }


def _require_trimmed(value: str, field_name: str) -> str:
    normalized = (value or "").strip()
    if not normalized:
        raise PolymarketApiError(f"{field_name} is required.")
    return normalized


def _serialize_params(params: dict[str, Any]) -> dict[str, str]:
    serialized: dict[str, str] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            serialized[key] = "true" if value else "false"
        elif isinstance(value, float) and value.is_integer():
            serialized[key] = str(int(value))
        else:
            serialized[key] = str(value)
    return serialized


class PolymarketClient:
    """Read-only wrapper around the Polymarket Gamma and CLOB endpoints."""

    def __init__(
        self,
        *,
        gamma_base_url: str | None = None,
        clob_base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.gamma_base_url = (gamma_base_url or str(settings.polymarket_gamma_base_url)).rstrip("/")
        self.clob_base_url = (clob_base_url or str(settings.polymarket_clob_base_url)).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self._gamma = httpx.Client(base_url=self.gamma_base_url, timeout=self.timeout, transport=transport)
        self._clob = httpx.Client(base_url=self.clob_base_url, timeout=self.timeout, transport=transport)

    def _get_json(
        self, client: httpx.Client, path: str, params: dict[str, Any] | None = None
    ) -> Any:
        request = client.build_request("GET", path, params=_serialize_params(params or {}))
        url = str(request.url)
        logger.info("Polymarket GET {}", url)
        try:
            response = client.send(request)
        except httpx.HTTPError as exc:
            raise PolymarketApiError(f"Failed to fetch {url}. Details: {exc}") from exc

        if response.is_error:
            raise PolymarketApiError(
                f"Polymarket API error ({response.status_code}) for {url}: {response.text}"
            )

        try:
            return response.json()
        except ValueError as exc:
            raise PolymarketApiError(f"Invalid JSON response for {url}.") from exc

    def list_markets(self, params: ListMarketsParams | None = None) -> list[Market]:
        query = (params or ListMarketsParams()).to_query()
        payload = self._get_json(self._gamma, "/markets", query)
        if not isinstance(payload, list):
            raise PolymarketApiError("Unexpected markets response format.")
        return [normalize_market(item) for item in payload if is_record(item)]

    def list_events(self, params: ListEventsParams | None = None) -> list[PolymarketEvent]:
        query = (params or ListEventsParams()).to_query()
        payload = self._get_json(self._gamma, "/events", query)
        if not isinstance(payload, list):
            raise PolymarketApiError("Unexpected events response format.")
        return [normalize_event(item) for item in payload if is_record(item)]

    def get_event_by_slug(self, slug: str) -> PolymarketEvent:
        normalized_slug = _require_trimmed(slug, "slug")
        payload = self._get_json(self._gamma, f"/events/slug/{quote(normalized_slug, safe='')}")
        if not is_record(payload):
            raise PolymarketApiError("Unexpected event response format.")
        return normalize_event(payload)

    def get_orderbook_summary(self, token_id: str) -> OrderbookSummary:
        normalized_token_id = _require_trimmed(token_id, "tokenId")
        payload = self._get_json(self._clob, "/book", {"token_id": normalized_token_id})
        if not is_record(payload):
            raise PolymarketApiError("Unexpected orderbook response format.")
        return normalize_orderbook_summary(
            payload,
            normalized_token_id,
            fallback_timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        )

    def close(self) -> None:
        self._gamma.close()
        self._clob.close()

    def __enter__(self) -> "PolymarketClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
