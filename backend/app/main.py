from __future__ import annotations

from typing import Annotated, Iterator

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from . import schemas
from .core.config import settings
from .core.logging import configure_logging
from .services.market_service import EventQuery, InvalidQueryError, MarketQuery, MarketService
from .services.scan_service import InvalidScanParameters, ScanRequest, ScanService
from ingestion.client import PolymarketApiError, PolymarketClient

app = FastAPI(title="Polymarket Mispricing Scanner", version="0.1.0", debug=settings.debug)

ERROR_RESPONSES = {
    422: {"model": schemas.ErrorResponse, "description": "Rejected query parameters"},
    502: {"model": schemas.ErrorResponse, "description": "Polymarket upstream failure"},
}


@app.on_event("startup")
def on_startup() -> None:
    """Configure logging sinks when the API boots."""

    configure_logging(settings.log_level)


@app.exception_handler(InvalidQueryError)
@app.exception_handler(InvalidScanParameters)
async def _invalid_parameters(_request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"ok": False, "error": str(exc)})


@app.exception_handler(PolymarketApiError)
async def _upstream_failure(_request: Request, exc: PolymarketApiError) -> JSONResponse:
    return JSONResponse(status_code=502, content={"ok": False, "error": str(exc)})


@app.get("/healthz", tags=["system"])
def healthcheck() -> dict[str, str]:
    """Basic readiness probe consumed by infrastructure monitors."""

    return {"status": "ok"}


def _polymarket_client() -> Iterator[PolymarketClient]:
    with PolymarketClient() as client:
        yield client


def _market_service(client: PolymarketClient = Depends(_polymarket_client)) -> MarketService:
    return MarketService(client)


def _scan_service(client: PolymarketClient = Depends(_polymarket_client)) -> ScanService:
    return ScanService(client)


@app.get("/markets", response_model=schemas.MarketList, tags=["markets"], responses=ERROR_RESPONSES)
def list_markets(
    *,
    query: Annotated[str | None, Query(description="Terms matched against question and slug")] = None,
    limit: Annotated[int, Query(description="Markets requested from upstream")] = 20,
    min_volume: Annotated[float, Query(description="Minimum market volume in USD")] = 0.0,
    min_liquidity: Annotated[float, Query(description="Minimum market liquidity in USD")] = 0.0,
    active_only: bool = True,
    accepting_orders_only: bool = True,
    require_token_ids: bool = True,
    service: MarketService = Depends(_market_service),
):
    """List tradeable markets with quote midpoint and spread."""

    result = service.list_markets(
        MarketQuery(
            query=query,
            limit=limit,
            min_volume=min_volume,
            min_liquidity=min_liquidity,
            active_only=active_only,
            accepting_orders_only=accepting_orders_only,
            require_token_ids=require_token_ids,
        )
    )
    items = [schemas.Market.from_snapshot(snapshot) for snapshot in result.markets]
    return schemas.MarketList(
        query=result.query,
        generated_at=result.generated_at,
        returned_markets=len(items),
        items=items,
        disclaimer=result.disclaimer,
    )


@app.get("/events", response_model=schemas.EventList, tags=["events"], responses=ERROR_RESPONSES)
def list_events(
    *,
    query: Annotated[str | None, Query(description="Terms matched against title and slug")] = None,
    limit: int = 20,
    min_volume: float = 0.0,
    min_liquidity: float = 0.0,
    service: MarketService = Depends(_market_service),
):
    """Return active events with counts of their open and order-accepting markets."""

    result = service.list_active_events(
        EventQuery(query=query, limit=limit, min_volume=min_volume, min_liquidity=min_liquidity)
    )
    items = [schemas.Event.from_active_event(event) for event in result.events]
    return schemas.EventList(
        query=result.query,
        generated_at=result.generated_at,
        returned_events=len(items),
        items=items,
        disclaimer=result.disclaimer,
    )


@app.get("/scan", response_model=schemas.ScanResponse, tags=["scan"], responses=ERROR_RESPONSES)
def scan_mispricing(
    *,
    query: Annotated[str | None, Query(description="Terms matched against question and slug")] = None,
    limit: int | None = None,
    min_volume: float | None = None,
    max_spread_bps: float | None = None,
    time_horizon_hours: Annotated[
        float | None, Query(description="Horizon used to weight momentum (1-168)")
    ] = None,
    concurrency: int | None = None,
    include_trace: bool = False,
    service: ScanService = Depends(_scan_service),
):
    """Rank active markets by heuristic mispricing score."""

    report = service.scan(
        ScanRequest(
            query=query,
            limit=limit,
            min_volume=min_volume,
            max_spread_bps=max_spread_bps,
            time_horizon_hours=time_horizon_hours,
            concurrency=concurrency,
            include_trace=include_trace,
        )
    )
    return schemas.ScanResponse.from_report(report)
