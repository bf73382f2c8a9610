import argparse
import json
import sys

from loguru import logger

from app import schemas
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.services.market_service import EventQuery, InvalidQueryError, MarketQuery, MarketService
from app.services.scan_service import InvalidScanParameters, ScanRequest, ScanService
from ingestion.client import PolymarketApiError, PolymarketClient


def _positive_int(value: str) -> int:
    try:
        parsed = int(value, 10)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("Value must be a positive integer.") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("Value must be a positive integer.")
    return parsed


def _positive_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("Value must be a positive number.") from exc
    if not parsed > 0 or parsed == float("inf"):
        raise argparse.ArgumentTypeError("Value must be a positive number.")
    return parsed


def _non_negative_float(value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("Value must be a non-negative number.") from exc
    if not parsed >= 0 or parsed == float("inf"):
        raise argparse.ArgumentTypeError("Value must be a non-negative number.")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Polymarket market scanning and microstructure analysis")
    parser.add_argument("--minimal", action="store_true", help="Output minified JSON")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan = subparsers.add_parser("scan", help="Scan Polymarket for potentially mispriced opportunities")
    scan.add_argument("--query", default=None, help="Filter markets by question or slug text")
    scan.add_argument(
        "--limit", type=_positive_int, default=settings.scan_default_limit, help="Max ranked signals to return"
    )
    scan.add_argument(
        "--min-volume",
        type=_non_negative_float,
        default=0.0,
        help="Minimum 24h volume filter for scan candidates",
    )
    scan.add_argument(
        "--max-spread-bps",
        type=_positive_float,
        default=settings.scan_default_max_spread_bps,
        help="Maximum spread (bps) allowed in final ranking",
    )
    scan.add_argument(
        "--time-horizon-hours",
        type=_positive_float,
        default=settings.scan_default_time_horizon_hours,
        help="Horizon used for momentum dislocation weighting",
    )
    scan.add_argument(
        "--concurrency",
        type=_positive_int,
        default=settings.scan_default_concurrency,
        help="Parallel orderbook fetches",
    )
    scan.add_argument("--trace", action="store_true", help="Include deterministic scoring trace in output")

    markets = subparsers.add_parser("markets", help="List active Polymarket markets")
    markets.add_argument("--query", default=None)
    markets.add_argument("--limit", type=_positive_int, default=20)
    markets.add_argument("--min-volume", type=_non_negative_float, default=0.0)
    markets.add_argument("--min-liquidity", type=_non_negative_float, default=0.0)

    events = subparsers.add_parser("events", help="List active Polymarket events")
    events.add_argument("--query", default=None)
    events.add_argument("--limit", type=_positive_int, default=20)
    events.add_argument("--min-volume", type=_non_negative_float, default=0.0)
    events.add_argument("--min-liquidity", type=_non_negative_float, default=0.0)

    return parser


def run(args: argparse.Namespace, client: PolymarketClient) -> dict[str, object]:
    if args.command == "scan":
        report = ScanService(client).scan(
            ScanRequest(
                query=args.query,
                limit=args.limit,
                min_volume=args.min_volume,
                max_spread_bps=args.max_spread_bps,
                time_horizon_hours=args.time_horizon_hours,
                concurrency=args.concurrency,
                include_trace=args.trace,
            )
        )
        payload = schemas.ScanResponse.from_report(report).model_dump(mode="json")
        if not args.trace:
            payload.pop("trace", None)
        return payload

    service = MarketService(client)
    if args.command == "markets":
        result = service.list_markets(
            MarketQuery(
                query=args.query,
                limit=args.limit,
                min_volume=args.min_volume,
                min_liquidity=args.min_liquidity,
            )
        )
        items = [schemas.Market.from_snapshot(snapshot) for snapshot in result.markets]
        return schemas.MarketList(
            query=result.query,
            generated_at=result.generated_at,
            returned_markets=len(items),
            items=items,
            disclaimer=result.disclaimer,
        ).model_dump(mode="json")

    result = service.list_active_events(
        EventQuery(
            query=args.query,
            limit=args.limit,
            min_volume=args.min_volume,
            min_liquidity=args.min_liquidity,
        )
    )
    items = [schemas.Event.from_active_event(event) for event in result.events]
    return schemas.EventList(
        query=result.query,
        generated_at=result.generated_at,
        returned_events=len(items),
        items=items,
        disclaimer=result.disclaimer,
    ).model_dump(mode="json")


def _output_json(payload: dict[str, object], minimal: bool) -> None:
    print(json.dumps(payload) if minimal else json.dumps(payload, indent=2))


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(get_settings().log_level)

    try:
        with PolymarketClient() as client:
            payload = run(args, client)
    except (InvalidScanParameters, InvalidQueryError, PolymarketApiError) as exc:
        logger.error("{} failed: {}", args.command, exc)
        _output_json({"ok": False, "error": str(exc)}, args.minimal)
        return 1

    _output_json(payload, args.minimal)
    return 0


if __name__ == "__main__":
    sys.exit(main())
