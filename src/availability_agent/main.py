"""Entry point for the availability agent."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import date as date_type
from typing import Optional

import structlog

from .api import build_service, create_app
from .config import Settings
from .models import AvailabilityMode
from .service import AvailabilityError


def configure_logging(level: int = logging.INFO) -> None:
    """Configure structlog + stdlib logging."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stderr,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.KeyValueRenderer(key_order=["timestamp", "level", "event"]),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


LOGGER = structlog.get_logger(__name__)


def bounded_int(minimum: int):
    """argparse ``type`` accepting integers no smaller than ``minimum``."""

    def convert(raw: str) -> int:
        try:
            value = int(raw)
        except ValueError as exc:
            raise argparse.ArgumentTypeError(f"invalid integer: {raw!r}") from exc
        if value < minimum:
            raise argparse.ArgumentTypeError(f"must be >= {minimum}, got {value}")
        return value

    return convert


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """CLI argument parsing."""
    parser = argparse.ArgumentParser(description="Scrape room availability from the booking engine.")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in AvailabilityMode],
        default=AvailabilityMode.CALENDAR.value,
        help="'calendar' scans every room month by month; 'check'/'single' checks one night.",
    )
    parser.add_argument("--months", type=bounded_int(1), default=2, help="Calendar pages to scrape per room.")
    parser.add_argument("--offset", type=bounded_int(0), default=0, help="Calendar pages to skip first.")
    parser.add_argument("--start-date", type=str, help="ISO date (YYYY-MM-DD) to probe; defaults to today.")
    parser.add_argument("--serve", action="store_true", help="Run the HTTP API instead of a one-off query.")
    return parser.parse_args(argv)


def resolve_start_date(value: Optional[str]) -> Optional[date_type]:
    if not value:
        return None
    try:
        return date_type.fromisoformat(value)
    except ValueError as exc:
        raise SystemExit(f"Invalid --start-date: {value}") from exc


async def run_once(settings: Settings, args: argparse.Namespace) -> dict:
    """Answer a single query and release the browser afterwards."""
    provider, service = build_service(settings)
    try:
        response = await service.get_availability(
            months=args.months,
            offset=args.offset,
            mode=args.mode,
            start_date=resolve_start_date(args.start_date),
        )
    finally:
        await provider.shutdown()
    return response.model_dump(mode="json", by_alias=True)


def serve(settings: Settings) -> None:
    import uvicorn

    uvicorn.run(create_app(settings), host=settings.api_host, port=settings.api_port, log_config=None)


def cli(argv: Optional[list[str]] = None) -> int:
    """Console script entrypoint."""
    args = parse_args(argv)
    configure_logging()

    try:
        settings = Settings()
    except Exception as exc:  # pragma: no cover - startup validation
        LOGGER.exception("settings.error", error=str(exc))
        return 2

    if args.serve:
        serve(settings)
        return 0

    try:
        payload = asyncio.run(run_once(settings, args))
    except AvailabilityError as exc:
        print(json.dumps({"error": exc.message, "details": exc.details}), file=sys.stderr)
        return 1

    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(cli())
