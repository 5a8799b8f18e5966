"""Main entry point - run the trend notification job once."""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from .config import Settings
from .job import run_once
from .models import RunResult

logger = logging.getLogger(__name__)

LOG_FORMAT = '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}'


def configure_logging(level: str) -> None:
    """Configure structured JSON logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )
    # httpx logs every request URL at INFO, which would leak the SerpApi key
    logging.getLogger("httpx").setLevel(logging.WARNING)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="trend-notifier",
        description="Post Google Trends 'trending now' lists to Slack.",
    )
    parser.add_argument("--geo", help="Region code, overrides GEO")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Build the payload and log it without sending or persisting",
    )
    return parser.parse_args(argv)


async def main(settings: Settings, dry_run: bool = False) -> RunResult:
    """Run one job and log the outcome."""
    logger.info("=" * 60)
    logger.info("Google Trends notifier starting...")
    logger.info(f"Region: {settings.region}, limit: {settings.max_items}")
    logger.info(f"Store mode: {settings.store_mode.value}, diff enabled: {settings.diff_enabled}")
    logger.info(f"Layout: {settings.layout.value}, order: {settings.row_order.value}")
    logger.info("=" * 60)

    result = await run_once(settings, dry_run=dry_run)

    if result.ok:
        logger.info(
            f"Run finished: {result.items_count} trends, {result.new_count} new, "
            f"notified={result.notified}, persisted={result.persisted}"
        )
    else:
        logger.error(f"Run failed ({result.kind}): {result.message}")
    return result


def run(argv: Optional[List[str]] = None) -> None:
    """Entry point for running the application."""
    args = parse_args(argv)

    overrides = {"geo": args.geo} if args.geo else {}
    try:
        settings = Settings(**overrides)
    except ValidationError as e:
        configure_logging("INFO")
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    configure_logging(settings.log_level)

    try:
        result = asyncio.run(main(settings, dry_run=args.dry_run))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)

    sys.exit(result.exit_code)


if __name__ == "__main__":
    run()
