#!/usr/bin/env python3
"""
Run an ingestion job synchronously from the command line.

Usage:
    # Scrape the weekly top commanders (default from settings, max 20)
    mtg-ingest scrape-commanders
    mtg-ingest scrape-commanders --limit 5

    # Refresh prices for every tracked card not yet priced today
    mtg-ingest refresh-prices

    # Force a refresh for specific cards
    mtg-ingest refresh-prices --card-id 0000579f-7b35-4ed3-b44c-db2a538066fe

Exit status:
    0  job completed (individual items may still have failed)
    1  commander ranking could not be fetched
    2  setup error: invalid arguments, invalid settings or no database
"""
import argparse
import asyncio
import sys
from typing import Optional, Sequence, TextIO

import structlog
from pydantic import ValidationError

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_SETUP_ERROR = 2


class SetupError(Exception):
    """Environment problem that prevents a job from starting."""
    pass


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mtg-ingest",
        description="Run commander or price ingestion jobs",
    )
    parser.add_argument("--debug", action="store_true", help="Human-readable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    scrape = subparsers.add_parser("scrape-commanders", help="Scrape top commanders from EDHREC")
    scrape.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Number of commanders to scrape (default: SCRAPE_TOP_COMMANDERS)",
    )

    prices = subparsers.add_parser("refresh-prices", help="Refresh card prices from Scryfall")
    prices.add_argument(
        "--card-id",
        dest="card_ids",
        action="append",
        default=None,
        help="Card to refresh regardless of today's prices (repeatable)",
    )
    return parser


def _print_rule(out: TextIO, title: str) -> None:
    print("\n" + "=" * 60, file=out)
    print(title, file=out)
    print("=" * 60, file=out)


async def check_database(engine) -> None:
    """Raise SetupError if the database cannot be reached."""
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        raise SetupError(f"Database unreachable: {e}") from e


async def scrape_commanders(session_maker, limit: int, reporter, out: TextIO = sys.stdout) -> int:
    from mtg_ingest.services import jobs
    from mtg_ingest.services.errors import RankingFetchError

    try:
        async with jobs.commander_scraper(session_maker, reporter=reporter) as scraper:
            summary = await scraper.scrape_top_commanders(limit)
    except RankingFetchError as e:
        _print_rule(out, "COMMANDER SCRAPE FAILED")
        print(f"Could not fetch the commander ranking: {e}", file=out)
        return EXIT_FATAL

    _print_rule(out, "COMMANDER SCRAPE SUMMARY")
    print(f"Execution: {summary.execution_id} ({summary.status.value})", file=out)
    print(f"Attempted: {summary.attempted}", file=out)
    print(f"Succeeded: {summary.succeeded}", file=out)
    print(f"Failed: {summary.failed}", file=out)
    print(f"Total cards: {summary.total_cards}", file=out)
    print(f"Average cards per commander: {summary.average_cards_per_commander}", file=out)
    print(f"Duration: {summary.duration_seconds}s", file=out)
    if summary.failed_commanders:
        print("\nFailed commanders:", file=out)
        for name in summary.failed_commanders:
            print(f"  {name}", file=out)
    return EXIT_OK


async def refresh_prices(
    session_maker,
    card_ids: Optional[list[str]],
    reporter,
    out: TextIO = sys.stdout,
) -> int:
    from mtg_ingest.services import jobs

    async with jobs.price_refresher(session_maker, reporter=reporter) as refresher:
        summary = await refresher.refresh_prices(card_ids)

    _print_rule(out, "PRICE REFRESH SUMMARY")
    print(f"Targeted: {summary.targeted}", file=out)
    print(f"Processed: {summary.processed}", file=out)
    print(f"Skipped (already priced today): {summary.skipped}", file=out)
    print(f"Failed: {summary.failed}", file=out)
    print(f"Not found: {summary.not_found}", file=out)
    print(f"Alerts created: {summary.alerts_created}", file=out)
    print(f"Batches: {summary.batches}", file=out)
    print(f"Duration: {summary.duration_seconds}s", file=out)
    return EXIT_OK


async def run(args: argparse.Namespace, settings) -> int:
    from sqlalchemy.exc import ArgumentError

    from mtg_ingest.core.constants import MAX_TOP_COMMANDERS
    from mtg_ingest.core.progress import ConsoleProgressReporter
    from mtg_ingest.db.session import create_session_maker

    limit = None
    if args.command == "scrape-commanders":
        limit = args.limit if args.limit is not None else settings.scrape_top_commanders
        if not 1 <= limit <= MAX_TOP_COMMANDERS:
            raise SetupError(f"--limit must be between 1 and {MAX_TOP_COMMANDERS}")

    try:
        session_maker, engine = create_session_maker(
            settings.database_url_computed, application_name="mtg_ingest_cli"
        )
    except ArgumentError as e:
        raise SetupError(f"Invalid database URL: {e}") from e

    reporter = ConsoleProgressReporter()
    try:
        await check_database(engine)
        if args.command == "scrape-commanders":
            return await scrape_commanders(session_maker, limit, reporter)
        return await refresh_prices(session_maker, args.card_ids, reporter)
    finally:
        await engine.dispose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Parse arguments, validate the environment and run the chosen job."""
    args = build_parser().parse_args(argv)

    try:
        from mtg_ingest.core.config import Settings

        settings = Settings()
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        return EXIT_SETUP_ERROR

    from mtg_ingest.core.logging import setup_logging

    setup_logging(debug=args.debug or settings.api_debug)

    try:
        return asyncio.run(run(args, settings))
    except SetupError as e:
        logger.error("Job setup failed", error=str(e))
        print(f"Setup error: {e}", file=sys.stderr)
        return EXIT_SETUP_ERROR


def cli() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    cli()
