"""
Commander scrape job.

Fetches the EDHREC ranking, upserts each commander and replaces its
decklist. One commander's failure never aborts the run; only a failed
ranking fetch is fatal.
"""
import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Protocol

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mtg_ingest.core.constants import MAX_TOP_COMMANDERS, ExecutionStatus
from mtg_ingest.core.progress import LoggingProgressReporter, ProgressEvent, ProgressReporter
from mtg_ingest.core.retry import RetryExhausted, with_retry
from mtg_ingest.db.transaction import atomic, short_transaction
from mtg_ingest.models import Commander, Decklist
from mtg_ingest.services.edhrec import DecklistCard, RankedCommander, slug_from_url
from mtg_ingest.services.errors import ExternalServiceError, RankingFetchError
from mtg_ingest.services.run_tracker import AttemptOutcome, RunTracker

logger = structlog.get_logger(__name__)

JOB_NAME = "commander_scrape"


class RankingSource(Protocol):
    async def fetch_top_commanders(self, limit: int) -> list[RankedCommander]:
        ...

    async def fetch_commander_decklist(self, commander_url: str) -> list[DecklistCard]:
        ...


class CardResolver(Protocol):
    async def resolve_card_ids(self, names: list[str]) -> dict[str, Optional[str]]:
        ...


@dataclass
class RunSummary:
    execution_id: int
    status: ExecutionStatus
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    failed_commanders: list[str] = field(default_factory=list)
    total_cards: int = 0
    duration_seconds: float = 0.0

    @property
    def average_cards_per_commander(self) -> float:
        if not self.succeeded:
            return 0.0
        return round(self.total_cards / self.succeeded, 2)


class CommanderScraper:
    """
    Scrape the top N commanders and their decklists.

    Each commander row is committed before its decklist is fetched, so a
    commander whose decklist never arrives still exists with its current
    rank. The decklist replace and `last_scraped_at` update happen in one
    transaction.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        ranking_source: RankingSource,
        card_resolver: Optional[CardResolver] = None,
        run_tracker: Optional[RunTracker] = None,
        reporter: Optional[ProgressReporter] = None,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        jitter: float = 0.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.session_maker = session_maker
        self.ranking_source = ranking_source
        self.card_resolver = card_resolver
        self.run_tracker = run_tracker or RunTracker(session_maker)
        self.reporter = reporter or LoggingProgressReporter()
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.jitter = jitter
        self.sleep = sleep

    async def scrape_top_commanders(self, n: int) -> RunSummary:
        """
        Scrape the top `n` commanders.

        Raises:
            ValueError: `n` is outside 1..20, the size of the EDHREC ranking.
            RankingFetchError: The ranking could not be fetched. The run is
                recorded as failed before this propagates.
        """
        if not 1 <= n <= MAX_TOP_COMMANDERS:
            raise ValueError(f"n must be between 1 and {MAX_TOP_COMMANDERS}")

        started = time.monotonic()
        async with self.run_tracker.track() as run:
            try:
                ranking = await self.ranking_source.fetch_top_commanders(n)
            except ExternalServiceError as e:
                logger.error("Failed to fetch commander ranking", error=str(e))
                raise RankingFetchError(f"Could not fetch commander ranking: {e}") from e

            targets = sorted(ranking, key=lambda c: c.rank)[:n]
            total = len(targets)
            logger.info("Scraping commanders", requested=n, total=total, execution_id=run.execution_id)

            for index, entry in enumerate(targets, start=1):
                outcome = await self._scrape_one(entry)
                await self.run_tracker.record_attempt(run, outcome)
                self.reporter.on_progress(
                    ProgressEvent(
                        job=JOB_NAME,
                        index=index,
                        total=total,
                        message=(
                            f"Scraped {entry.name}" if outcome.succeeded
                            else f"Failed to scrape {entry.name}"
                        ),
                        details={
                            "commander": entry.name,
                            "rank": entry.rank,
                            "status": "success" if outcome.succeeded else "failed",
                            "cards": outcome.cards_processed,
                        },
                    )
                )

        summary = RunSummary(
            execution_id=run.execution_id,
            status=run.status,
            attempted=run.attempted,
            succeeded=run.succeeded,
            failed=run.failed,
            failed_commanders=list(run.failed_commanders),
            total_cards=run.total_cards,
            duration_seconds=round(time.monotonic() - started, 3),
        )
        logger.info(
            "Commander scrape complete",
            execution_id=summary.execution_id,
            succeeded=summary.succeeded,
            failed=summary.failed,
            failed_commanders=summary.failed_commanders,
            total_cards=summary.total_cards,
            average_cards_per_commander=summary.average_cards_per_commander,
            duration_seconds=summary.duration_seconds,
        )
        return summary

    async def _scrape_one(self, entry: RankedCommander) -> AttemptOutcome:
        commander_id = await self._upsert_commander(entry)

        result = await with_retry(
            lambda: self.ranking_source.fetch_commander_decklist(entry.url),
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            jitter=self.jitter,
            sleep=self.sleep,
            description=f"decklist:{entry.name}",
        )
        if isinstance(result, RetryExhausted):
            logger.warning(
                "Giving up on commander decklist",
                commander=entry.name,
                attempts=result.attempts,
                reason=result.reason,
            )
            return AttemptOutcome(commander=entry.name, succeeded=False, error=result.reason)

        cards = result.value
        if not cards:
            logger.warning("Empty decklist returned", commander=entry.name)
            return AttemptOutcome(commander=entry.name, succeeded=False, error="empty decklist")

        contents = await self._build_contents(cards)
        await self._replace_decklist(commander_id, entry.name, contents)
        return AttemptOutcome(
            commander=entry.name,
            succeeded=True,
            cards_processed=sum(c["quantity"] for c in contents),
        )

    async def _upsert_commander(self, entry: RankedCommander) -> int:
        async with short_transaction(self.session_maker) as db:
            result = await db.execute(select(Commander).where(Commander.name == entry.name))
            commander = result.scalar_one_or_none()
            if commander is None:
                commander = Commander(name=entry.name)
                db.add(commander)
            commander.rank = entry.rank
            commander.edhrec_url = entry.url
            commander.slug = slug_from_url(entry.url)
            await db.flush()
            return commander.id

    async def _build_contents(self, cards: list[DecklistCard]) -> list[dict]:
        card_ids: dict[str, Optional[str]] = {}
        if self.card_resolver is not None:
            card_ids = await self.card_resolver.resolve_card_ids([c.name for c in cards])

        return [
            {
                "card_id": card_ids.get(card.name),
                "card_name": card.name,
                "quantity": card.quantity,
                "category": card.category,
                "is_commander": card.is_commander,
            }
            for card in cards
        ]

    async def _replace_decklist(self, commander_id: int, commander_name: str, contents: list[dict]) -> None:
        """Delete and recreate the commander's decklist in one transaction."""
        async with self.session_maker() as db:
            async with atomic(db):
                await db.execute(
                    delete(Decklist).where(
                        Decklist.commander_id == commander_id,
                        Decklist.partner_id.is_(None),
                    )
                )
                db.add(
                    Decklist(
                        commander_id=commander_id,
                        partner_id=None,
                        contents=contents,
                        search_text=Decklist.build_search_text(contents, commander_name),
                    )
                )
                commander = await db.get(Commander, commander_id)
                commander.last_scraped_at = datetime.now(timezone.utc)
