"""
Daily card price refresh.

Two-phase per card: fetch the quote from the pricing source with no
transaction open, then append the CardPrice row and its alerts in one short
transaction.
"""
import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, Optional, Protocol

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mtg_ingest.core.progress import LoggingProgressReporter, ProgressEvent, ProgressReporter
from mtg_ingest.core.retry import RetryExhausted, with_retry
from mtg_ingest.db.transaction import short_transaction
from mtg_ingest.models import CardPrice
from mtg_ingest.services.errors import ExternalServiceError, NotFoundError
from mtg_ingest.services.price_alerts import AlertEngine
from mtg_ingest.services.scryfall import PriceQuote

logger = structlog.get_logger(__name__)

JOB_NAME = "price_refresh"

# Bound on the size of the IN (...) list used by the freshness query
_FRESHNESS_QUERY_CHUNK = 500


class PriceSource(Protocol):
    async def fetch_prices(self, card_id: str) -> PriceQuote:
        ...


class CardIdSource(Protocol):
    async def list_tracked_card_ids(self) -> list[str]:
        ...


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def is_retryable_price_failure(exc: BaseException) -> bool:
    """Unknown cards are reported as not found instead of being retried."""
    return isinstance(exc, ExternalServiceError) and not isinstance(exc, NotFoundError)


def chunked(items: list, size: int) -> list[list]:
    return [items[i:i + size] for i in range(0, len(items), size)]


@dataclass
class RefreshSummary:
    targeted: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    not_found: int = 0
    alerts_created: int = 0
    batches: int = 0
    duration_seconds: float = 0.0


class PriceRefresher:
    """
    Refresh prices for tracked cards, or for explicit card ids.

    Explicit ids always force a fetch. Otherwise cards that already have a
    price fetched today (UTC) are skipped.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        price_source: PriceSource,
        card_source: CardIdSource,
        alert_engine: AlertEngine,
        reporter: Optional[ProgressReporter] = None,
        batch_size: int = 50,
        batch_delay: float = 0.1,
        max_attempts: int = 5,
        base_delay: float = 1.0,
        jitter: float = 0.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = utcnow,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.session_maker = session_maker
        self.price_source = price_source
        self.card_source = card_source
        self.alert_engine = alert_engine
        self.reporter = reporter or LoggingProgressReporter()
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.jitter = jitter
        self.sleep = sleep
        self.clock = clock

    async def refresh_prices(self, card_ids: Optional[Iterable[str]] = None) -> RefreshSummary:
        started = time.monotonic()
        summary = RefreshSummary()

        forced = card_ids is not None
        if forced:
            targets = {c.strip() for c in card_ids if c and c.strip()}
        else:
            targets = set(await self.card_source.list_tracked_card_ids())
        summary.targeted = len(targets)

        if not forced and targets:
            fresh = await self._fetched_since(targets, start_of_day(self.clock()))
            summary.skipped = len(fresh)
            targets -= fresh

        pending = sorted(targets)
        batches = chunked(pending, self.batch_size)
        summary.batches = len(batches)

        logger.info(
            "Starting price refresh",
            targeted=summary.targeted,
            skipped=summary.skipped,
            pending=len(pending),
            batches=summary.batches,
            forced=forced,
        )

        for batch_number, batch in enumerate(batches, start=1):
            for card_id in batch:
                await self._refresh_card(card_id, summary)

            done = summary.processed + summary.failed + summary.not_found
            self.reporter.on_progress(
                ProgressEvent(
                    job=JOB_NAME,
                    index=done,
                    total=len(pending),
                    message=f"Finished batch {batch_number}/{summary.batches}",
                    details={
                        "batch": batch_number,
                        "processed": summary.processed,
                        "failed": summary.failed,
                        "not_found": summary.not_found,
                    },
                )
            )

            if batch_number < len(batches):
                await self.sleep(self.batch_delay)

        summary.duration_seconds = round(time.monotonic() - started, 3)
        logger.info(
            "Price refresh complete",
            targeted=summary.targeted,
            processed=summary.processed,
            skipped=summary.skipped,
            failed=summary.failed,
            not_found=summary.not_found,
            alerts_created=summary.alerts_created,
            duration_seconds=summary.duration_seconds,
        )
        return summary

    async def _fetched_since(self, card_ids: set[str], since: datetime) -> set[str]:
        fresh: set[str] = set()
        async with self.session_maker() as db:
            for chunk in chunked(sorted(card_ids), _FRESHNESS_QUERY_CHUNK):
                result = await db.execute(
                    select(CardPrice.card_id)
                    .where(CardPrice.card_id.in_(chunk), CardPrice.fetched_at >= since)
                    .distinct()
                )
                fresh.update(result.scalars().all())
        return fresh

    async def _refresh_card(self, card_id: str, summary: RefreshSummary) -> None:
        try:
            result = await with_retry(
                lambda: self.price_source.fetch_prices(card_id),
                max_attempts=self.max_attempts,
                base_delay=self.base_delay,
                is_retryable=is_retryable_price_failure,
                jitter=self.jitter,
                sleep=self.sleep,
                description=f"prices:{card_id}",
            )
        except NotFoundError:
            logger.info("Card not found by pricing source", card_id=card_id)
            summary.not_found += 1
            return

        if isinstance(result, RetryExhausted):
            logger.error("Skipping card after failed price fetch", card_id=card_id, reason=result.reason)
            summary.failed += 1
            return

        quote = result.value
        async with short_transaction(self.session_maker) as db:
            previous = await CardPrice.latest_for(db, card_id)
            current = CardPrice(
                card_id=card_id,
                fetched_at=self.clock(),
                usd_cents=quote.usd_cents,
                usd_foil_cents=quote.usd_foil_cents,
                usd_etched_cents=quote.usd_etched_cents,
            )
            db.add(current)
            alerts = self.alert_engine.evaluate(db, card_id, previous, current)

        summary.processed += 1
        summary.alerts_created += len(alerts)
