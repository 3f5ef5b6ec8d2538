"""
Run bookkeeping for the commander scraper.

Every scrape run owns exactly one ScrapeExecution row. `track()` guarantees
the row is finalized even when the run is aborted:

    async with tracker.track() as run:
        ...
        await tracker.record_attempt(run, AttemptOutcome(...))
"""
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mtg_ingest.core.constants import ExecutionStatus
from mtg_ingest.db.transaction import short_transaction
from mtg_ingest.models import ScrapeExecution

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AttemptOutcome:
    commander: str
    succeeded: bool
    cards_processed: int = 0
    error: Optional[str] = None


@dataclass
class RunHandle:
    """In-memory mirror of a ScrapeExecution row owned by one run."""
    execution_id: int
    started_at: datetime
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    total_cards: int = 0
    failed_commanders: list[str] = field(default_factory=list)
    status: ExecutionStatus = ExecutionStatus.RUNNING
    finished_at: Optional[datetime] = None

    @property
    def finished(self) -> bool:
        return self.status != ExecutionStatus.RUNNING


class RunTracker:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def begin_run(self) -> RunHandle:
        started_at = datetime.now(timezone.utc)
        async with short_transaction(self.session_maker) as db:
            execution = ScrapeExecution(
                started_at=started_at,
                status=ExecutionStatus.RUNNING.value,
                commanders_attempted=0,
                commanders_succeeded=0,
                commanders_failed=0,
                total_cards_processed=0,
            )
            db.add(execution)
            await db.flush()
            execution_id = execution.id

        logger.info("Scrape run started", execution_id=execution_id)
        return RunHandle(execution_id=execution_id, started_at=started_at)

    async def record_attempt(self, handle: RunHandle, outcome: AttemptOutcome) -> None:
        """Fold one commander outcome into the run and persist the counters."""
        handle.attempted += 1
        if outcome.succeeded:
            handle.succeeded += 1
            handle.total_cards += outcome.cards_processed
        else:
            handle.failed += 1
            handle.failed_commanders.append(outcome.commander)

        async with short_transaction(self.session_maker) as db:
            execution = await db.get(ScrapeExecution, handle.execution_id)
            execution.commanders_attempted = handle.attempted
            execution.commanders_succeeded = handle.succeeded
            execution.commanders_failed = handle.failed
            execution.total_cards_processed = handle.total_cards

    async def finish_run(
        self,
        handle: RunHandle,
        status: ExecutionStatus,
        error_summary: Optional[str] = None,
    ) -> None:
        """Finalize the run. Only the first call has any effect."""
        if handle.finished:
            logger.debug("Scrape run already finalized", execution_id=handle.execution_id)
            return

        finished_at = datetime.now(timezone.utc)
        if error_summary is None and handle.failed_commanders:
            error_summary = "Failed commanders: " + ", ".join(handle.failed_commanders)

        async with short_transaction(self.session_maker) as db:
            execution = await db.get(ScrapeExecution, handle.execution_id)
            execution.status = status.value
            execution.finished_at = finished_at
            execution.commanders_attempted = handle.attempted
            execution.commanders_succeeded = handle.succeeded
            execution.commanders_failed = handle.failed
            execution.total_cards_processed = handle.total_cards
            execution.error_summary = error_summary

        handle.status = status
        handle.finished_at = finished_at

        log = logger.error if status == ExecutionStatus.FAILED else logger.info
        log(
            "Scrape run finished",
            execution_id=handle.execution_id,
            status=status.value,
            attempted=handle.attempted,
            succeeded=handle.succeeded,
            failed=handle.failed,
            error_summary=error_summary,
        )

    @asynccontextmanager
    async def track(self) -> AsyncGenerator[RunHandle, None]:
        """
        Begin a run and finalize it on exit.

        Normal exit finalizes as completed. Any exception, including
        cancellation and KeyboardInterrupt, finalizes as failed with the
        counts accumulated so far and is then re-raised.
        """
        handle = await self.begin_run()
        try:
            yield handle
        except BaseException as exc:
            error_summary = f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__
            await self.finish_run(handle, ExecutionStatus.FAILED, error_summary)
            raise
        else:
            await self.finish_run(handle, ExecutionStatus.COMPLETED)
