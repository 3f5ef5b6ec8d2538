"""
Commander scrape task.
"""
from dataclasses import asdict
from typing import Any

import structlog
from celery import shared_task

from mtg_ingest.core.config import settings
from mtg_ingest.db.session import create_session_maker
from mtg_ingest.services import jobs
from mtg_ingest.services.errors import RankingFetchError
from mtg_ingest.tasks.utils import run_async

logger = structlog.get_logger(__name__)


@shared_task(bind=True, name="mtg_ingest.tasks.scraping.scrape_commanders")
def scrape_commanders(self, limit: int | None = None) -> dict[str, Any]:
    """
    Scrape the weekly top commanders and their decklists.

    Not retried by Celery: per-commander failures are retried inside the
    job, and a failed ranking fetch waits for the next scheduled run.
    """
    return run_async(_scrape_commanders_async(limit or settings.scrape_top_commanders))


async def _scrape_commanders_async(limit: int) -> dict[str, Any]:
    session_maker, engine = create_session_maker()
    try:
        async with jobs.commander_scraper(session_maker) as scraper:
            try:
                summary = await scraper.scrape_top_commanders(limit)
            except RankingFetchError as e:
                logger.error("Commander scrape aborted", error=str(e))
                return {"status": "failed", "error": str(e)}

        result = asdict(summary)
        result["status"] = summary.status.value
        result["average_cards_per_commander"] = summary.average_cards_per_commander
        return result
    finally:
        await engine.dispose()
