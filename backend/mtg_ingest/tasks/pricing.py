"""
Card price refresh task.
"""
from dataclasses import asdict
from typing import Any, Optional

import structlog
from celery import shared_task

from mtg_ingest.db.session import create_session_maker
from mtg_ingest.services import jobs
from mtg_ingest.tasks.utils import run_async

logger = structlog.get_logger(__name__)


@shared_task(bind=True, name="mtg_ingest.tasks.pricing.refresh_card_prices")
def refresh_card_prices(self, card_id: Optional[str] = None) -> dict[str, Any]:
    """
    Refresh prices for every tracked card, or force one card.

    Args:
        card_id: Scryfall id to refresh regardless of today's prices.

    Returns:
        RefreshSummary as a dict.
    """
    if card_id is not None and not card_id.strip():
        raise ValueError("card_id must not be blank")
    return run_async(_refresh_card_prices_async(card_id))


async def _refresh_card_prices_async(card_id: Optional[str]) -> dict[str, Any]:
    session_maker, engine = create_session_maker()
    try:
        async with jobs.price_refresher(session_maker) as refresher:
            summary = await refresher.refresh_prices([card_id] if card_id else None)
        return asdict(summary)
    finally:
        await engine.dispose()
