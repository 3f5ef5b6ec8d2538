"""
Wiring for the two ingestion jobs from Settings.

Shared by the Celery tasks and the CLI so both run identically configured
jobs; only the progress reporter differs.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mtg_ingest.core.config import Settings, get_settings
from mtg_ingest.core.progress import ProgressReporter
from mtg_ingest.services.collection import CollectionCardSource
from mtg_ingest.services.commander_scraper import CommanderScraper
from mtg_ingest.services.edhrec import EDHRECClient
from mtg_ingest.services.price_alerts import AlertEngine
from mtg_ingest.services.price_refresher import PriceRefresher
from mtg_ingest.services.run_tracker import RunTracker
from mtg_ingest.services.scryfall import ScryfallClient


@asynccontextmanager
async def commander_scraper(
    session_maker: async_sessionmaker[AsyncSession],
    reporter: Optional[ProgressReporter] = None,
    settings: Optional[Settings] = None,
) -> AsyncGenerator[CommanderScraper, None]:
    """Yield a CommanderScraper backed by live EDHREC and Scryfall clients."""
    settings = settings or get_settings()
    async with EDHRECClient() as edhrec, ScryfallClient() as scryfall:
        yield CommanderScraper(
            session_maker,
            ranking_source=edhrec,
            card_resolver=scryfall,
            run_tracker=RunTracker(session_maker),
            reporter=reporter,
            max_attempts=settings.scraper_max_attempts,
            base_delay=settings.scraper_backoff_base_seconds,
            jitter=settings.retry_jitter_seconds,
        )


@asynccontextmanager
async def price_refresher(
    session_maker: async_sessionmaker[AsyncSession],
    reporter: Optional[ProgressReporter] = None,
    settings: Optional[Settings] = None,
) -> AsyncGenerator[PriceRefresher, None]:
    """Yield a PriceRefresher backed by a live Scryfall client."""
    settings = settings or get_settings()
    async with ScryfallClient() as scryfall:
        yield PriceRefresher(
            session_maker,
            price_source=scryfall,
            card_source=CollectionCardSource(session_maker),
            alert_engine=AlertEngine(
                threshold_pct=settings.price_alert_threshold_pct,
                decrease_threshold_pct=settings.price_alert_decrease_threshold_pct,
            ),
            reporter=reporter,
            batch_size=settings.price_batch_size,
            batch_delay=settings.price_batch_delay_seconds,
            max_attempts=settings.pricing_max_attempts,
            base_delay=settings.pricing_backoff_base_seconds,
            jitter=settings.retry_jitter_seconds,
        )
