"""
Database session management.

Provides the async session factory for the API, a per-run factory for the
Celery worker and CLI, and the FastAPI dependency.
"""
from collections.abc import AsyncGenerator

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from mtg_ingest.core.config import settings

logger = structlog.get_logger(__name__)


def _engine_options(url: str, application_name: str) -> dict:
    """Pool and connection options; asyncpg-only settings are skipped for SQLite."""
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
        "pool_recycle": 1800,
        "connect_args": {
            "server_settings": {
                "idle_in_transaction_session_timeout": "300000",
                "application_name": application_name,
            },
            "command_timeout": 60,
        },
    }


def create_engine_for(url: str, application_name: str = "mtg_ingest") -> AsyncEngine:
    return create_async_engine(
        url,
        echo=settings.api_debug,
        **_engine_options(url, application_name),
    )


def create_session_maker(
    url: str | None = None,
    application_name: str = "mtg_ingest_worker",
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """
    Create a new engine and session maker for the current event loop.

    Celery tasks and the CLI each run in their own event loop, so they build
    a private engine instead of sharing the API pool.

    Returns:
        Tuple of (async_sessionmaker, engine). Dispose the engine after use.
    """
    engine = create_engine_for(url or settings.database_url_computed, application_name)
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    ), engine


engine = create_engine_for(settings.database_url_computed, "mtg_ingest_api")

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides an async database session.

    Usage:
        @router.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(
                "Database session error",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise
