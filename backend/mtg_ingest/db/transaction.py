"""
Transaction management utilities.

Provides context managers for explicit transaction boundaries
to prevent partial commits on multi-step operations.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Execute operations atomically - all or nothing.

    Usage:
        async with atomic(db) as session:
            await session.execute(delete(Decklist).where(...))
            session.add(new_decklist)
            # Auto-commits on success, auto-rollbacks on exception

    Raises:
        Exception: Re-raises any exception after rollback
    """
    try:
        yield db
        await db.commit()
    except Exception as e:
        await db.rollback()
        logger.error("Transaction rolled back", error=str(e), error_type=type(e).__name__)
        raise


@asynccontextmanager
async def short_transaction(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Open a session, run one short unit of work and commit it.

    Jobs use this around each write so no connection is held while
    waiting on an external source.

    Example:
        async with short_transaction(session_maker) as db:
            db.add(CardPrice(...))
        # Committed and connection released here
    """
    async with session_maker() as db:
        async with atomic(db):
            yield db
