"""
Read access to the inventory application's collection table.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mtg_ingest.models import CollectionItem


class CollectionCardSource:
    """Supplies the distinct card ids referenced by any collection entry."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def list_tracked_card_ids(self) -> list[str]:
        async with self.session_maker() as db:
            result = await db.execute(
                select(CollectionItem.card_id).distinct().order_by(CollectionItem.card_id)
            )
            return list(result.scalars().all())
