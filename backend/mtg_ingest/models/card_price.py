"""
CardPrice model.

Append-only time series of Scryfall prices. The current price of a card is
the row with the greatest `fetched_at`; the composite descending index keeps
that lookup off a table scan.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, select, text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Mapped, mapped_column

from mtg_ingest.core.constants import Treatment
from mtg_ingest.db.base import Base

TREATMENT_COLUMNS = {
    Treatment.NORMAL: "usd_cents",
    Treatment.FOIL: "usd_foil_cents",
    Treatment.ETCHED: "usd_etched_cents",
}


class CardPrice(Base):
    """
    Prices in integer cents for each treatment of a card at `fetched_at`.

    Any treatment may be None when Scryfall has no price for it.
    """

    __tablename__ = "card_prices"

    card_id: Mapped[str] = mapped_column(String(36), nullable=False)
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    usd_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    usd_foil_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    usd_etched_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index(
            "ix_card_prices_card_id_fetched_at",
            "card_id",
            text("fetched_at DESC"),
        ),
        CheckConstraint("usd_cents IS NULL OR usd_cents >= 0", name="ck_card_prices_usd_non_negative"),
        CheckConstraint(
            "usd_foil_cents IS NULL OR usd_foil_cents >= 0", name="ck_card_prices_foil_non_negative"
        ),
        CheckConstraint(
            "usd_etched_cents IS NULL OR usd_etched_cents >= 0", name="ck_card_prices_etched_non_negative"
        ),
    )

    def price_for(self, treatment: Treatment | str) -> Optional[int]:
        """Price in cents for the treatment's own column (no fallback to normal)."""
        return getattr(self, TREATMENT_COLUMNS[Treatment(treatment)])

    @classmethod
    async def latest_for(cls, db: AsyncSession, card_id: str) -> Optional["CardPrice"]:
        result = await db.execute(
            select(cls)
            .where(cls.card_id == card_id)
            .order_by(cls.fetched_at.desc(), cls.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    @classmethod
    async def for_date_range(
        cls,
        db: AsyncSession,
        card_id: str,
        start: Optional[datetime],
        end: datetime,
    ) -> list["CardPrice"]:
        """Rows for `card_id` fetched between `start` and `end`, oldest first."""
        query = select(cls).where(cls.card_id == card_id, cls.fetched_at <= end)
        if start is not None:
            query = query.where(cls.fetched_at >= start)
        result = await db.execute(query.order_by(cls.fetched_at.asc(), cls.id.asc()))
        return list(result.scalars().all())

    def __repr__(self) -> str:
        return f"<CardPrice {self.card_id} @ {self.fetched_at}>"
