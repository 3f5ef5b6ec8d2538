"""
PriceAlert model.

Written once by the price refresh; dismissal is the only later change.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from mtg_ingest.db.base import Base


class PriceAlert(Base):
    __tablename__ = "price_alerts"

    card_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    treatment: Mapped[str] = mapped_column(String(20), nullable=False)
    old_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    new_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    percentage_change: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False)
    direction: Mapped[str] = mapped_column(String(20), nullable=False)
    dismissed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    dismissed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("treatment IN ('normal', 'foil', 'etched')", name="ck_price_alerts_treatment"),
        CheckConstraint("direction IN ('increase', 'decrease')", name="ck_price_alerts_direction"),
        CheckConstraint("old_price_cents >= 0 AND new_price_cents >= 0", name="ck_price_alerts_prices"),
        Index("ix_price_alerts_dismissed_created_at", "dismissed", "created_at"),
    )

    def dismiss(self, when: Optional[datetime] = None) -> None:
        if self.dismissed:
            return
        self.dismissed = True
        self.dismissed_at = when or datetime.now(timezone.utc)

    def __repr__(self) -> str:
        return f"<PriceAlert {self.card_id} {self.treatment} {self.direction} {self.percentage_change}%>"
