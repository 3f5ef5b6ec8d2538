"""
ScrapeExecution model: one row per commander scrape run.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mtg_ingest.core.constants import ExecutionStatus
from mtg_ingest.db.base import Base


class ScrapeExecution(Base):
    """
    Bookkeeping for a single scrape run.

    Created as `running` when the run starts, counters are persisted as
    each commander is attempted, and the row is finalized exactly once.
    """

    __tablename__ = "scraper_executions"

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ExecutionStatus.RUNNING.value, index=True
    )
    commanders_attempted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    commanders_succeeded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    commanders_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_cards_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error_summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('running', 'completed', 'failed')",
            name="ck_scraper_executions_status",
        ),
        Index("ix_scraper_executions_started_at", "started_at"),
    )

    @property
    def execution_time_seconds(self) -> Optional[float]:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def success_rate(self) -> float:
        if not self.commanders_attempted:
            return 0.0
        return round(self.commanders_succeeded / self.commanders_attempted * 100, 2)

    def __repr__(self) -> str:
        return f"<ScrapeExecution {self.id} {self.status}>"
