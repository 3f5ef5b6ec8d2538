"""
Commander and Decklist models.

Commanders are scraped from EDHREC's weekly ranking. Each commander owns
the representative decklist scraped from its EDHREC page.
"""
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mtg_ingest.db.base import Base


class Commander(Base):
    """
    A ranked commander from EDHREC.

    Upserted by name on every scrape; rank is refreshed each run and is not
    unique at the database level because ranks shuffle while a run is in
    progress.
    """

    __tablename__ = "commanders"

    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    edhrec_url: Mapped[str] = mapped_column(String(500), nullable=False)
    last_scraped_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    decklists: Mapped[list["Decklist"]] = relationship(
        "Decklist",
        back_populates="commander",
        foreign_keys="Decklist.commander_id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("rank >= 1", name="ck_commanders_rank_positive"),
    )

    @property
    def primary_decklist(self) -> Optional["Decklist"]:
        """Decklist without a partner. Requires `decklists` to be loaded."""
        for decklist in self.decklists:
            if decklist.partner_id is None:
                return decklist
        return self.decklists[0] if self.decklists else None

    @property
    def card_count(self) -> int:
        decklist = self.primary_decklist
        return len(decklist.contents) if decklist else 0

    def __repr__(self) -> str:
        return f"<Commander #{self.rank} {self.name}>"


class Decklist(Base):
    """
    Card list for a commander, optionally paired with a partner commander.

    `contents` holds entries shaped like:
        {"card_id": str | None, "card_name": str, "quantity": int,
         "category": str, "is_commander": bool}

    `search_text` is the lowercased, space-joined card and commander names;
    PostgreSQL indexes it with to_tsvector for full-text search.
    """

    __tablename__ = "decklists"

    commander_id: Mapped[int] = mapped_column(
        ForeignKey("commanders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    partner_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("commanders.id", ondelete="SET NULL"), nullable=True
    )
    contents: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    search_text: Mapped[str] = mapped_column(Text, nullable=False, default="")

    commander: Mapped["Commander"] = relationship(
        "Commander", back_populates="decklists", foreign_keys=[commander_id]
    )
    partner: Mapped[Optional["Commander"]] = relationship("Commander", foreign_keys=[partner_id])

    __table_args__ = (
        UniqueConstraint("commander_id", "partner_id", name="uq_decklists_commander_partner"),
    )

    @staticmethod
    def build_search_text(
        contents: list[dict[str, Any]],
        commander_name: Optional[str] = None,
        partner_name: Optional[str] = None,
    ) -> str:
        names = [entry["card_name"] for entry in contents if entry.get("card_name")]
        if commander_name:
            names.append(commander_name)
        if partner_name:
            names.append(partner_name)
        return " ".join(names).lower()

    def __repr__(self) -> str:
        return f"<Decklist commander={self.commander_id} partner={self.partner_id} cards={len(self.contents)}>"
