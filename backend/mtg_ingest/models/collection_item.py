"""
CollectionItem model.

The table belongs to the inventory application; ingestion only reads the
distinct card ids it references.
"""
from typing import Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from mtg_ingest.db.base import Base


class CollectionItem(Base):
    __tablename__ = "collection_items"

    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    card_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    treatment: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    collection_type: Mapped[str] = mapped_column(String(20), nullable=False, default="inventory")
