"""
Commander-related Pydantic schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class DecklistEntry(BaseModel):
    card_id: Optional[str] = None
    card_name: str
    quantity: int = 1
    category: Optional[str] = None
    is_commander: bool = False


class CommanderSummary(BaseModel):
    """Commander row for the ranked list."""

    id: int
    name: str
    slug: str
    rank: int
    edhrec_url: str
    last_scraped_at: Optional[datetime] = None
    card_count: int

    model_config = ConfigDict(from_attributes=True)


class CommanderDetail(CommanderSummary):
    """Commander with its primary decklist."""

    cards: list[DecklistEntry]
