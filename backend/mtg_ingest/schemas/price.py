"""
Price history and price alert schemas.
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict


class CardPricePoint(BaseModel):
    fetched_at: datetime
    usd_cents: Optional[int] = None
    usd_foil_cents: Optional[int] = None
    usd_etched_cents: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class TreatmentSummary(BaseModel):
    """First and last known price of one treatment within the period."""

    start_price_cents: int
    end_price_cents: int
    percentage_change: float
    direction: Literal["up", "down", "stable"]


class PriceHistoryResponse(BaseModel):
    card_id: str
    time_period: str
    prices: list[CardPricePoint]
    summary: dict[str, TreatmentSummary]


class PriceAlertResponse(BaseModel):
    id: int
    card_id: str
    treatment: str
    old_price_cents: int
    new_price_cents: int
    percentage_change: float
    direction: str
    dismissed: bool
    dismissed_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
