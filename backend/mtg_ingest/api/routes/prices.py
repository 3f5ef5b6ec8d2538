"""
Card price history endpoint.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mtg_ingest.core.constants import (
    DEFAULT_PRICE_HISTORY_PERIOD,
    PRICE_HISTORY_PERIODS,
    Treatment,
)
from mtg_ingest.db.session import get_db
from mtg_ingest.models import CardPrice
from mtg_ingest.schemas.price import CardPricePoint, PriceHistoryResponse, TreatmentSummary
from mtg_ingest.services.price_refresher import start_of_day

router = APIRouter()


def normalize_time_period(value: Optional[str]) -> str:
    """'all' or one of the known day counts; anything else falls back to 30."""
    if value == "all":
        return "all"
    try:
        days = int(value) if value is not None else DEFAULT_PRICE_HISTORY_PERIOD
    except ValueError:
        return str(DEFAULT_PRICE_HISTORY_PERIOD)
    if days not in PRICE_HISTORY_PERIODS:
        days = DEFAULT_PRICE_HISTORY_PERIOD
    return str(days)


def summarize_treatment(prices: list[CardPrice], treatment: Treatment) -> Optional[TreatmentSummary]:
    known = [p.price_for(treatment) for p in prices if p.price_for(treatment) is not None]
    if not known:
        return None

    start, end = known[0], known[-1]
    pct = 0.0 if start == 0 else round((end - start) / start * 100, 2)
    if pct > 0:
        direction = "up"
    elif pct < 0:
        direction = "down"
    else:
        direction = "stable"
    return TreatmentSummary(
        start_price_cents=start,
        end_price_cents=end,
        percentage_change=pct,
        direction=direction,
    )


@router.get("/{card_id}/price-history", response_model=PriceHistoryResponse)
async def get_price_history(
    card_id: str,
    time_period: Optional[str] = Query(None, description="7, 30, 90, 365 or 'all' (default 30)"),
    db: AsyncSession = Depends(get_db),
) -> PriceHistoryResponse:
    """Price points for a card, oldest first, with a per-treatment summary."""
    period = normalize_time_period(time_period)
    now = datetime.now(timezone.utc)
    start = None if period == "all" else start_of_day(now - timedelta(days=int(period)))

    prices = await CardPrice.for_date_range(db, card_id, start, now)

    summary = {}
    for treatment in Treatment:
        treatment_summary = summarize_treatment(prices, treatment)
        if treatment_summary is not None:
            summary[treatment.value] = treatment_summary

    return PriceHistoryResponse(
        card_id=card_id,
        time_period=period,
        prices=[CardPricePoint.model_validate(p) for p in prices],
        summary=summary,
    )
