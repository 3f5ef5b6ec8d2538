"""
Price alert endpoints.

Dismissal is the only change allowed on an alert after it is created.
"""
import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mtg_ingest.db.session import get_db
from mtg_ingest.models import PriceAlert
from mtg_ingest.schemas.price import PriceAlertResponse

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.get("", response_model=list[PriceAlertResponse])
async def list_price_alerts(
    include_dismissed: bool = Query(False, description="Include dismissed alerts"),
    limit: int = Query(10, ge=1, le=100, description="Maximum number of results"),
    db: AsyncSession = Depends(get_db),
) -> list[PriceAlertResponse]:
    """Most recent alerts first."""
    query = select(PriceAlert)
    if not include_dismissed:
        query = query.where(PriceAlert.dismissed.is_(False))
    query = query.order_by(PriceAlert.created_at.desc(), PriceAlert.id.desc()).limit(limit)

    result = await db.execute(query)
    return [PriceAlertResponse.model_validate(a) for a in result.scalars().all()]


@router.patch("/{alert_id}/dismiss", response_model=PriceAlertResponse)
async def dismiss_price_alert(alert_id: int, db: AsyncSession = Depends(get_db)) -> PriceAlertResponse:
    alert = await db.get(PriceAlert, alert_id)
    if alert is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Alert not found")

    alert.dismiss()
    await db.commit()
    await db.refresh(alert)

    logger.info("Price alert dismissed", alert_id=alert_id, card_id=alert.card_id)
    return PriceAlertResponse.model_validate(alert)
