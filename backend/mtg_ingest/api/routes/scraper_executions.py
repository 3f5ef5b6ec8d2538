"""
Admin endpoints for commander scrape runs.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mtg_ingest.core.constants import ExecutionStatus
from mtg_ingest.db.session import get_db
from mtg_ingest.models import ScrapeExecution
from mtg_ingest.schemas.scraper_execution import ScrapeExecutionResponse, ScrapeExecutionStats

router = APIRouter()

MAX_EXECUTIONS = 50


@router.get("", response_model=list[ScrapeExecutionResponse])
async def list_scraper_executions(
    status_filter: Optional[str] = Query(None, alias="status", description="running, completed or failed"),
    start_date: Optional[date] = Query(None, description="Runs started on or after this day"),
    end_date: Optional[date] = Query(None, description="Runs started on or before this day"),
    limit: int = Query(MAX_EXECUTIONS, ge=1, description="Capped at 50"),
    db: AsyncSession = Depends(get_db),
) -> list[ScrapeExecutionResponse]:
    """Most recent runs first."""
    query = select(ScrapeExecution)

    if status_filter:
        try:
            ExecutionStatus(status_filter)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid status: {status_filter}. Valid statuses: {[s.value for s in ExecutionStatus]}",
            )
        query = query.where(ScrapeExecution.status == status_filter)

    if start_date:
        query = query.where(
            ScrapeExecution.started_at >= datetime.combine(start_date, time.min, tzinfo=timezone.utc)
        )
    if end_date:
        next_day = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
        query = query.where(ScrapeExecution.started_at < next_day)

    query = query.order_by(ScrapeExecution.started_at.desc()).limit(min(limit, MAX_EXECUTIONS))
    result = await db.execute(query)
    return [ScrapeExecutionResponse.model_validate(e) for e in result.scalars().all()]


@router.get("/stats", response_model=ScrapeExecutionStats)
async def scraper_execution_stats(db: AsyncSession = Depends(get_db)) -> ScrapeExecutionStats:
    result = await db.execute(
        select(ScrapeExecution.status, func.count(ScrapeExecution.id)).group_by(ScrapeExecution.status)
    )
    counts = {row[0]: row[1] for row in result.all()}

    total = sum(counts.values())
    completed = counts.get(ExecutionStatus.COMPLETED.value, 0)
    return ScrapeExecutionStats(
        total_executions=total,
        completed_executions=completed,
        failed_executions=counts.get(ExecutionStatus.FAILED.value, 0),
        running_executions=counts.get(ExecutionStatus.RUNNING.value, 0),
        success_rate=round(completed / total * 100, 2) if total else 0.0,
    )


@router.get("/{execution_id}", response_model=ScrapeExecutionResponse)
async def get_scraper_execution(
    execution_id: int,
    db: AsyncSession = Depends(get_db),
) -> ScrapeExecutionResponse:
    execution = await db.get(ScrapeExecution, execution_id)
    if execution is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Execution not found")
    return ScrapeExecutionResponse.model_validate(execution)
