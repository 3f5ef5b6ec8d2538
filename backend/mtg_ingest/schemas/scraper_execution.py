"""
Scrape run schemas for the admin endpoints.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ScrapeExecutionResponse(BaseModel):
    id: int
    started_at: datetime
    finished_at: Optional[datetime] = None
    status: str
    commanders_attempted: int
    commanders_succeeded: int
    commanders_failed: int
    total_cards_processed: int
    execution_time_seconds: Optional[float] = None
    success_rate: float
    error_summary: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ScrapeExecutionStats(BaseModel):
    total_executions: int
    completed_executions: int
    failed_executions: int
    running_executions: int
    success_rate: float
