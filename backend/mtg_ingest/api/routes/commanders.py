"""
Commander read endpoints.
"""
import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mtg_ingest.db.session import get_db
from mtg_ingest.models import Commander
from mtg_ingest.schemas.commander import CommanderDetail, CommanderSummary, DecklistEntry

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.get("", response_model=list[CommanderSummary])
async def list_commanders(db: AsyncSession = Depends(get_db)) -> list[CommanderSummary]:
    """All scraped commanders, best rank first."""
    result = await db.execute(
        select(Commander)
        .options(selectinload(Commander.decklists))
        .order_by(Commander.rank.asc(), Commander.name.asc())
    )
    return [CommanderSummary.model_validate(c) for c in result.scalars().all()]


@router.get("/{commander_id}", response_model=CommanderDetail)
async def get_commander(commander_id: int, db: AsyncSession = Depends(get_db)) -> CommanderDetail:
    result = await db.execute(
        select(Commander)
        .options(selectinload(Commander.decklists))
        .where(Commander.id == commander_id)
    )
    commander = result.scalar_one_or_none()
    if commander is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Commander not found")

    decklist = commander.primary_decklist
    cards = [DecklistEntry.model_validate(entry) for entry in (decklist.contents if decklist else [])]
    return CommanderDetail(
        **CommanderSummary.model_validate(commander).model_dump(),
        cards=cards,
    )
