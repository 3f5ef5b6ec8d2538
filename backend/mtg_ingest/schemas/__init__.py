"""
Pydantic schemas for API request/response validation.
"""
from mtg_ingest.schemas.commander import CommanderDetail, CommanderSummary, DecklistEntry
from mtg_ingest.schemas.price import (
    CardPricePoint,
    PriceAlertResponse,
    PriceHistoryResponse,
    TreatmentSummary,
)
from mtg_ingest.schemas.scraper_execution import ScrapeExecutionResponse, ScrapeExecutionStats

__all__ = [
    "CommanderDetail",
    "CommanderSummary",
    "DecklistEntry",
    "CardPricePoint",
    "PriceAlertResponse",
    "PriceHistoryResponse",
    "TreatmentSummary",
    "ScrapeExecutionResponse",
    "ScrapeExecutionStats",
]
