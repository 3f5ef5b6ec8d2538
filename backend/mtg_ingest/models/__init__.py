"""
SQLAlchemy models for commander and price ingestion.
"""
from mtg_ingest.models.card_price import CardPrice
from mtg_ingest.models.collection_item import CollectionItem
from mtg_ingest.models.commander import Commander, Decklist
from mtg_ingest.models.price_alert import PriceAlert
from mtg_ingest.models.scraper_execution import ScrapeExecution

__all__ = [
    "CardPrice",
    "CollectionItem",
    "Commander",
    "Decklist",
    "PriceAlert",
    "ScrapeExecution",
]
