"""
Celery tasks for the scheduled ingestion jobs.

Includes:
- Commander scrape: EDHREC weekly ranking and decklists
- Price refresh: Scryfall prices for tracked cards, with change alerts
"""
from mtg_ingest.tasks.celery_app import celery_app

__all__ = ["celery_app"]
