"""
Celery application configuration.

Schedule:
- Commander scrape: weekly, Monday 03:00 UTC (EDHREC publishes a weekly ranking)
- Card price refresh: daily at 02:00 UTC
"""
from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging as celery_setup_logging

from mtg_ingest.core.config import settings
from mtg_ingest.core.logging import setup_logging

celery_app = Celery(
    "mtg_ingest",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "mtg_ingest.tasks.scraping",
        "mtg_ingest.tasks.pricing",
    ],
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Result settings
    result_expires=3600,

    # Worker settings
    worker_prefetch_multiplier=1,

    beat_schedule={
        "commanders-weekly-scrape": {
            "task": "mtg_ingest.tasks.scraping.scrape_commanders",
            "schedule": crontab(day_of_week="mon", hour=3, minute=0),
        },
        "card-prices-daily-refresh": {
            "task": "mtg_ingest.tasks.pricing.refresh_card_prices",
            "schedule": crontab(hour=2, minute=0),
        },
    },

    task_routes={
        "mtg_ingest.tasks.*": {"queue": "ingestion"},
    },
    task_default_queue="default",
)


@celery_setup_logging.connect
def configure_worker_logging(**kwargs):
    """Replace Celery's logging setup with the structlog configuration."""
    setup_logging()
