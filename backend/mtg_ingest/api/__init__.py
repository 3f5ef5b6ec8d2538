"""
API module for FastAPI routes.
"""
from fastapi import APIRouter

from mtg_ingest.api.routes import (
    commanders,
    health,
    price_alerts,
    prices,
    scraper_executions,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(commanders.router, prefix="/commanders", tags=["Commanders"])
api_router.include_router(prices.router, prefix="/cards", tags=["Prices"])
api_router.include_router(price_alerts.router, prefix="/price-alerts", tags=["Price Alerts"])
api_router.include_router(
    scraper_executions.router, prefix="/admin/scraper-executions", tags=["Admin"]
)
