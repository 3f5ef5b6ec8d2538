"""
Main FastAPI application entry point.

Read surface over the ingestion tables plus alert dismissal.
"""
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from mtg_ingest import __version__
from mtg_ingest.api import api_router
from mtg_ingest.core.config import settings
from mtg_ingest.core.logging import setup_logging
from mtg_ingest.db.session import engine

setup_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup and shutdown events.
    """
    logger.info("Starting MTG ingest API", version=__version__, debug=settings.api_debug)
    yield

    await engine.dispose()
    logger.info("Shutting down MTG ingest API")


app = FastAPI(
    title=settings.app_name,
    description="Commander rankings, decklists and card price history",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unhandled exceptions."""
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


app.include_router(api_router, prefix="/api")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests."""
    response = await call_next(request)
    logger.debug(
        "Request",
        method=request.method,
        path=request.url.path,
        status=response.status_code,
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mtg_ingest.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
    )
