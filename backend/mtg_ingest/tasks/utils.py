"""
Shared utilities for Celery tasks.
"""
import asyncio
from typing import Any, Coroutine


def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """
    Run async function in sync context (for Celery tasks).

    asyncio.run() creates a fresh event loop per task and closes it
    afterwards, so every task must build its own engine
    (see mtg_ingest.db.session.create_session_maker).
    """
    return asyncio.run(coro)
