"""Database package."""
from mtg_ingest.db.base import Base
from mtg_ingest.db.session import (
    async_session_maker,
    create_session_maker,
    engine,
    get_db,
)
from mtg_ingest.db.transaction import atomic, short_transaction

__all__ = [
    "Base",
    "async_session_maker",
    "create_session_maker",
    "engine",
    "get_db",
    "atomic",
    "short_transaction",
]
