"""
Core module containing configuration and shared utilities.
"""
from mtg_ingest.core.config import settings
from mtg_ingest.core.constants import AlertDirection, ExecutionStatus, Treatment

__all__ = [
    "settings",
    "AlertDirection",
    "ExecutionStatus",
    "Treatment",
]
