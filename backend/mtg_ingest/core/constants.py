"""
Core constants and enums shared by the ingestion jobs and the API.
"""
from enum import Enum


class Treatment(str, Enum):
    """
    Card print variant with an independently tracked price.

    Maps onto Scryfall's usd / usd_foil / usd_etched price fields.
    """
    NORMAL = "normal"
    FOIL = "foil"
    ETCHED = "etched"


class ExecutionStatus(str, Enum):
    """Lifecycle of a commander scrape run."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class AlertDirection(str, Enum):
    INCREASE = "increase"
    DECREASE = "decrease"


# Time periods accepted by the price history endpoint (days)
PRICE_HISTORY_PERIODS = (7, 30, 90, 365)
DEFAULT_PRICE_HISTORY_PERIOD = 30

# EDHREC's weekly ranking page lists at most this many commanders
MAX_TOP_COMMANDERS = 20
