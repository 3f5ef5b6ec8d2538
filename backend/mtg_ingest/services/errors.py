"""
Exceptions raised by the external data sources and the ingestion jobs.
"""
from typing import Optional


class ExternalServiceError(Exception):
    """Base exception for any failed call to an external data source."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransientServiceError(ExternalServiceError):
    """Timeout, network error or 5xx response."""
    pass


class RateLimitError(TransientServiceError):
    """Exception raised when the source answers 429."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class NotFoundError(ExternalServiceError):
    """The requested resource does not exist on the source (404)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class InvalidResponseError(ExternalServiceError):
    """Malformed JSON or a payload missing the expected structure."""
    pass


class RankingFetchError(Exception):
    """The commander ranking could not be fetched; the scrape run is aborted."""
    pass
