"""
Retry with exponential backoff for external service calls.

`with_retry` wraps any awaitable factory and returns a tagged result instead
of raising once the attempt budget is spent:

    result = await with_retry(
        lambda: client.fetch_commander_decklist(url),
        max_attempts=3,
        base_delay=1.0,
        description="decklist",
    )
    if isinstance(result, RetryExhausted):
        ...  # per-item failure, keep going

Only failures accepted by `is_retryable` are caught. Anything else (a bug,
a database error) propagates to the caller untouched.
"""
import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar, Union

import structlog

from mtg_ingest.services.errors import ExternalServiceError, RateLimitError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetrySuccess(Generic[T]):
    value: T
    attempts: int


@dataclass(frozen=True)
class RetryExhausted:
    error: BaseException
    attempts: int

    @property
    def reason(self) -> str:
        return f"{type(self.error).__name__}: {self.error}"


RetryResult = Union[RetrySuccess[T], RetryExhausted]


def is_external_failure(exc: BaseException) -> bool:
    """
    Default retry predicate: every external-call failure is retried.

    Not-found and malformed responses are retried too, the same as timeouts
    and rate limits.
    """
    return isinstance(exc, ExternalServiceError)


def backoff_delay(attempt: int, base_delay: float, jitter: float = 0.0) -> float:
    """Delay before the retry that follows `attempt` (1-based): base * 2^(attempt-1)."""
    delay = base_delay * (2 ** (attempt - 1))
    if jitter > 0:
        delay += random.uniform(0, jitter)
    return delay


def retry_delay(exc: BaseException, attempt: int, base_delay: float, jitter: float = 0.0) -> float:
    """Backoff delay, raised to the source's Retry-After when it sent one."""
    delay = backoff_delay(attempt, base_delay, jitter)
    if isinstance(exc, RateLimitError) and exc.retry_after:
        delay = max(delay, exc.retry_after)
    return delay


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    max_attempts: int,
    base_delay: float,
    is_retryable: Callable[[BaseException], bool] = is_external_failure,
    jitter: float = 0.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    description: str = "external call",
) -> RetryResult:
    """
    Run `operation` up to `max_attempts` times.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt.
        max_attempts: Attempt ceiling (>= 1).
        base_delay: Seconds before the first retry; doubles each attempt.
        is_retryable: Predicate selecting which exceptions are retried.
        jitter: Upper bound of uniform random seconds added to each delay.
        sleep: Awaitable sleep, injectable for tests.
        description: Label used in log events.

    Returns:
        RetrySuccess with the value, or RetryExhausted with the last error.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    attempt = 0
    while True:
        attempt += 1
        try:
            value = await operation()
        except Exception as exc:
            if not is_retryable(exc):
                raise
            if attempt >= max_attempts:
                logger.error(
                    "Retries exhausted",
                    operation=description,
                    attempts=attempt,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                return RetryExhausted(error=exc, attempts=attempt)

            delay = retry_delay(exc, attempt, base_delay, jitter)
            logger.warning(
                "Retrying after failure",
                operation=description,
                attempt=attempt,
                max_attempts=max_attempts,
                delay_seconds=round(delay, 3),
                error=str(exc),
                error_type=type(exc).__name__,
            )
            await sleep(delay)
            continue

        return RetrySuccess(value=value, attempts=attempt)
