"""
Progress reporting for the ingestion jobs.

Jobs receive a reporter instead of touching logger configuration. The CLI
passes a ConsoleProgressReporter to mirror progress on stdout; scheduled
runs use the structlog-backed default.
"""
import sys
from dataclasses import dataclass, field
from typing import Any, Protocol, TextIO

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    """
    One unit of job progress.

    Attributes:
        job: Emitting job ("commander_scrape", "price_refresh").
        index: 1-based position of the item just processed.
        total: Number of items in the run.
        message: Short human-readable description.
        details: Extra structured context (commander, rank, status...).
    """
    job: str
    index: int
    total: int
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def percentage(self) -> float:
        if self.total <= 0:
            return 100.0
        return round(self.index / self.total * 100, 1)


class ProgressReporter(Protocol):
    def on_progress(self, event: ProgressEvent) -> None:
        ...


class NullProgressReporter:
    def on_progress(self, event: ProgressEvent) -> None:
        pass


class LoggingProgressReporter:
    """Emits each event as a structured log line."""

    def __init__(self, log=None):
        self._log = log or logger

    def on_progress(self, event: ProgressEvent) -> None:
        self._log.info(
            event.message,
            job=event.job,
            index=event.index,
            total=event.total,
            percentage=event.percentage,
            **event.details,
        )


class ConsoleProgressReporter:
    """Plain-text progress lines for manual runs."""

    def __init__(self, stream: TextIO | None = None):
        self._stream = stream or sys.stdout

    def on_progress(self, event: ProgressEvent) -> None:
        extras = " ".join(f"{k}={v}" for k, v in event.details.items())
        line = f"[{event.index}/{event.total} {event.percentage:5.1f}%] {event.message}"
        if extras:
            line = f"{line} ({extras})"
        print(line, file=self._stream, flush=True)
