"""
Event and timing type definitions for job observability.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from storesync.constants import JobKind, LogLevel


class JobEvent(BaseModel):
    """
    Record emitted to the log sink for every job state transition.
    Never mutated after creation.
    """

    model_config = ConfigDict(frozen=True)

    message: str
    job_kind: JobKind
    myshopify_domain: str | None
    event: str
    level: LogLevel
    data: dict[str, Any]
    timestamp: datetime


@dataclass(frozen=True)
class TimingMark:
    """A wall-clock and monotonic timestamp pair."""

    wall: datetime
    monotonic: float

    def as_log_data(self) -> dict[str, Any]:
        return {"wall": self.wall.isoformat(), "monotonic": self.monotonic}


@dataclass(frozen=True)
class ExecutionWindow:
    """
    Start and finish markers of one job run.
    `finished` stays None when the job fails before completing.
    """

    started: TimingMark
    finished: TimingMark | None = None

    @property
    def is_finished(self) -> bool:
        return self.finished is not None

    @property
    def duration_seconds(self) -> float | None:
        """Elapsed monotonic time, or None while unfinished."""
        if self.finished is None:
            return None
        return self.finished.monotonic - self.started.monotonic

    def finish(self, mark: TimingMark) -> "ExecutionWindow":
        return replace(self, finished=mark)
