"""
Job-related type definitions for dispatch and results.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field

from storesync.constants import JobKind, JobStatus, StoreCounter


class JobPayload(BaseModel):
    """
    Wire format of a queued store job.
    Serialized to JSON by the queue transport.
    """

    job_id: str = Field(default_factory=lambda: uuid4().hex)
    job_kind: JobKind
    store_id: int
    counts: list[StoreCounter] = Field(default_factory=list)
    enqueued_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class JobResult(BaseModel):
    """
    Result of a store job execution.
    Returned by jobs run inline.
    """

    store_id: int
    job_kind: JobKind
    status: JobStatus
    output: dict[str, Any] | None = None
    duration_seconds: float | None = None
