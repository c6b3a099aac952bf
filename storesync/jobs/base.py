"""
Base class for per-store background jobs.

A job binds to one store. Running it takes the store lock for the job kind,
applies the execution budget, and delegates to ``handle()``, which emits the
``started`` and ``finished`` events around the store work. A ``started``
event without a matching ``finished`` marks an incomplete run.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any, ClassVar

from storesync.constants import (
    EVENT_FINISHED,
    EVENT_STARTED,
    SPAN_RUN_JOB,
    JobKind,
    JobStatus,
    LogLevel,
    StoreCounter,
)
from storesync.db.models import Store
from storesync.errors import ContentionError, ExecutionBudgetExceeded
from storesync.jobs.runtime import JobRuntime
from storesync.locks import LockManager
from storesync.observability.timing import mark_finish, mark_start
from storesync.observability.tracing import traced
from storesync.shopify import ShopifyClient
from storesync.types.events import ExecutionWindow
from storesync.types.job import JobPayload, JobResult

logger = logging.getLogger(__name__)


class StoreJob(ABC):
    """
    Per-store unit of work.

    Args:
        store: The store this job works on.
        runtime: Shared collaborators and settings.
        counts: Optional counters to refresh.
        job_id: Queue job identifier, None when run inline.
    """

    kind: ClassVar[JobKind]

    def __init__(
        self,
        store: Store,
        runtime: JobRuntime,
        counts: Iterable[StoreCounter | str] = (),
        job_id: str | None = None,
    ):
        self.store = store
        self.runtime = runtime
        self.counts = tuple(dict.fromkeys(StoreCounter(c) for c in counts))
        self.job_id = job_id
        self.status = JobStatus.CREATED
        self.window: ExecutionWindow | None = None

        # Wall-clock budget in seconds; 0 disables it
        self.max_execution_time = runtime.settings.sync_max_execution_time

    def get_api_client(self) -> ShopifyClient:
        """Build a Shopify client from the store's credentials."""
        return self.runtime.client_factory(self.store)

    @abstractmethod
    async def handle(self) -> dict[str, Any]:
        """
        Perform the store work.

        Implementations call handle_start() first and handle_finish() on
        success. Errors must propagate.

        Returns:
            A result summary.
        """

    async def run(self) -> JobResult:
        """
        Run the job under the store lock and execution budget.

        Returns:
            The job result.

        Raises:
            ContentionError: If another worker holds the lock.
            ExecutionBudgetExceeded: If the budget ran out.
        """
        started = time.monotonic()

        with traced(SPAN_RUN_JOB, job_kind=self.kind.value, store_id=self.store.id):
            try:
                async with self.runtime.locks.hold(self.kind, self.store, job_id=self.job_id):
                    output = await self._handle_within_budget()
            except ContentionError:
                self.status = JobStatus.SKIPPED
                raise
            except Exception:
                self.status = JobStatus.FAILED
                self._record(time.monotonic() - started)
                raise

        self.status = JobStatus.FINISHED
        duration = time.monotonic() - started
        self._record(duration)

        return JobResult(
            store_id=self.store.id,
            job_kind=self.kind,
            status=self.status,
            output=output,
            duration_seconds=duration,
        )

    async def _handle_within_budget(self) -> dict[str, Any]:
        budget = self.max_execution_time or None
        deadline = asyncio.timeout(budget)
        try:
            async with deadline:
                return await self.handle()
        except TimeoutError as e:
            if deadline.expired():
                raise ExecutionBudgetExceeded(budget) from e
            raise

    def _record(self, duration_seconds: float) -> None:
        self.runtime.metrics.record_job_completed(
            job_kind=self.kind.value,
            status=self.status.value,
            duration_seconds=duration_seconds,
        )

    def handle_start(self, data: dict[str, Any] | None = None) -> None:
        """Open the execution window and emit ``started``."""
        self.window = mark_start()
        self.status = JobStatus.STARTED
        self.msg(
            EVENT_STARTED,
            {"started": self.window.started.as_log_data(), **(data or {})},
            LogLevel.INFO,
        )

    def handle_finish(self, data: dict[str, Any] | None = None) -> None:
        """Close the execution window and emit ``finished``."""
        self.window = mark_finish(self.window or mark_start())
        self.status = JobStatus.FINISHED
        self.msg(
            EVENT_FINISHED,
            {
                "finished": self.window.finished.as_log_data(),
                "duration_seconds": self.window.duration_seconds,
                **(data or {}),
            },
            LogLevel.INFO,
        )

    def msg(
        self,
        event: str,
        data: dict[str, Any] | None = None,
        level: LogLevel | str = LogLevel.ERROR,
    ) -> None:
        """Emit an event for this job's store, tagged with the job id."""
        self.runtime.events.emit(self.kind, self.store, event, data, level, job_id=self.job_id)

    def to_payload(self) -> JobPayload:
        """Serialize the job for a queue transport."""
        options = {"job_id": self.job_id} if self.job_id else {}
        return JobPayload(
            job_kind=self.kind,
            store_id=self.store.id,
            counts=list(self.counts),
            **options,
        )

    @classmethod
    async def has_lock_for(cls, store: Store, locks: LockManager) -> bool:
        return await locks.has_lock(cls.kind, store)

    @classmethod
    async def lock(cls, store: Store, locks: LockManager, minutes: int | None = None) -> None:
        await locks.acquire(cls.kind, store, minutes)

    @classmethod
    async def unlock(cls, store: Store, locks: LockManager) -> None:
        await locks.release(cls.kind, store)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(store={self.store.id}, status={self.status})"
