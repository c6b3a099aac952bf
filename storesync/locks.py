"""
Advisory store locks over a shared TTL cache.

A lock is a presence marker under ``<job kind>|<store id>``. Acquisition
overwrites unconditionally, so the has_lock-then-acquire sequence leaves a
window in which two processes can both pass the check. Markers left behind
by a crashed worker disappear only when their TTL runs out, which makes the
TTL the longest tolerated double run; keep it above the job execution
budget.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from storesync.cache import LockCache
from storesync.constants import (
    EVENT_HAS_LOCK,
    EVENT_LOCKED,
    EVENT_UNLOCKED,
    LOCK_KEY_DELIMITER,
    JobKind,
    LogLevel,
)
from storesync.db.models import Store
from storesync.errors import ContentionError
from storesync.observability.events import EventLogger
from storesync.observability.metrics import MetricsCollector, get_metrics

logger = logging.getLogger(__name__)


def lock_key(kind: JobKind, store_id: int) -> str:
    return f"{kind.value}{LOCK_KEY_DELIMITER}{store_id}"


class LockManager:
    """
    Acquires, checks and releases advisory locks per job kind and store.

    Args:
        cache: Shared cache holding lock markers.
        events: Event logger receiving locked/has_lock/unlocked events.
        default_ttl_minutes: TTL used when callers pass none.
        metrics: Metrics collector. Defaults to the process-wide one.
    """

    def __init__(
        self,
        cache: LockCache,
        events: EventLogger,
        default_ttl_minutes: int,
        metrics: MetricsCollector | None = None,
    ):
        self._cache = cache
        self._events = events
        self.default_ttl_minutes = default_ttl_minutes
        self._metrics = metrics or get_metrics()

    async def acquire(
        self,
        kind: JobKind,
        store: Store,
        ttl_minutes: int | None = None,
        **context,
    ) -> bool:
        """
        Write the lock marker, overwriting any existing one.

        This is not a compare-and-swap; check has_lock first.
        """
        ttl = ttl_minutes or self.default_ttl_minutes
        await self._cache.put(lock_key(kind, store.id), 1, ttl)
        self._metrics.record_lock_acquired(kind.value)
        self._events.emit(kind, store, EVENT_LOCKED, {"ttl_minutes": ttl}, LogLevel.INFO, **context)
        return True

    async def has_lock(self, kind: JobKind, store: Store, **context) -> bool:
        """Return True if an unexpired marker exists, logging it as contention."""
        held = bool(await self._cache.get(lock_key(kind, store.id)))
        if held:
            self._metrics.record_lock_contention(kind.value)
            self._events.emit(kind, store, EVENT_HAS_LOCK, {}, LogLevel.WARNING, **context)
        return held

    async def release(self, kind: JobKind, store: Store, **context) -> None:
        """Delete the marker. Releasing a missing lock is not an error."""
        await self._cache.forget(lock_key(kind, store.id))
        self._events.emit(kind, store, EVENT_UNLOCKED, {}, LogLevel.INFO, **context)

    @asynccontextmanager
    async def hold(
        self,
        kind: JobKind,
        store: Store,
        ttl_minutes: int | None = None,
        **context,
    ) -> AsyncIterator[None]:
        """
        Hold the lock for the duration of the block.

        The lock is released on every exit path, including errors and
        cancellation.

        Raises:
            ContentionError: If the lock is already held.
        """
        if await self.has_lock(kind, store, **context):
            raise ContentionError(lock_key(kind, store.id))

        await self.acquire(kind, store, ttl_minutes, **context)
        try:
            yield
        finally:
            await self.release(kind, store, **context)

    async def close(self) -> None:
        await self._cache.close()
