"""
Unit tests for the advisory lock manager.
"""

import pytest

from storesync.cache import InMemoryLockCache
from storesync.constants import JobKind, LogLevel
from storesync.db.models import Store
from storesync.errors import ContentionError
from storesync.locks import LockManager, lock_key


class TestLockManager:
    """Tests for LockManager."""

    async def test_acquire_then_has_lock(self, lock_manager: LockManager, store: Store, sink):
        """Test a lock is visible to a later check within its TTL."""
        assert await lock_manager.acquire(JobKind.UPDATE_STORE, store) is True
        assert await lock_manager.has_lock(JobKind.UPDATE_STORE, store) is True

        assert sink.messages == [
            "update_store:shop1.example.com:locked",
            "update_store:shop1.example.com:has_lock",
        ]
        assert sink.records[0].level == LogLevel.INFO
        assert sink.records[1].level == LogLevel.WARNING

    async def test_has_lock_false_is_silent(self, lock_manager: LockManager, store: Store, sink):
        """Test an absent lock emits no event."""
        assert await lock_manager.has_lock(JobKind.UPDATE_STORE, store) is False
        assert sink.records == []

    async def test_second_process_sees_lock(self, lock_cache, events, metrics, store: Store, sink):
        """Test two managers over one cache see each other's locks."""
        process_a = LockManager(lock_cache, events, default_ttl_minutes=5, metrics=metrics)
        process_b = LockManager(lock_cache, events, default_ttl_minutes=5, metrics=metrics)

        await process_a.acquire(JobKind.UPDATE_STORE, store)

        assert await process_b.has_lock(JobKind.UPDATE_STORE, store) is True
        assert sink.records[-1].level == LogLevel.WARNING

    async def test_lock_expires_after_ttl(self, lock_manager: LockManager, store: Store, clock):
        """Test the lock self-heals once the TTL elapses."""
        await lock_manager.acquire(JobKind.UPDATE_STORE, store, ttl_minutes=3)

        clock.advance(minutes=2, seconds=59)
        assert await lock_manager.has_lock(JobKind.UPDATE_STORE, store) is True

        clock.advance(seconds=1)
        assert await lock_manager.has_lock(JobKind.UPDATE_STORE, store) is False

    async def test_default_ttl(self, lock_manager: LockManager, store: Store, clock, sink):
        """Test the configured TTL applies when none is passed."""
        await lock_manager.acquire(JobKind.UPDATE_STORE, store)

        assert sink.records[0].data["ttl_minutes"] == 5
        clock.advance(minutes=5)
        assert await lock_manager.has_lock(JobKind.UPDATE_STORE, store) is False

    async def test_acquire_overwrites(self, lock_manager: LockManager, store: Store, clock):
        """Test acquire is not compare-and-swap and refreshes the expiry."""
        await lock_manager.acquire(JobKind.UPDATE_STORE, store, ttl_minutes=1)
        clock.advance(seconds=50)

        assert await lock_manager.acquire(JobKind.UPDATE_STORE, store, ttl_minutes=1) is True

        clock.advance(seconds=50)
        assert await lock_manager.has_lock(JobKind.UPDATE_STORE, store) is True

    async def test_release_is_idempotent(self, lock_manager: LockManager, store: Store, sink):
        """Test releasing a missing lock still logs unlocked."""
        await lock_manager.release(JobKind.UPDATE_STORE, store)
        await lock_manager.release(JobKind.UPDATE_STORE, store)

        assert sink.messages == ["update_store:shop1.example.com:unlocked"] * 2
        assert all(record.level == LogLevel.INFO for record in sink.records)

    async def test_release_clears_lock(self, lock_manager: LockManager, store: Store):
        await lock_manager.acquire(JobKind.UPDATE_STORE, store)
        await lock_manager.release(JobKind.UPDATE_STORE, store)

        assert await lock_manager.has_lock(JobKind.UPDATE_STORE, store) is False

    async def test_locks_are_per_store(self, lock_manager: LockManager, store: Store):
        other = Store(id=2, myshopify_domain="shop2.example.com")

        await lock_manager.acquire(JobKind.UPDATE_STORE, store)

        assert await lock_manager.has_lock(JobKind.UPDATE_STORE, other) is False

    async def test_hold_releases_on_error(self, lock_manager: LockManager, store: Store, sink):
        """Test scoped holds release the lock when the block raises."""
        with pytest.raises(RuntimeError):
            async with lock_manager.hold(JobKind.UPDATE_STORE, store):
                assert await lock_manager.has_lock(JobKind.UPDATE_STORE, store) is True
                raise RuntimeError("boom")

        assert await lock_manager.has_lock(JobKind.UPDATE_STORE, store) is False
        assert sink.messages[-1] == "update_store:shop1.example.com:unlocked"

    async def test_hold_raises_on_contention(self, lock_manager: LockManager, store: Store, sink):
        """Test a held lock refuses a second holder and stays in place."""
        await lock_manager.acquire(JobKind.UPDATE_STORE, store)

        with pytest.raises(ContentionError) as exc_info:
            async with lock_manager.hold(JobKind.UPDATE_STORE, store):
                pytest.fail("block must not run")

        assert exc_info.value.lock_key == "update_store|1"
        assert await lock_manager.has_lock(JobKind.UPDATE_STORE, store) is True
        assert "update_store:shop1.example.com:unlocked" not in sink.messages

    async def test_hold_passes_job_id(self, lock_manager: LockManager, store: Store, sink):
        async with lock_manager.hold(JobKind.UPDATE_STORE, store, job_id="abc"):
            pass

        assert [record.data["job_id"] for record in sink.records] == ["abc", "abc"]

    async def test_contention_metric(self, lock_manager: LockManager, store: Store, metrics):
        await lock_manager.acquire(JobKind.UPDATE_STORE, store)
        await lock_manager.has_lock(JobKind.UPDATE_STORE, store)

        value = metrics.lock_contention.labels(job_kind="update_store")._value.get()
        assert value == 1


class TestInMemoryLockCache:
    """Tests for InMemoryLockCache."""

    async def test_put_get_forget(self, clock):
        cache = InMemoryLockCache(clock=clock)

        await cache.put("k", 1, ttl_minutes=1)
        assert await cache.get("k") == 1
        assert len(cache) == 1

        await cache.forget("k")
        assert await cache.get("k") is None
        await cache.forget("k")

    async def test_expiry(self, clock):
        cache = InMemoryLockCache(clock=clock)

        await cache.put("k", 1, ttl_minutes=1)
        clock.advance(minutes=1)

        assert await cache.get("k") is None
        assert len(cache) == 0


def test_lock_key():
    assert lock_key(JobKind.UPDATE_STORE, 42) == "update_store|42"


async def test_manager_close_clears_process_cache(lock_manager: LockManager, lock_cache, store):
    await lock_manager.acquire(JobKind.UPDATE_STORE, store)

    await lock_manager.close()

    assert len(lock_cache) == 0
