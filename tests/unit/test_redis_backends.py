"""
Unit tests for the Redis lock cache and queue transport.
"""

import json

import pytest

from storesync.cache import RedisLockCache, create_lock_cache
from storesync.constants import JobKind, StoreCounter
from storesync.dispatch import RedisQueueTransport
from storesync.errors import ConfigurationError
from storesync.jobs import JobRuntime
from storesync.locks import LockManager
from storesync.observability.events import EventLogger
from storesync.types.job import JobPayload


class TestRedisLockCache:
    """Tests for RedisLockCache."""

    async def test_put_sets_namespaced_key_with_ttl_in_seconds(self, fake_redis):
        cache = RedisLockCache(fake_redis)

        await cache.put("update_store|1", 1, ttl_minutes=5)

        assert fake_redis.values == {"storesync:lock:update_store|1": "1"}
        assert fake_redis.expiry["storesync:lock:update_store|1"] == 300

    async def test_get_decodes_int(self, fake_redis):
        cache = RedisLockCache(fake_redis, namespace="locks")
        await cache.put("update_store|1", 1, ttl_minutes=1)

        assert await cache.get("update_store|1") == 1
        assert await cache.get("update_store|2") is None

    async def test_forget(self, fake_redis):
        cache = RedisLockCache(fake_redis)
        await cache.put("update_store|1", 1, ttl_minutes=1)

        await cache.forget("update_store|1")
        await cache.forget("update_store|1")

        assert await cache.get("update_store|1") is None

    async def test_close(self, fake_redis):
        await RedisLockCache(fake_redis).close()

        assert fake_redis.closed

    async def test_lock_seen_across_managers(self, fake_redis, sink, metrics, store):
        """Test a lock taken by one process is visible to another."""
        events = EventLogger("storesync.sync", sink)
        process_a = LockManager(RedisLockCache(fake_redis), events, 5, metrics=metrics)
        process_b = LockManager(RedisLockCache(fake_redis), events, 5, metrics=metrics)

        await process_a.acquire(JobKind.UPDATE_STORE, store)

        assert await process_b.has_lock(JobKind.UPDATE_STORE, store) is True

        await process_a.release(JobKind.UPDATE_STORE, store)

        assert await process_b.has_lock(JobKind.UPDATE_STORE, store) is False


class TestCreateLockCache:
    """Tests for choosing the process lock cache."""

    def test_requires_redis(self, test_settings):
        with pytest.raises(ConfigurationError):
            create_lock_cache(test_settings)

    def test_uses_redis(self, test_settings):
        settings = test_settings.model_copy(update={"redis_url": "redis://localhost:6379/0"})

        assert isinstance(create_lock_cache(settings), RedisLockCache)

    def test_runtime_without_shared_cache(self, test_settings, session_factory, metrics):
        with pytest.raises(ConfigurationError):
            JobRuntime.create(test_settings, session_factory, metrics=metrics)


class TestRedisQueueTransport:
    """Tests for RedisQueueTransport."""

    async def test_enqueue_pushes_json(self, fake_redis):
        transport = RedisQueueTransport(fake_redis)
        payload = JobPayload(
            job_kind=JobKind.UPDATE_STORE,
            store_id=4,
            counts=[StoreCounter.ORDER_COUNT],
        )

        await transport.enqueue(payload, "default")

        queued = list(fake_redis.lists["storesync:queue:default"])
        assert len(queued) == 1
        body = json.loads(queued[0])
        assert body["job_id"] == payload.job_id
        assert body["store_id"] == 4
        assert body["counts"] == ["order_count"]

    async def test_dequeue_restores_payload(self, fake_redis):
        transport = RedisQueueTransport(fake_redis, prefix="q")
        payload = JobPayload(job_kind=JobKind.UPDATE_STORE, store_id=4)
        await transport.enqueue(payload, "stores")

        restored = await transport.dequeue("stores", timeout=0.1)

        assert restored == payload
        assert transport.queue_key("stores") == "q:stores"

    async def test_dequeue_empty(self, fake_redis):
        transport = RedisQueueTransport(fake_redis)

        assert await transport.dequeue("default", timeout=0.1) is None

    async def test_close(self, fake_redis):
        await RedisQueueTransport(fake_redis).close()

        assert fake_redis.closed
