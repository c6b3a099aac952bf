"""
Queue transports for queued dispatch.

A transport only moves JobPayloads between processes. Delivery guarantees
and retries belong to the backing queue, not to store sync.
"""

import logging
from typing import Protocol

import redis.asyncio as redis

from storesync.types.job import JobPayload

logger = logging.getLogger(__name__)


class QueueTransport(Protocol):
    """Moves job payloads onto and off named connections."""

    async def enqueue(self, payload: JobPayload, connection: str) -> None: ...

    async def dequeue(self, connection: str, timeout: float) -> JobPayload | None: ...


class RedisQueueTransport:
    """
    Redis list transport: RPUSH to enqueue, BLPOP to dequeue.

    Each connection name maps to one list key under the configured prefix.
    """

    def __init__(self, client: redis.Redis, prefix: str = "storesync:queue"):
        self._redis = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "storesync:queue") -> "RedisQueueTransport":
        return cls(redis.Redis.from_url(url, decode_responses=True), prefix=prefix)

    def queue_key(self, connection: str) -> str:
        return f"{self._prefix}:{connection}"

    async def enqueue(self, payload: JobPayload, connection: str) -> None:
        await self._redis.rpush(self.queue_key(connection), payload.model_dump_json())
        logger.debug(
            "Enqueued store job",
            extra={"job_id": payload.job_id, "store_id": payload.store_id, "connection": connection},
        )

    async def dequeue(self, connection: str, timeout: float) -> JobPayload | None:
        item = await self._redis.blpop([self.queue_key(connection)], timeout=timeout)
        if item is None:
            return None
        _, raw = item
        return JobPayload.model_validate_json(raw)

    async def close(self) -> None:
        await self._redis.aclose()
