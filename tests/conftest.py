"""
Pytest configuration and shared fixtures.
"""

from collections import defaultdict, deque
from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import httpx
import pytest
import pytest_asyncio
from prometheus_client import CollectorRegistry
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from storesync.cache import InMemoryLockCache
from storesync.config import Settings
from storesync.constants import LogLevel
from storesync.db.connection import create_session_factory, get_test_engine
from storesync.db.models import Base, Store
from storesync.jobs import JobRuntime
from storesync.locks import LockManager
from storesync.observability.events import EventLogger
from storesync.observability.metrics import MetricsCollector
from storesync.shopify import ShopifyClient
from storesync.types.job import JobPayload

SHOP_COUNTS = {"customers": 42, "orders": 7, "products": 13}


@dataclass
class SinkRecord:
    channel: str
    level: LogLevel
    message: str
    data: dict[str, Any]


class RecordingSink:
    """Log sink that keeps every event in memory."""

    def __init__(self):
        self.records: list[SinkRecord] = []

    def log(self, channel: str, level: LogLevel, message: str, data: dict[str, Any]) -> None:
        self.records.append(SinkRecord(channel, level, message, data))

    @property
    def messages(self) -> list[str]:
        return [record.message for record in self.records]

    def for_store(self, store_id: int) -> list[SinkRecord]:
        return [record for record in self.records if record.data.get("store_id") == store_id]

    def events_for(self, store_id: int) -> list[str]:
        return [record.message.rsplit(":", 1)[-1] for record in self.for_store(store_id)]


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> None:
        self.now += minutes * 60 + seconds


class InMemoryTransport:
    """Queue transport keeping payloads in per-connection deques."""

    def __init__(self):
        self.queues: dict[str, deque[JobPayload]] = defaultdict(deque)

    async def enqueue(self, payload: JobPayload, connection: str) -> None:
        self.queues[connection].append(payload)

    async def dequeue(self, connection: str, timeout: float) -> JobPayload | None:
        queue = self.queues[connection]
        return queue.popleft() if queue else None


class FakeRedis:
    """Async Redis stand-in covering the commands the Redis backends use."""

    def __init__(self):
        self.values: dict[str, str] = {}
        self.expiry: dict[str, int | None] = {}
        self.lists: dict[str, deque[str]] = defaultdict(deque)
        self.closed = False

    async def set(self, key: str, value: Any, ex: int | None = None) -> bool:
        self.values[key] = str(value)
        self.expiry[key] = ex
        return True

    async def get(self, key: str) -> str | None:
        return self.values.get(key)

    async def delete(self, *keys: str) -> int:
        removed = [key for key in keys if self.values.pop(key, None) is not None]
        for key in removed:
            self.expiry.pop(key, None)
        return len(removed)

    async def rpush(self, key: str, *values: str) -> int:
        self.lists[key].extend(values)
        return len(self.lists[key])

    async def blpop(self, keys: list[str], timeout: float = 0) -> tuple[str, str] | None:
        for key in keys:
            if self.lists[key]:
                return key, self.lists[key].popleft()
        return None

    async def aclose(self) -> None:
        self.closed = True


def shopify_handler(request: httpx.Request) -> httpx.Response:
    """Mock Shopify Admin API answering shop and count requests."""
    path = request.url.path
    if path.endswith("/shop.json"):
        host = request.url.host
        return httpx.Response(
            200,
            json={
                "shop": {
                    "name": f"Shop {host.split('.')[0]}",
                    "email": f"owner@{host}",
                    "currency": "USD",
                    "plan_name": "basic",
                }
            },
        )
    if path.endswith("/count.json"):
        resource = path.split("/")[-2]
        return httpx.Response(200, json={"count": SHOP_COUNTS[resource]})
    return httpx.Response(404, json={"errors": "Not Found"})


def client_factory_for(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[Store], ShopifyClient]:
    def factory(store: Store) -> ShopifyClient:
        return ShopifyClient(
            store.shop,
            store.access_token,
            transport=httpx.MockTransport(handler),
        )
    return factory


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Create test settings."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path}/stores.db",
        redis_url=None,
        sync_lock_minutes=5,
        sync_max_execution_time=10,
        sync_chunk_size=100,
        log_level="DEBUG",
        log_format="console",
    )


@pytest_asyncio.fixture
async def engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine, None]:
    """Create a SQLite engine with the store schema."""
    engine = get_test_engine(test_settings.database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def lock_cache(clock: FakeClock) -> InMemoryLockCache:
    return InMemoryLockCache(clock=clock)


@pytest.fixture
def metrics() -> MetricsCollector:
    """Metrics collector on a private registry."""
    return MetricsCollector(registry=CollectorRegistry())


@pytest.fixture
def events(test_settings: Settings, sink: RecordingSink) -> EventLogger:
    return EventLogger(test_settings.sync_log_channel, sink)


@pytest.fixture
def lock_manager(
    lock_cache: InMemoryLockCache,
    events: EventLogger,
    metrics: MetricsCollector,
) -> LockManager:
    return LockManager(lock_cache, events, default_ttl_minutes=5, metrics=metrics)


@pytest.fixture
def runtime(
    test_settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    lock_cache: InMemoryLockCache,
    sink: RecordingSink,
    metrics: MetricsCollector,
) -> JobRuntime:
    return JobRuntime.create(
        test_settings,
        session_factory,
        cache=lock_cache,
        sink=sink,
        client_factory=client_factory_for(shopify_handler),
        metrics=metrics,
    )


@pytest.fixture
def transport() -> InMemoryTransport:
    return InMemoryTransport()


@pytest.fixture
def make_stores(session_factory: async_sessionmaker[AsyncSession]):
    """Insert stores and return them detached, ordered by id."""

    async def factory(
        count: int = 1,
        *,
        installed: bool = True,
        updated_at: datetime | None = None,
        start: int = 1,
    ) -> list[Store]:
        stores = [
            Store(
                id=start + i,
                myshopify_domain=f"shop{start + i}.myshopify.com",
                access_token=f"token-{start + i}",
                installed=installed,
                **({"updated_at": updated_at} if updated_at else {}),
            )
            for i in range(count)
        ]
        async with session_factory() as session:
            session.add_all(stores)
            await session.commit()
        return stores

    return factory


@pytest.fixture
def store() -> Store:
    """Unsaved store for tests that never touch the database."""
    return Store(id=1, myshopify_domain="shop1.example.com", access_token="token-1", installed=True)


@pytest.fixture
def shop_counts() -> dict[str, int]:
    return dict(SHOP_COUNTS)


@pytest.fixture
def make_runtime(
    test_settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    lock_cache: InMemoryLockCache,
    sink: RecordingSink,
    metrics: MetricsCollector,
):
    """Build a runtime whose Shopify API answers with a custom handler."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> JobRuntime:
        return JobRuntime.create(
            test_settings,
            session_factory,
            cache=lock_cache,
            sink=sink,
            client_factory=client_factory_for(handler),
            metrics=metrics,
        )

    return factory


@pytest.fixture
def shopify_api() -> Callable[[httpx.Request], httpx.Response]:
    return shopify_handler


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()
