"""
Collaborators shared by every store job in a process.

Configuration and collaborators are injected here once, at the composition
root, instead of being looked up from global state inside jobs.
"""

from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storesync.cache import LockCache, create_lock_cache
from storesync.config import Settings
from storesync.db.models import Store
from storesync.locks import LockManager
from storesync.observability.events import EventLogger, LogSink
from storesync.observability.metrics import MetricsCollector, get_metrics
from storesync.shopify import ShopifyClient

ClientFactory = Callable[[Store], ShopifyClient]


@dataclass
class JobRuntime:
    """Everything a store job needs besides its store."""

    settings: Settings
    locks: LockManager
    events: EventLogger
    session_factory: async_sessionmaker[AsyncSession]
    client_factory: ClientFactory
    metrics: MetricsCollector

    @classmethod
    def create(
        cls,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        cache: LockCache | None = None,
        sink: LogSink | None = None,
        client_factory: ClientFactory | None = None,
        metrics: MetricsCollector | None = None,
    ) -> "JobRuntime":
        """
        Wire a runtime from settings.

        Args:
            settings: Application settings.
            session_factory: Store registry session factory.
            cache: Lock cache. Defaults to the configured backend.
            sink: Event sink. Defaults to structlog.
            client_factory: Builds the Shopify client for a store.
            metrics: Metrics collector. Defaults to the process-wide one.

        Raises:
            ConfigurationError: If no cache is passed and no Redis URL is set.
        """
        metrics = metrics or get_metrics()
        events = EventLogger(settings.sync_log_channel, sink)
        locks = LockManager(
            cache or create_lock_cache(settings),
            events,
            default_ttl_minutes=settings.sync_lock_minutes,
            metrics=metrics,
        )

        def default_client_factory(store: Store) -> ShopifyClient:
            return ShopifyClient(
                store.shop,
                store.access_token,
                api_version=settings.shopify_api_version,
                timeout=settings.shopify_timeout_seconds,
            )

        return cls(
            settings=settings,
            locks=locks,
            events=events,
            session_factory=session_factory,
            client_factory=client_factory or default_client_factory,
            metrics=metrics,
        )

    async def aclose(self) -> None:
        """Release connections held by the runtime's lock cache."""
        await self.locks.close()
