"""
Worker process for queued store jobs.

The worker pops job payloads from one named connection and runs each job
inline under its store lock. Delivery and retry stay with the queue; a job
failure is logged here and the payload is not requeued.
"""

import asyncio
import logging
import signal

from storesync.config import Settings, get_settings
from storesync.constants import EVENT_FAILED
from storesync.cache import create_lock_cache
from storesync.db import close_db, get_engine, init_db
from storesync.db.repository import StoreRepository
from storesync.dispatch.transport import QueueTransport, RedisQueueTransport
from storesync.errors import ConfigurationError, ContentionError
from storesync.jobs import JobRuntime, get_job_class
from storesync.observability.logging import job_context, setup_logging
from storesync.observability.metrics import serve_metrics
from storesync.observability.tracing import setup_tracing
from storesync.types.job import JobPayload, JobResult

logger = logging.getLogger(__name__)


class Worker:
    """
    Store job worker bound to one queue connection.

    Features:
    - Blocking pop with a bounded wait so shutdown is noticed promptly
    - Store reloaded from the registry for every payload
    - Graceful shutdown on SIGTERM/SIGINT
    """

    def __init__(
        self,
        connection: str,
        transport: QueueTransport,
        runtime: JobRuntime,
        poll_interval: float | None = None,
    ):
        """
        Initialize the worker.

        Args:
            connection: Queue connection name to consume.
            transport: Queue transport.
            runtime: Collaborators handed to every job.
            poll_interval: Seconds to wait for a payload per pop.
        """
        self.connection = connection
        self.transport = transport
        self.runtime = runtime
        self.poll_interval = poll_interval or runtime.settings.worker_poll_interval_seconds
        self._running = False

    async def start(self) -> None:
        """Start the worker."""
        logger.info("Worker starting", extra={"connection": self.connection})

        self._running = True

        while self._running:
            try:
                await self.run_once()
            except Exception as e:
                logger.exception(
                    f"Error in worker loop: {e}",
                    extra={"connection": self.connection},
                )
                await asyncio.sleep(self.poll_interval)

        logger.info("Worker stopped", extra={"connection": self.connection})

    async def stop(self) -> None:
        """Stop the worker after the current job."""
        logger.info("Worker stopping", extra={"connection": self.connection})
        self._running = False

    async def run_once(self) -> JobResult | None:
        """
        Pop and execute at most one payload.

        Returns:
            The job result, or None if nothing ran to completion.
        """
        payload = await self.transport.dequeue(self.connection, timeout=self.poll_interval)
        if payload is None:
            return None
        return await self.execute(payload)

    async def execute(self, payload: JobPayload) -> JobResult | None:
        """
        Execute a single queued job.

        Args:
            payload: The dequeued job payload.

        Returns:
            The job result, or None if the job was dropped, skipped or failed.
        """
        job_class = get_job_class(payload.job_kind)
        if job_class is None:
            logger.error(
                f"No job class for kind: {payload.job_kind}",
                extra={"job_id": payload.job_id},
            )
            return None

        async with self.runtime.session_factory() as session:
            store = await StoreRepository(session).get_store(payload.store_id)

        if store is None or not store.installed:
            logger.warning(
                "Dropping job for missing or uninstalled store",
                extra={"job_id": payload.job_id, "store_id": payload.store_id},
            )
            return None

        job = job_class(store, self.runtime, counts=payload.counts, job_id=payload.job_id)
        with job_context(job_id=payload.job_id, store_id=store.id, job_kind=job.kind.value):
            try:
                return await job.run()
            except ContentionError:
                logger.warning("Skipped locked store")
            except Exception as e:
                job.msg(EVENT_FAILED, {"error": str(e), "error_type": type(e).__name__})
                logger.exception("Exception executing store job", extra={"error": str(e)})
        return None


def create_transport(settings: Settings) -> RedisQueueTransport:
    """
    Create the queue transport for this process.

    Raises:
        ConfigurationError: If no Redis URL is configured.
    """
    if not settings.redis_url:
        raise ConfigurationError("Queued dispatch needs REDIS_URL")
    return RedisQueueTransport.from_url(settings.redis_url, prefix=settings.queue_prefix)


async def run_async(connection: str, once: bool = False) -> None:
    """Run the worker asynchronously."""
    settings = get_settings()
    setup_logging(settings)
    if settings.otel_enabled:
        setup_tracing(settings)

    cache = create_lock_cache(settings)
    transport = create_transport(settings)
    session_factory = await init_db(get_engine(settings))
    runtime = JobRuntime.create(settings, session_factory, cache=cache)

    worker = Worker(connection, transport, runtime)

    try:
        if once:
            await worker.run_once()
            return

        serve_metrics(settings.metrics_port)

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(
                sig,
                lambda: asyncio.create_task(worker.stop())
            )

        await worker.start()
    finally:
        await transport.close()
        await runtime.aclose()
        await close_db()


def run(connection: str = "default", once: bool = False) -> None:
    """Run the worker."""
    asyncio.run(run_async(connection, once))


if __name__ == "__main__":
    run()
