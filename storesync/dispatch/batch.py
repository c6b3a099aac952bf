"""
Batch dispatcher.

Selects installed stores, walks them in fixed-size chunks and dispatches one
job per store. Within a run stores are handled strictly one after another.
"""

import logging
from collections.abc import AsyncIterator, Callable, Iterable, Sequence

import typer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storesync.constants import (
    COMPLETION_NOTICE,
    EVENT_FAILED,
    SPAN_DISPATCH_CHUNK,
    StoreCounter,
)
from storesync.db.models import Store
from storesync.db.repository import StoreRepository
from storesync.dispatch.strategies import DispatchStrategy
from storesync.errors import ContentionError
from storesync.jobs.base import StoreJob
from storesync.jobs.runtime import JobRuntime
from storesync.jobs.update_store import UpdateStore
from storesync.observability.tracing import traced
from storesync.types.selection import BatchReport, StoreSelection

logger = logging.getLogger(__name__)


def completion_notice(store: Store) -> str:
    return COMPLETION_NOTICE.format(store_id=store.id, domain=store.myshopify_domain)


class BatchDispatcher:
    """
    Drives one job kind over a store selection.

    Args:
        runtime: Collaborators handed to every job.
        session_factory: Registry sessions; defaults to the runtime's.
        chunk_size: Stores per chunk; defaults to ``sync_chunk_size``.
        job_class: Job kind to dispatch.
        notify: Receives one completion notice per store.
    """

    def __init__(
        self,
        runtime: JobRuntime,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        chunk_size: int | None = None,
        job_class: type[StoreJob] = UpdateStore,
        notify: Callable[[str], None] = typer.echo,
    ):
        self.runtime = runtime
        self._session_factory = session_factory or runtime.session_factory
        self.chunk_size = chunk_size or runtime.settings.sync_chunk_size
        self.job_class = job_class
        self._notify = notify

    async def chunks(self, selection: StoreSelection) -> AsyncIterator[Sequence[Store]]:
        """
        Yield the selection in chunks of at most ``chunk_size`` stores.

        Each chunk is read in its own session, so work already done for
        earlier chunks is unaffected by a failure later in the walk.
        """
        after_id = 0
        while True:
            async with self._session_factory() as session:
                chunk = await StoreRepository(session).fetch_chunk(
                    selection, after_id=after_id, limit=self.chunk_size
                )
            if not chunk:
                return

            yield chunk

            if len(chunk) < self.chunk_size:
                return
            after_id = chunk[-1].id

    async def run(
        self,
        selection: StoreSelection,
        counts: Iterable[StoreCounter | str],
        strategy: DispatchStrategy,
    ) -> BatchReport:
        """
        Dispatch one job per selected store.

        Args:
            selection: Store filters.
            counts: Optional counters each job refreshes.
            strategy: Inline or queued dispatch.

        Returns:
            Counters for the run.
        """
        counts = tuple(StoreCounter(c) for c in counts)
        report = BatchReport()

        async with self._session_factory() as session:
            selected = await StoreRepository(session).count(selection)

        logger.info(
            "Batch run starting",
            extra={
                "selected": selected,
                "job_kind": self.job_class.kind.value,
                "mode": strategy.mode,
                "chunk_size": self.chunk_size,
                "store_ids": sorted(selection.store_ids) if selection.store_ids else "any",
                "updated_at_min": selection.updated_at_min,
            },
        )

        async for chunk in self.chunks(selection):
            report.chunks += 1
            with traced(SPAN_DISPATCH_CHUNK, chunk=report.chunks, size=len(chunk)):
                for store in chunk:
                    await self.handle_store(store, counts, strategy, report)

        logger.info(
            "Batch run finished",
            extra={
                "chunks": report.chunks,
                "dispatched": report.dispatched,
                "completed": report.completed,
                "skipped": report.skipped,
                "failed": report.failed,
            },
        )
        return report

    async def handle_store(
        self,
        store: Store,
        counts: tuple[StoreCounter, ...],
        strategy: DispatchStrategy,
        report: BatchReport,
    ) -> None:
        """
        Dispatch the job for one store, isolating its failure.

        Lock contention skips the store. Any other inline job error is logged
        and counted, and the run moves on to the next store. Transport errors
        in queued mode abort the run.
        """
        job = self.job_class(store, self.runtime, counts=counts)
        report.dispatched += 1
        self.runtime.metrics.record_store_dispatched(strategy.mode)

        try:
            await strategy.run(job)
        except ContentionError:
            report.skipped += 1
            return
        except Exception as e:
            if not strategy.inline:
                raise
            report.failed += 1
            job.msg(EVENT_FAILED, {"error": str(e), "error_type": type(e).__name__})
            logger.error(
                "Store job failed",
                extra={
                    "store_id": store.id,
                    "myshopify_domain": store.myshopify_domain,
                    "job_kind": job.kind.value,
                    "error": str(e),
                },
                exc_info=True,
            )
            return

        report.completed += 1
        self._notify(completion_notice(store))
