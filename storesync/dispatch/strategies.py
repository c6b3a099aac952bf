"""
Dispatch strategies.

Both strategies share the ``run(job)`` contract. Inline runs the job in the
current task and blocks until it finishes; Queued hands it to a transport
and returns as soon as the payload is accepted.
"""

import logging
from dataclasses import dataclass
from typing import Protocol

from storesync.constants import SYNC_CONNECTION
from storesync.dispatch.transport import QueueTransport
from storesync.errors import ConfigurationError
from storesync.jobs.base import StoreJob
from storesync.types.job import JobResult

logger = logging.getLogger(__name__)


class DispatchStrategy(Protocol):
    """How the batch dispatcher hands a job off."""

    mode: str
    inline: bool

    async def run(self, job: StoreJob) -> JobResult | None: ...


@dataclass
class Inline:
    """Run the job synchronously in this process."""

    mode: str = SYNC_CONNECTION
    inline: bool = True

    async def run(self, job: StoreJob) -> JobResult:
        return await job.run()


@dataclass
class Queued:
    """Enqueue the job on a named connection."""

    connection: str
    transport: QueueTransport
    inline: bool = False

    @property
    def mode(self) -> str:
        return self.connection

    async def run(self, job: StoreJob) -> None:
        await self.transport.enqueue(job.to_payload(), self.connection)


def strategy_for(
    connection: str,
    transport: QueueTransport | None = None,
) -> DispatchStrategy:
    """
    Pick the strategy for a console ``--connection`` value.

    Raises:
        ConfigurationError: For a queued connection without a transport.
    """
    if connection == SYNC_CONNECTION:
        return Inline()
    if transport is None:
        raise ConfigurationError(
            f"Connection '{connection}' needs a queue transport; set REDIS_URL"
        )
    return Queued(connection=connection, transport=transport)
