"""
Dispatch module.
Contains the batch dispatcher, dispatch strategies and queue transports.
"""

from storesync.dispatch.batch import BatchDispatcher, completion_notice
from storesync.dispatch.strategies import (
    DispatchStrategy,
    Inline,
    Queued,
    strategy_for,
)
from storesync.dispatch.transport import QueueTransport, RedisQueueTransport

__all__ = [
    "BatchDispatcher",
    "completion_notice",
    "DispatchStrategy",
    "Inline",
    "Queued",
    "strategy_for",
    "QueueTransport",
    "RedisQueueTransport",
]
