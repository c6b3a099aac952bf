"""
Type definitions for store sync.
Contains input/output type definitions for all functions, grouped by module.
"""

from storesync.types.events import (
    ExecutionWindow,
    JobEvent,
    TimingMark,
)
from storesync.types.job import (
    JobPayload,
    JobResult,
)
from storesync.types.selection import (
    BatchReport,
    StoreSelection,
)

__all__ = [
    # Event types
    "JobEvent",
    "TimingMark",
    "ExecutionWindow",
    # Job types
    "JobPayload",
    "JobResult",
    # Selection types
    "StoreSelection",
    "BatchReport",
]
