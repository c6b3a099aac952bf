"""
Execution timing markers for job observability.

Markers pair a UTC wall-clock timestamp with a monotonic reading. They feed
event payloads only and are never used for lock expiry.
"""

import time
from datetime import UTC, datetime

from storesync.types.events import ExecutionWindow, TimingMark


def mark() -> TimingMark:
    """Capture the current wall-clock and monotonic time."""
    return TimingMark(wall=datetime.now(UTC), monotonic=time.monotonic())


def mark_start() -> ExecutionWindow:
    """Open an execution window at the current instant."""
    return ExecutionWindow(started=mark())


def mark_finish(window: ExecutionWindow) -> ExecutionWindow:
    """Close an execution window at the current instant."""
    return window.finish(mark())
