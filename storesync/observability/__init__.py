"""
Observability module.
Contains logging, job events, timing, metrics, and tracing setup.
"""

from storesync.observability.events import EventLogger, LogSink, StructlogSink
from storesync.observability.logging import get_logger, job_context, setup_logging
from storesync.observability.metrics import (
    MetricsCollector,
    get_metrics,
    serve_metrics,
    setup_metrics,
)
from storesync.observability.timing import mark_finish, mark_start
from storesync.observability.tracing import get_tracer, setup_tracing, traced

__all__ = [
    "setup_logging",
    "get_logger",
    "job_context",
    "EventLogger",
    "LogSink",
    "StructlogSink",
    "mark_start",
    "mark_finish",
    "setup_metrics",
    "get_metrics",
    "serve_metrics",
    "MetricsCollector",
    "setup_tracing",
    "get_tracer",
    "traced",
]
