"""
Prometheus metrics collection.
"""

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    start_http_server,
)

from storesync.constants import (
    METRIC_JOB_DURATION,
    METRIC_JOBS_COMPLETED,
    METRIC_LOCK_CONTENTION,
    METRIC_LOCKS_ACQUIRED,
    METRIC_STORES_DISPATCHED,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for store sync.

    Collects metrics for:
    - Job completions by status
    - Job execution duration
    - Lock acquisitions and contention
    - Stores dispatched per mode
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.jobs_completed = Counter(
            METRIC_JOBS_COMPLETED,
            "Total number of store jobs completed",
            ["job_kind", "status"],
            registry=self._registry,
        )

        self.job_duration = Histogram(
            METRIC_JOB_DURATION,
            "Store job execution duration in seconds",
            ["job_kind", "status"],
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
            registry=self._registry,
        )

        self.lock_contention = Counter(
            METRIC_LOCK_CONTENTION,
            "Total number of store jobs skipped because the lock was held",
            ["job_kind"],
            registry=self._registry,
        )

        self.locks_acquired = Counter(
            METRIC_LOCKS_ACQUIRED,
            "Total number of store locks acquired",
            ["job_kind"],
            registry=self._registry,
        )

        self.stores_dispatched = Counter(
            METRIC_STORES_DISPATCHED,
            "Total number of stores handed to a dispatch strategy",
            ["mode"],
            registry=self._registry,
        )

    def record_job_completed(
        self,
        job_kind: str,
        status: str,
        duration_seconds: float,
    ) -> None:
        """Record a job completion."""
        self.jobs_completed.labels(job_kind=job_kind, status=status).inc()
        self.job_duration.labels(job_kind=job_kind, status=status).observe(
            duration_seconds
        )

    def record_lock_acquired(self, job_kind: str) -> None:
        self.locks_acquired.labels(job_kind=job_kind).inc()

    def record_lock_contention(self, job_kind: str) -> None:
        self.lock_contention.labels(job_kind=job_kind).inc()

    def record_store_dispatched(self, mode: str) -> None:
        self.stores_dispatched.labels(mode=mode).inc()

    def serve(self, port: int) -> None:
        """Expose this collector's registry over HTTP on ``port``."""
        start_http_server(port, registry=self._registry)


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """Get the process-wide metrics collector, creating it on first use."""
    if _metrics is None:
        return setup_metrics()
    return _metrics


def serve_metrics(port: int | None) -> None:
    """Start the metrics endpoint for long-running processes, if configured."""
    if port:
        get_metrics().serve(port)
