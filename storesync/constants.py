"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class JobKind(StrEnum):
    """Kinds of per-store background work."""

    UPDATE_STORE = "update_store"


class JobStatus(StrEnum):
    """
    Job lifecycle states.

    State transitions:
    - CREATED -> STARTED (lock acquired, started event emitted)
    - STARTED -> FINISHED (success, finished event emitted)
    - STARTED -> FAILED (error or execution budget exceeded)
    - CREATED -> SKIPPED (lock held by another worker)
    """

    CREATED = "created"
    STARTED = "started"
    FINISHED = "finished"
    FAILED = "failed"
    SKIPPED = "skipped"


class StoreCounter(StrEnum):
    """Optional cached counters a store update may refresh."""

    CUSTOMER_COUNT = "customer_count"
    ORDER_COUNT = "order_count"
    PRODUCT_COUNT = "product_count"


class LogLevel(StrEnum):
    """Severities accepted by the event logger."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


# Fully qualified taxonomy path per job kind, used to build event message keys
JOB_KIND_TAXONOMY: dict[JobKind, tuple[str, ...]] = {
    JobKind.UPDATE_STORE: ("storesync", "jobs", "UpdateStore"),
}

# Leading taxonomy segments dropped from event message keys
TAXONOMY_PREFIX_DEPTH = 2

EVENT_KEY_DELIMITER = ":"
LOCK_KEY_DELIMITER = "|"

# Shopify resource backing each counter, with extra query params
COUNTER_RESOURCES: dict[StoreCounter, tuple[str, dict[str, str]]] = {
    StoreCounter.CUSTOMER_COUNT: ("customers", {}),
    StoreCounter.ORDER_COUNT: ("orders", {"status": "any"}),
    StoreCounter.PRODUCT_COUNT: ("products", {}),
}

# Default values
DEFAULT_CHUNK_SIZE = 100
DEFAULT_LOCK_MINUTES = 60
SYNC_CONNECTION = "sync"
ANY_STORES = "any"
COMPLETION_NOTICE = "Update for Store({store_id}): {domain}, has completed."

# Event names
EVENT_LOCKED = "locked"
EVENT_HAS_LOCK = "has_lock"
EVENT_UNLOCKED = "unlocked"
EVENT_STARTED = "started"
EVENT_FINISHED = "finished"
EVENT_FAILED = "failed"

# Metrics names
METRIC_JOBS_COMPLETED = "storesync_jobs_completed_total"
METRIC_JOB_DURATION = "storesync_job_duration_seconds"
METRIC_LOCK_CONTENTION = "storesync_lock_contention_total"
METRIC_LOCKS_ACQUIRED = "storesync_locks_acquired_total"
METRIC_STORES_DISPATCHED = "storesync_stores_dispatched_total"

# Trace span names
SPAN_RUN_JOB = "run_store_job"
SPAN_DISPATCH_CHUNK = "dispatch_chunk"
