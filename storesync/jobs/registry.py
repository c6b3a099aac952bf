"""
Job class registry.

Maps each job kind to the StoreJob subclass that implements it, so queued
payloads can be turned back into jobs.
"""

import logging
from collections.abc import Callable

from storesync.constants import JobKind
from storesync.jobs.base import StoreJob

logger = logging.getLogger(__name__)

# Job class registry
_jobs: dict[JobKind, type[StoreJob]] = {}


def register_job(kind: JobKind) -> Callable[[type[StoreJob]], type[StoreJob]]:
    """
    Decorator to register a job class for a kind.

    Example:
        @register_job(JobKind.UPDATE_STORE)
        class UpdateStore(StoreJob):
            ...
    """
    def decorator(job_class: type[StoreJob]) -> type[StoreJob]:
        job_class.kind = kind
        _jobs[kind] = job_class
        logger.debug(f"Registered job class for kind: {kind}")
        return job_class
    return decorator


def get_job_class(kind: JobKind | str) -> type[StoreJob] | None:
    """
    Get the job class for a kind.

    Returns:
        The job class or None if the kind is unknown.
    """
    try:
        return _jobs.get(JobKind(kind))
    except ValueError:
        return None


def list_job_kinds() -> list[JobKind]:
    """List all registered job kinds."""
    return list(_jobs.keys())
