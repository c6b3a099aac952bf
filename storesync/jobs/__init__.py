"""
Store jobs.
Importing this package registers every job kind.
"""

from storesync.jobs.base import StoreJob
from storesync.jobs.registry import get_job_class, list_job_kinds, register_job
from storesync.jobs.runtime import JobRuntime
from storesync.jobs.update_store import UpdateStore

__all__ = [
    "StoreJob",
    "JobRuntime",
    "UpdateStore",
    "register_job",
    "get_job_class",
    "list_job_kinds",
]
