"""
Exception hierarchy for store sync jobs.
"""


class StoreSyncError(Exception):
    """Base class for all store sync errors."""


class ConfigurationError(StoreSyncError):
    """Invalid configuration or selection filters, raised before any work starts."""


class ContentionError(StoreSyncError):
    """Another worker holds the lock for this job kind and store."""

    def __init__(self, lock_key: str):
        super().__init__(f"Lock already held: {lock_key}")
        self.lock_key = lock_key


class StoreFetchError(StoreSyncError):
    """The Shopify API failed while fetching store data."""


class StoreUpdateError(StoreSyncError):
    """Persisting fetched store data failed."""


class ExecutionBudgetExceeded(StoreSyncError):
    """A job ran past its maximum execution time."""

    def __init__(self, budget_seconds: float):
        super().__init__(f"Job exceeded its execution budget of {budget_seconds}s")
        self.budget_seconds = budget_seconds
