"""
Shared key-value caches with per-key expiry, used as the lock table.
"""

from storesync.cache.backends import (
    InMemoryLockCache,
    LockCache,
    RedisLockCache,
    create_lock_cache,
)

__all__ = [
    "LockCache",
    "InMemoryLockCache",
    "RedisLockCache",
    "create_lock_cache",
]
