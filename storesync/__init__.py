"""
Store Sync

Synchronizes per-store state from the Shopify Admin API into a local datastore
using background jobs guarded by TTL-bounded advisory locks.
"""

__version__ = "1.0.0"
