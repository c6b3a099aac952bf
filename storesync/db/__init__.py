"""
Database module.
Contains database connection, models, and repository implementations.
"""

from storesync.db.connection import (
    close_db,
    create_session_factory,
    get_engine,
    init_db,
)
from storesync.db.models import Base, Store
from storesync.db.repository import StoreRepository

__all__ = [
    "create_session_factory",
    "get_engine",
    "init_db",
    "close_db",
    "Store",
    "Base",
    "StoreRepository",
]
