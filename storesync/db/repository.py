"""
Store repository for database operations.
Implements the selection and write-back patterns used by sync jobs.
"""

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storesync.db.models import Store, utc_now_naive
from storesync.types.selection import StoreSelection

logger = logging.getLogger(__name__)


class StoreRepository:
    """
    Repository for store database operations.

    Implements:
    - Filtered selection of installed stores
    - Keyset pagination in fixed-size chunks
    - Write-back of refreshed store attributes
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            session: The async database session.
        """
        self._session = session

    @staticmethod
    def selection_query(selection: StoreSelection) -> Select[tuple[Store]]:
        """
        Build the store selection query.

        Installed stores only, optionally narrowed to an id allow-list and to
        stores updated at or after ``updated_at_min``.
        """
        stmt = select(Store).where(Store.installed.is_(True))

        if selection.store_ids is not None:
            stmt = stmt.where(Store.id.in_(sorted(selection.store_ids)))

        if selection.updated_at_min is not None:
            stmt = stmt.where(Store.updated_at >= selection.updated_at_min)

        return stmt

    async def fetch_chunk(
        self,
        selection: StoreSelection,
        after_id: int = 0,
        limit: int = 100,
    ) -> Sequence[Store]:
        """
        Fetch the next chunk of selected stores ordered by id.

        Paging by id rather than offset keeps the walk stable while jobs
        bump ``updated_at`` on stores already visited.

        Args:
            selection: Store filters.
            after_id: Only stores with a greater id are returned.
            limit: Maximum chunk size.

        Returns:
            Up to ``limit`` stores.
        """
        stmt = (
            self.selection_query(selection)
            .where(Store.id > after_id)
            .order_by(Store.id)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def count(self, selection: StoreSelection) -> int:
        """Count stores matching a selection."""
        stmt = select(func.count()).select_from(
            self.selection_query(selection).subquery()
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def get_store(self, store_id: int) -> Store | None:
        """
        Get a store by ID.

        Args:
            store_id: The store id.

        Returns:
            The Store or None if not found.
        """
        stmt = select(Store).where(Store.id == store_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def update_store(self, store_id: int, values: dict[str, Any]) -> Store | None:
        """
        Write refreshed attributes and bump ``updated_at``.

        Last write wins; no optimistic concurrency is applied.

        Args:
            store_id: The store id.
            values: Column values to write.

        Returns:
            The updated Store or None if it no longer exists.
        """
        store = await self.get_store(store_id)
        if store is None:
            logger.warning("Store vanished before update", extra={"store_id": store_id})
            return None

        for column, value in values.items():
            setattr(store, column, value)
        store.updated_at = utc_now_naive()
        await self._session.flush()

        logger.info(
            "Updated store",
            extra={"store_id": store_id, "fields": sorted(values)},
        )
        return store
