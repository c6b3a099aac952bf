"""
Refresh a store's shop attributes and cached counters from Shopify.
"""

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from storesync.constants import COUNTER_RESOURCES, JobKind
from storesync.db.repository import StoreRepository
from storesync.errors import StoreUpdateError
from storesync.jobs.base import StoreJob
from storesync.jobs.registry import register_job

logger = logging.getLogger(__name__)

# Shop resource fields copied onto the store row
SHOP_FIELDS = ("name", "email", "currency", "plan_name")


@register_job(JobKind.UPDATE_STORE)
class UpdateStore(StoreJob):
    """
    Fetch ``/shop.json`` plus the requested counters and write them back.
    """

    async def handle(self) -> dict[str, Any]:
        self.handle_start({"counts": [c.value for c in self.counts]})

        async with self.get_api_client() as client:
            shop = await client.get_shop()

            counts: dict[str, int] = {}
            for counter in self.counts:
                resource, params = COUNTER_RESOURCES[counter]
                counts[counter.value] = await client.count(resource, params or None)

        changed = self.changed_attributes(shop)
        await self.save({**changed, **counts})

        output = {"counts": counts, "shop": changed}
        self.handle_finish(output)
        return output

    def changed_attributes(self, shop: dict[str, Any]) -> dict[str, Any]:
        """Shop fields whose API value differs from the stored one."""
        return {
            field: shop[field]
            for field in SHOP_FIELDS
            if field in shop and getattr(self.store, field) != shop[field]
        }

    async def save(self, values: dict[str, Any]) -> None:
        """
        Persist refreshed values through the store registry.

        Raises:
            StoreUpdateError: If the write fails or the store is gone.
        """
        try:
            async with self.runtime.session_factory() as session:
                updated = await StoreRepository(session).update_store(self.store.id, values)
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreUpdateError(f"Store({self.store.id}): update failed: {e}") from e

        if updated is None:
            raise StoreUpdateError(f"Store({self.store.id}) no longer exists")

        for column, value in values.items():
            setattr(self.store, column, value)
        self.store.updated_at = updated.updated_at
