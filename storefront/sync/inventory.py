from __future__ import annotations

import logging
from typing import Optional

from ..exceptions import InventoryConflictError, InventoryError
from ..log import log_sync_event
from ..schemas.inventory import SyncStatus
from ..schemas.product import Product
from ..utils.datetime import utcnow
from .fetcher import ProductFetcher

logger = logging.getLogger(__name__)


class InventoryStore:
    """Client-side catalog with optimistic ceiling edits."""

    def __init__(self, fetcher: ProductFetcher) -> None:
        self.fetcher = fetcher
        self.items: list[Product] = []
        self.status = SyncStatus()

    def get(self, product_id: str) -> Optional[Product]:
        for item in self.items:
            if item.id == product_id:
                return item
        return None

    async def sync_with_server(self) -> bool:
        self.status.syncing = True
        try:
            self.items = await self.fetcher.fetch_products()
        except InventoryError as exc:
            logger.warning("Failed to sync with server: %s", exc)
            return False
        finally:
            self.status.syncing = False
        self.status.last_synced = utcnow()
        return True

    async def update_max_quantity(self, product_id: str, max_quantity: int) -> Optional[Product]:
        """Apply a new ceiling locally, then confirm it with the server.

        The local value is rolled back when the server rejects or the
        request fails. Conflicts are recorded in ``status.conflicts`` and
        re-raised with the authoritative item attached.
        """
        item = self.get(product_id)
        if item is None:
            return None

        previous_quantity = item.max_quantity
        previous_version = item.last_updated
        item.max_quantity = max_quantity

        try:
            confirmed = await self.fetcher.update_max_quantity(
                product_id,
                max_quantity,
                last_updated=previous_version,
            )
        except InventoryConflictError:
            item.max_quantity = previous_quantity
            if product_id not in self.status.conflicts:
                self.status.conflicts.append(product_id)
            log_sync_event("inventory_rollback", product_id=product_id, reason="conflict")
            raise
        except InventoryError:
            item.max_quantity = previous_quantity
            log_sync_event("inventory_rollback", product_id=product_id, reason="error")
            raise

        self._replace(confirmed)
        return confirmed

    def clear_conflicts(self) -> None:
        self.status.conflicts.clear()

    def _replace(self, product: Product) -> None:
        for index, item in enumerate(self.items):
            if item.id == product.id:
                self.items[index] = product
                return
        self.items.append(product)


__all__ = ["InventoryStore"]
