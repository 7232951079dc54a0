from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional, Protocol

from ..exceptions import InventoryError
from ..log import log_sync_event
from ..schemas.product import CartItem, Product
from ..utils.datetime import utcnow
from .persistence import LocalPersistence

logger = logging.getLogger(__name__)

MAX_TRACKED_ISSUES = 50


class SingleProductFetcher(Protocol):
    async def fetch_single_product(
        self,
        product_id: str,
        known_last_updated: Optional[str] = None,
        *,
        force: bool = False,
    ) -> Optional[Product]: ...


@dataclass(slots=True)
class SyncIssue:
    """A background refresh failure absorbed by the cart."""

    product_id: str
    operation: str
    error_type: str
    message: str
    occurred_at: datetime = field(default_factory=utcnow)


class CartStore:
    """Cart line items, kept in memory and mirrored to durable storage.

    Every mutating operation ends with a save, issued in the order the
    mutations complete. Refresh failures are recorded in ``issues`` and the
    operation carries on with the local copy.
    """

    def __init__(
        self,
        fetcher: SingleProductFetcher,
        persistence: LocalPersistence,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.fetcher = fetcher
        self.persistence = persistence
        self._clock = clock
        self._items: list[CartItem] = []
        self._issues: deque[SyncIssue] = deque(maxlen=MAX_TRACKED_ISSUES)

    def initialize(self) -> None:
        loaded = self.persistence.load()
        if loaded is None:
            return
        self._items = loaded
        self._persist()

    @property
    def items(self) -> list[CartItem]:
        return list(self._items)

    @property
    def issues(self) -> list[SyncIssue]:
        return list(self._issues)

    @property
    def subtotal(self) -> float:
        return sum(item.effective_price * item.quantity for item in self._items)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self._items)

    def get_cart_item(self, product_id: str) -> Optional[CartItem]:
        for item in self._items:
            if item.id == product_id:
                return item
        return None

    async def add_to_cart(self, product: Product, quantity: int = 1) -> CartItem:
        if quantity <= 0:
            raise ValueError("quantity must be > 0")

        existing = self.get_cart_item(product.id)
        if existing is not None:
            existing.quantity += quantity
            known = existing.last_updated
        else:
            known = product.last_updated

        updated = await self._refresh(product.id, known, operation="add")

        # The line may have been added or removed while the fetch was pending.
        current = self.get_cart_item(product.id)
        now = self._clock()
        if current is None:
            if existing is not None:
                # Removed while pending; the removal stands.
                return existing
            item = CartItem.from_product(updated or product, quantity=quantity, last_synchronized=now)
            self._items.append(item)
        else:
            item = current
            if item is not existing:
                item.quantity += quantity
            if updated is not None:
                item.refresh_from(updated, synchronized_at=now)

        self._persist()
        return item

    def remove_from_cart(self, product_id: str) -> None:
        self._items = [item for item in self._items if item.id != product_id]
        log_sync_event("cart_removed", product_id=product_id)
        self._persist()

    async def update_quantity(self, product_id: str, quantity: int) -> Optional[CartItem]:
        item = self.get_cart_item(product_id)
        if item is None:
            return None
        if quantity <= 0:
            self.remove_from_cart(product_id)
            return None

        updated = await self._refresh(product_id, item.last_updated, operation="update")

        item = self.get_cart_item(product_id)
        if item is None:
            return None
        if updated is not None:
            item.refresh_from(updated, synchronized_at=self._clock())

        resolved = quantity
        if item.max_quantity < resolved:
            log_sync_event(
                "cart_clamped",
                product_id=product_id,
                requested=quantity,
                max_quantity=item.max_quantity,
            )
            resolved = item.max_quantity
        if resolved <= 0:
            self.remove_from_cart(product_id)
            return None

        item.quantity = resolved
        self._persist()
        return item

    async def _refresh(
        self,
        product_id: str,
        known_last_updated: Optional[str],
        *,
        operation: str,
    ) -> Optional[Product]:
        try:
            return await self.fetcher.fetch_single_product(product_id, known_last_updated)
        except InventoryError as exc:
            logger.warning("Refresh of %s during %s failed: %s", product_id, operation, exc)
            self._issues.append(
                SyncIssue(
                    product_id=product_id,
                    operation=operation,
                    error_type=exc.error_type,
                    message=str(exc),
                )
            )
            return None

    def _persist(self) -> None:
        self.persistence.save(self._items)


__all__ = ["CartStore", "SingleProductFetcher", "SyncIssue"]
