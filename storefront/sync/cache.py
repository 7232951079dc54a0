from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(slots=True)
class CacheEntry:
    last_updated: str
    max_quantity: int
    fetched_at: float = field(default_factory=time.monotonic)

    def age(self, now: Optional[float] = None) -> float:
        return (now if now is not None else time.monotonic()) - self.fetched_at


class ProductCache:
    """Last-known server state per product id.

    Entries are overwritten on every fetch that returns a product and are
    never expired by time alone; staleness is decided by comparing
    ``last_updated`` with the server.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    def get(self, product_id: str) -> Optional[CacheEntry]:
        return self._entries.get(product_id)

    def set(self, product_id: str, entry: CacheEntry) -> None:
        self._entries[product_id] = entry

    def discard(self, product_id: str) -> None:
        self._entries.pop(product_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class InFlightRequestDeduper:
    """Tracks at most one pending fetch per product id.

    Each handle is registered with the ``lastUpdated`` marker its request
    carried, so a caller joining it can tell whether the shared answer
    applies to its own copy.
    """

    def __init__(self) -> None:
        self._pending: dict[str, tuple[asyncio.Future[Any], Optional[str]]] = {}

    def begin(self, product_id: str) -> Optional[asyncio.Future[Any]]:
        entry = self._pending.get(product_id)
        if entry is None or entry[0].done():
            # Settled but not yet cleared; treat as absent.
            return None
        return entry[0]

    def register(
        self,
        product_id: str,
        handle: asyncio.Future[Any],
        marker: Optional[str] = None,
    ) -> None:
        self._pending[product_id] = (handle, marker)

    def marker(self, product_id: str) -> Optional[str]:
        entry = self._pending.get(product_id)
        return entry[1] if entry is not None else None

    def clear(self, product_id: str, handle: Optional[asyncio.Future[Any]] = None) -> None:
        entry = self._pending.get(product_id)
        if handle is not None and (entry is None or entry[0] is not handle):
            return
        self._pending.pop(product_id, None)

    def is_pending(self, product_id: str) -> bool:
        return self.begin(product_id) is not None

    def __len__(self) -> int:
        return len(self._pending)


__all__ = ["CacheEntry", "InFlightRequestDeduper", "ProductCache"]
