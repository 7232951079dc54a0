from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..config import get_settings
from .cart import CartStore

logger = logging.getLogger(__name__)


class BatchUpdateQueue:
    """Coalesces rapid quantity changes per product into one reconciliation pass.

    Within a batch window the last queued quantity for an id wins. Updates
    queued while a flush is running are picked up by the next cycle.
    """

    def __init__(self, cart: CartStore, *, window_seconds: Optional[float] = None) -> None:
        self.cart = cart
        if window_seconds is None:
            window_seconds = get_settings().batch_window_seconds
        self.window_seconds = max(0.0, float(window_seconds))
        self._pending: dict[str, int] = {}
        self._flush_task: Optional[asyncio.Task[None]] = None

    @property
    def pending(self) -> dict[str, int]:
        return dict(self._pending)

    @property
    def flushing(self) -> bool:
        return self._flush_task is not None and not self._flush_task.done()

    def queue_update(self, product_id: str, quantity: int) -> asyncio.Task[None]:
        """Record ``quantity`` for ``product_id`` and make sure a flush is scheduled.

        Must be called from a running event loop. The returned task settles
        once the queue has drained.
        """
        self._pending[product_id] = quantity
        task = self._flush_task
        if task is None or task.done():
            task = asyncio.get_running_loop().create_task(self._drain())
            self._flush_task = task
        return task

    async def flush(self) -> None:
        """Apply everything queued so far and wait for it to land."""
        while self._pending or self.flushing:
            task = self._flush_task
            if task is None or task.done():
                task = asyncio.get_running_loop().create_task(self._run_cycles())
                self._flush_task = task
            await task

    async def _drain(self) -> None:
        # Let callers in the same tick coalesce before the first cycle.
        await asyncio.sleep(self.window_seconds)
        await self._run_cycles()

    async def _run_cycles(self) -> None:
        while self._pending:
            batch = self._pending
            self._pending = {}
            product_ids = list(batch)
            results = await asyncio.gather(
                *(self.cart.update_quantity(pid, batch[pid]) for pid in product_ids),
                return_exceptions=True,
            )
            for pid, result in zip(product_ids, results):
                if isinstance(result, Exception):
                    logger.error(
                        "Batched update of %s failed",
                        pid,
                        exc_info=(type(result), result, result.__traceback__),
                    )


__all__ = ["BatchUpdateQueue"]
