from __future__ import annotations

from typing import TYPE_CHECKING, Optional
from uuid import uuid4

if TYPE_CHECKING:
    from .schemas.product import Product


def new_trace_id() -> str:
    return uuid4().hex


class TrackedError(Exception):
    def __init__(self, message: str, *, error_type: str, trace_id: str | None = None) -> None:
        self.error_type = error_type
        self.trace_id = trace_id or new_trace_id()
        super().__init__(message)

    def with_trace(self) -> str:
        return f"{self.args[0]} (trace_id={self.trace_id})"


class InventoryError(TrackedError):
    """Base class for failures talking to the inventory service."""


class InventoryNetworkError(InventoryError):
    def __init__(self, message: str, *, trace_id: str | None = None) -> None:
        super().__init__(message, error_type="network", trace_id=trace_id)


class ProductNotFoundError(InventoryError):
    def __init__(self, product_id: str, *, trace_id: str | None = None) -> None:
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found", error_type="not_found", trace_id=trace_id)


class InventoryConflictError(InventoryError):
    def __init__(
        self,
        product_id: str,
        *,
        item: Optional["Product"] = None,
        message: str | None = None,
        trace_id: str | None = None,
    ) -> None:
        self.product_id = product_id
        self.item = item
        super().__init__(
            message or f"Concurrent modification of product {product_id}",
            error_type="conflict",
            trace_id=trace_id,
        )


class InventoryValidationError(InventoryError):
    def __init__(self, message: str, *, trace_id: str | None = None) -> None:
        super().__init__(message, error_type="validation", trace_id=trace_id)


__all__ = [
    "new_trace_id",
    "TrackedError",
    "InventoryError",
    "InventoryNetworkError",
    "ProductNotFoundError",
    "InventoryConflictError",
    "InventoryValidationError",
]
