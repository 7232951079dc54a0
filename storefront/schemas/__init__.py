from .inventory import (
    ConditionalFetchRequest,
    MaxQuantityUpdate,
    PatchResponse,
    PriceInput,
    ProductCreate,
    SyncStatus,
    TimestampResponse,
)
from .product import Badge, CartItem, Category, Price, Product

__all__ = [
    "Badge",
    "CartItem",
    "Category",
    "ConditionalFetchRequest",
    "MaxQuantityUpdate",
    "PatchResponse",
    "Price",
    "PriceInput",
    "Product",
    "ProductCreate",
    "SyncStatus",
    "TimestampResponse",
]
