from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .product import Category, Price, Product


class ConditionalFetchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    last_updated: Optional[str] = Field(default=None, alias="lastUpdated")


class MaxQuantityUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    max_quantity: int = Field(alias="maxQuantity")
    last_updated: Optional[str] = Field(default=None, alias="lastUpdated")


class PatchResponse(BaseModel):
    conflict: bool
    item: Optional[Product] = None
    message: Optional[str] = None


class TimestampResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    last_updated: str = Field(alias="lastUpdated")


class PriceInput(BaseModel):
    normal: float = 0
    special: Optional[float] = None


class ProductCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1)
    image_url: str = Field(default="", alias="imageUrl")
    quantity: int = Field(default=0, ge=0)
    price: Optional[PriceInput] = None
    variants: list[str] = Field(default_factory=list)
    category: Optional[Category] = None

    def resolved_price(self) -> Price:
        if self.price is None:
            return Price(normal=0, special=None)
        return Price(normal=self.price.normal or 0, special=self.price.special or None)


class SyncStatus(BaseModel):
    last_synced: Optional[datetime] = None
    syncing: bool = False
    conflicts: list[str] = Field(default_factory=list)


__all__ = [
    "ConditionalFetchRequest",
    "MaxQuantityUpdate",
    "PatchResponse",
    "PriceInput",
    "ProductCreate",
    "SyncStatus",
    "TimestampResponse",
]
