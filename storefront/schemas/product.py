from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.datetime import parse_timestamp


class Price(BaseModel):
    model_config = ConfigDict(extra="ignore")

    normal: float
    special: Optional[float] = None

    @property
    def effective(self) -> float:
        # A zero special price means "no special".
        return self.special or self.normal


class Category(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str


class Badge(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = ""
    background_color: str = ""


class Product(BaseModel):
    """Server-owned catalog entry. ``last_updated`` is the version marker."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    name: str
    image_url: str = Field(default="", alias="imageUrl")
    category: Category = Field(default_factory=lambda: Category(id="0", title="Uncategorized"))
    badges: list[Badge] = Field(default_factory=list)
    variants: list[str] = Field(default_factory=list)
    price: Price
    max_quantity: int = Field(alias="maxQuantity", ge=0)
    last_updated: str = Field(alias="lastUpdated")
    in_stock: bool = True

    @property
    def effective_price(self) -> float:
        return self.price.effective

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class CartItem(Product):
    """Product snapshot plus cart-local fields."""

    quantity: int = Field(default=1, ge=0)
    last_synchronized: Optional[datetime] = Field(default=None, alias="lastSynchronized")

    @field_validator("last_synchronized", mode="before")
    @classmethod
    def _coerce_last_synchronized(cls, value: Any) -> Any:
        # Older stored carts carry locale-formatted strings; those are re-stamped on load.
        if value is None or isinstance(value, datetime):
            return value
        if isinstance(value, str):
            return parse_timestamp(value)
        return None

    @property
    def line_total(self) -> float:
        return self.effective_price * self.quantity

    @classmethod
    def from_product(
        cls,
        product: Product,
        *,
        quantity: int,
        last_synchronized: datetime,
    ) -> "CartItem":
        payload = product.model_dump()
        payload.pop("quantity", None)
        payload.pop("last_synchronized", None)
        return cls(**payload, quantity=quantity, last_synchronized=last_synchronized)

    def refresh_from(self, product: Product, *, synchronized_at: datetime) -> None:
        """Adopt the server-owned fields of ``product``; ``quantity`` is left alone."""
        self.max_quantity = product.max_quantity
        self.last_updated = product.last_updated
        self.price = product.price.model_copy()
        self.in_stock = product.in_stock
        self.last_synchronized = synchronized_at


__all__ = ["Badge", "CartItem", "Category", "Price", "Product"]
