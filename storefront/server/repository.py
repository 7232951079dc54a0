from __future__ import annotations

import logging
import random
import uuid
from datetime import timedelta
from typing import Any, Iterable, Optional

from ..schemas.inventory import PatchResponse, ProductCreate
from ..schemas.product import Category, Product
from ..sync.versioning import compare_and_swap, versions_match
from ..utils.datetime import format_version, parse_timestamp, utcnow

logger = logging.getLogger(__name__)

SEED_PRODUCTS: list[dict[str, Any]] = [
    {
        "id": "1",
        "name": "Organic Single-Origin Ethiopian Yirgacheffe Coffee Beans",
        "imageUrl": "/product.jpg",
        "maxQuantity": 50,
        "badges": [{"title": "New", "background_color": "#2E7D32"}],
        "price": {"normal": 19, "special": 0},
        "variants": ["#D8D8D8", "#1C4C5B", "#FFFFFF"],
        "category": {"id": "1", "title": "Kitchen"},
        "in_stock": True,
    },
    {
        "id": "2",
        "name": "Premium Earl Grey Imperial Blend Tea Bags",
        "imageUrl": "https://images.unsplash.com/photo-1564890369478-c89ca6d9cde9?w=500&q=80",
        "maxQuantity": 20,
        "badges": [],
        "price": {"normal": 10, "special": 0},
        "variants": ["#D8D8D8", "#1C4C5B", "#FFFFFF"],
        "category": {"id": "2", "title": "DIY"},
        "in_stock": True,
    },
    {
        "id": "3",
        "name": "Artisanal Raw Cane Sugar Crystal Collection",
        "imageUrl": "https://images.unsplash.com/photo-1581441363689-1f3c3c414635?w=500&q=80",
        "maxQuantity": 200,
        "badges": [{"title": "New", "background_color": "#2E7D32"}],
        "price": {"normal": 5, "special": 0},
        "variants": ["#D8D8D8", "#1C4C5B", "#FFFFFF"],
        "category": {"id": "3", "title": "Garden"},
        "in_stock": True,
    },
    {
        "id": "4",
        "name": "Artisanal Hand-Crafted Chocolate-Dipped Biscotti Collection",
        "imageUrl": "https://images.unsplash.com/photo-1548848221-0c2e497ed557?w=500&q=80",
        "maxQuantity": 45,
        "badges": [{"title": "-25%", "background_color": "#C62828"}],
        "price": {"normal": 24, "special": 19},
        "variants": ["#8B4513", "#D2691E", "#A0522D"],
        "category": {"id": "4", "title": "Gourmet Treats"},
        "in_stock": True,
    },
    {
        "id": "5",
        "name": "Ultimate Barista Pro Deluxe Coffee Grinder 3000",
        "imageUrl": "",
        "maxQuantity": 75,
        "badges": [],
        "price": {"normal": 299, "special": 249},
        "variants": ["#000000", "#CC0000", "#666666"],
        "category": {"id": "5", "title": "Equipment"},
        "in_stock": True,
    },
    {
        "id": "6",
        "name": "Midnight Mystery Limited Reserve Single-Origin Coffee",
        "imageUrl": "https://images.unsplash.com/photo-1514432324607-a09d9b4aefdd?w=500&q=80",
        "maxQuantity": 90,
        "badges": [{"title": "New", "background_color": "#2E7D32"}],
        "price": {"normal": 49, "special": 0},
        "variants": ["#000000"],
        "category": {"id": "1", "title": "Category 1"},
        "in_stock": False,
    },
    {
        "id": "7",
        "name": "Rainbow Unicorn Birthday Cake Flavored Coffee Pods",
        "imageUrl": "https://images.unsplash.com/photo-1579546929518-9e396f3cc809?w=500&q=80",
        "maxQuantity": 95,
        "badges": [],
        "price": {"normal": 15, "special": 12},
        "variants": ["#FF69B4", "#87CEEB", "#98FB98", "#DDA0DD"],
        "category": {"id": "6", "title": "Specialty Flavors"},
        "in_stock": True,
    },
]


def seed_products() -> list[Product]:
    version = format_version(utcnow())
    return [Product.model_validate({**raw, "lastUpdated": version}) for raw in SEED_PRODUCTS]


def next_version(previous: Optional[str]) -> str:
    """A marker strictly newer than ``previous``."""
    now = utcnow()
    previous_ts = parse_timestamp(previous)
    if previous_ts is not None and now <= previous_ts:
        now = previous_ts + timedelta(milliseconds=1)
    return format_version(now)


class InventoryRepository:
    """In-memory authoritative catalog behind the mock service."""

    def __init__(
        self,
        products: Optional[Iterable[Product]] = None,
        *,
        conflict_rate: float = 0.0,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._products: dict[str, Product] = {}
        for product in products if products is not None else seed_products():
            self._products[product.id] = product
        self.conflict_rate = conflict_rate
        self._rng = rng or random.Random()

    def list_products(self) -> list[Product]:
        return list(self._products.values())

    def get(self, product_id: str) -> Optional[Product]:
        return self._products.get(product_id)

    def get_if_changed(self, product_id: str, known_last_updated: Optional[str]) -> Optional[Product]:
        """Return the product unless ``known_last_updated`` is current.

        Raises KeyError when the product does not exist.
        """
        product = self._products[product_id]
        if versions_match(known_last_updated, product.last_updated):
            return None
        return product

    def update_max_quantity(
        self,
        product_id: str,
        max_quantity: int,
        known_last_updated: Optional[str] = None,
    ) -> PatchResponse:
        product = self._products[product_id]
        if not compare_and_swap(known_last_updated, product.last_updated):
            return PatchResponse(
                conflict=True,
                item=product,
                message="Item was modified by someone else",
            )
        if self.conflict_rate > 0 and self._rng.random() < self.conflict_rate:
            return PatchResponse(
                conflict=True,
                item=product,
                message="Simulated concurrent modification",
            )

        product.max_quantity = max_quantity
        product.in_stock = max_quantity > 0
        product.last_updated = next_version(product.last_updated)
        return PatchResponse(conflict=False, item=product)

    def create(self, payload: ProductCreate) -> Product:
        product = Product(
            id=str(uuid.uuid4()),
            name=payload.name,
            image_url=payload.image_url,
            max_quantity=payload.quantity,
            last_updated=format_version(utcnow()),
            badges=[],
            price=payload.resolved_price(),
            variants=list(payload.variants),
            category=payload.category or Category(id="0", title="Uncategorized"),
            in_stock=payload.quantity > 0,
        )
        self._products[product.id] = product
        return product

    def reshuffle(self) -> None:
        for product in self._products.values():
            product.max_quantity = self._rng.randint(1, 99)
            product.last_updated = next_version(product.last_updated)
        logger.info("Reshuffled availability for %s products", len(self._products))


__all__ = ["InventoryRepository", "SEED_PRODUCTS", "next_version", "seed_products"]
