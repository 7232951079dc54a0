from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from ..config import get_settings
from ..exceptions import (
    InventoryConflictError,
    InventoryNetworkError,
    InventoryValidationError,
    ProductNotFoundError,
)
from ..log import log_sync_event
from ..schemas.inventory import MaxQuantityUpdate, PatchResponse, TimestampResponse
from ..schemas.product import Product
from .cache import CacheEntry, InFlightRequestDeduper, ProductCache
from .versioning import is_older_version, versions_match

logger = logging.getLogger(__name__)


class ProductFetcher:
    """Client for the inventory service.

    ``fetch_single_product`` implements the conditional fetch protocol:
    the caller's (or the cached) ``lastUpdated`` marker is sent to the
    server, which answers ``null`` when nothing changed. At most one
    request per product id is outstanding at a time; concurrent callers
    share its result.
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        cache_max_age_seconds: Optional[float] = None,
        cache: Optional[ProductCache] = None,
        deduper: Optional[InFlightRequestDeduper] = None,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self.base_url = base_url or settings.inventory_base_url
        timeout = timeout_seconds or settings.inventory_timeout_seconds
        if cache_max_age_seconds is None:
            cache_max_age_seconds = settings.product_cache_max_age_seconds
        self.cache_max_age_seconds = max(0.0, float(cache_max_age_seconds))
        self.cache = cache if cache is not None else ProductCache()
        self.deduper = deduper if deduper is not None else InFlightRequestDeduper()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ProductFetcher":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch_products(self) -> list[Product]:
        payload = await self._request("GET", "/inventory")
        if not isinstance(payload, list):
            raise InventoryValidationError("Catalog response is not a list")
        products = [self._parse_product(raw) for raw in payload]
        for product in products:
            self._remember(product)
        return products

    async def fetch_product(self, product_id: str) -> Product:
        payload = await self._request("GET", f"/inventory/{product_id}", product_id=product_id)
        product = self._parse_product(payload)
        self._remember(product)
        return product

    async def fetch_timestamp(self, product_id: str) -> str:
        payload = await self._request(
            "GET",
            f"/inventory/{product_id}/timestamp",
            product_id=product_id,
        )
        try:
            return TimestampResponse.model_validate(payload).last_updated
        except ValidationError as exc:
            raise InventoryValidationError(f"Invalid timestamp response for {product_id}: {exc}") from exc

    async def is_stale(self, product_id: str, known_last_updated: Optional[str]) -> bool:
        current = await self.fetch_timestamp(product_id)
        return not versions_match(known_last_updated, current)

    async def fetch_single_product(
        self,
        product_id: str,
        known_last_updated: Optional[str] = None,
        *,
        force: bool = False,
    ) -> Optional[Product]:
        """Return the current product, or ``None`` when the caller's copy is current.

        Raises InventoryNetworkError, InventoryValidationError or
        ProductNotFoundError; a failure is never reported as ``None``.
        """
        if not force and self._fresh_cache_hit(product_id, known_last_updated):
            log_sync_event("fetch_cache_hit", product_id=product_id)
            return None

        while True:
            marker = self._resolve_marker(product_id, known_last_updated)
            existing = self.deduper.begin(product_id)
            if existing is None:
                break
            shared_marker = self.deduper.marker(product_id)
            log_sync_event("fetch_deduplicated", product_id=product_id)
            result = await asyncio.shield(existing)
            # "Unchanged" only holds for the marker the shared request carried.
            if result is not None or shared_marker == marker:
                return result
            log_sync_event(
                "fetch_marker_mismatch",
                product_id=product_id,
                shared=shared_marker,
                known=marker,
            )

        task = asyncio.ensure_future(self._conditional_fetch(product_id, marker))
        self.deduper.register(product_id, task, marker)
        return await asyncio.shield(task)

    async def update_max_quantity(
        self,
        product_id: str,
        max_quantity: int,
        *,
        last_updated: Optional[str] = None,
    ) -> Product:
        body = MaxQuantityUpdate(max_quantity=max_quantity, last_updated=last_updated)
        payload = await self._request(
            "PATCH",
            f"/inventory/{product_id}",
            json=body.model_dump(by_alias=True, exclude_none=True),
            product_id=product_id,
        )
        try:
            result = PatchResponse.model_validate(payload)
        except ValidationError as exc:
            raise InventoryValidationError(f"Invalid patch response for {product_id}: {exc}") from exc

        if result.item is not None:
            self._remember(result.item)
        if result.conflict:
            log_sync_event("patch_conflict", product_id=product_id, message=result.message)
            raise InventoryConflictError(product_id, item=result.item, message=result.message)
        if result.item is None:
            raise InventoryValidationError(f"Patch response for {product_id} carried no item")
        return result.item

    async def _conditional_fetch(self, product_id: str, marker: Optional[str]) -> Optional[Product]:
        cached = self.cache.get(product_id)
        try:
            payload = await self._request(
                "POST",
                f"/inventory/{product_id}",
                json={"lastUpdated": marker},
                product_id=product_id,
            )
            if payload is None:
                if cached is not None and cached.last_updated == marker:
                    cached.fetched_at = time.monotonic()
                log_sync_event("fetch_unchanged", product_id=product_id, last_updated=marker)
                return None

            product = self._parse_product(payload)
            if is_older_version(product.last_updated, marker):
                logger.warning(
                    "Ignoring response for %s older than the known version (%s < %s)",
                    product_id,
                    product.last_updated,
                    marker,
                )
                return None
            self._remember(product)
            log_sync_event(
                "fetch_updated",
                product_id=product_id,
                last_updated=product.last_updated,
                max_quantity=product.max_quantity,
            )
            return product
        finally:
            self.deduper.clear(product_id, asyncio.current_task())

    def _resolve_marker(self, product_id: str, known_last_updated: Optional[str]) -> Optional[str]:
        if known_last_updated is not None:
            return known_last_updated
        cached = self.cache.get(product_id)
        return cached.last_updated if cached is not None else None

    def _fresh_cache_hit(self, product_id: str, known_last_updated: Optional[str]) -> bool:
        # A caller without a marker holds no copy that "unchanged" could refer to.
        if self.cache_max_age_seconds <= 0 or known_last_updated is None:
            return False
        cached = self.cache.get(product_id)
        if cached is None or cached.age() >= self.cache_max_age_seconds:
            return False
        return known_last_updated == cached.last_updated

    def _remember(self, product: Product) -> None:
        self.cache.set(
            product.id,
            CacheEntry(last_updated=product.last_updated, max_quantity=product.max_quantity),
        )

    @staticmethod
    def _parse_product(payload: Any) -> Product:
        try:
            return Product.model_validate(payload)
        except ValidationError as exc:
            raise InventoryValidationError(f"Invalid product payload: {exc}") from exc

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        product_id: Optional[str] = None,
    ) -> Any:
        try:
            if json is None:
                response = await self._client.request(method, path)
            else:
                response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as exc:
            raise InventoryNetworkError(f"{method} {path} failed: {exc}") from exc

        if response.status_code == 404 and product_id is not None:
            raise ProductNotFoundError(product_id)
        if response.status_code >= 500:
            raise InventoryNetworkError(
                f"Inventory service error {response.status_code}: {response.text}"
            )
        if response.status_code >= 400:
            raise InventoryValidationError(
                f"Inventory service rejected {method} {path} ({response.status_code}): {response.text}"
            )
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise InventoryValidationError(f"{method} {path} returned invalid JSON") from exc


__all__ = ["ProductFetcher"]
