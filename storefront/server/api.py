from __future__ import annotations

import asyncio
import logging
import random
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Request

from ..config import Settings
from ..schemas.inventory import (
    ConditionalFetchRequest,
    MaxQuantityUpdate,
    PatchResponse,
    ProductCreate,
    TimestampResponse,
)
from ..schemas.product import Product
from .repository import InventoryRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/inventory", tags=["inventory"])


def get_repository(request: Request) -> InventoryRepository:
    return request.app.state.inventory


def get_service_settings(request: Request) -> Settings:
    return request.app.state.settings


def _require_product(repository: InventoryRepository, product_id: str) -> Product:
    product = repository.get(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


async def _simulate_delay(settings: Settings) -> None:
    low = max(0.0, settings.mock_delay_min_seconds)
    high = max(low, settings.mock_delay_max_seconds)
    if high <= 0:
        return
    await asyncio.sleep(random.uniform(low, high))


@router.get("", response_model=list[Product])
async def list_inventory(
    repository: InventoryRepository = Depends(get_repository),
    settings: Settings = Depends(get_service_settings),
) -> list[Product]:
    await _simulate_delay(settings)
    return repository.list_products()


@router.post("", response_model=Product)
async def create_product(
    payload: ProductCreate,
    repository: InventoryRepository = Depends(get_repository),
) -> Product:
    product = repository.create(payload)
    logger.info("Created product %s", product.id)
    return product


@router.get("/{product_id}", response_model=Product)
async def get_product(
    product_id: str,
    repository: InventoryRepository = Depends(get_repository),
) -> Product:
    return _require_product(repository, product_id)


@router.post("/{product_id}", response_model=Optional[Product])
async def fetch_if_changed(
    product_id: str,
    payload: Optional[ConditionalFetchRequest] = Body(default=None),
    repository: InventoryRepository = Depends(get_repository),
) -> Optional[Product]:
    _require_product(repository, product_id)
    known = payload.last_updated if payload is not None else None
    return repository.get_if_changed(product_id, known)


@router.patch("/{product_id}", response_model=PatchResponse)
async def update_max_quantity(
    product_id: str,
    payload: MaxQuantityUpdate,
    repository: InventoryRepository = Depends(get_repository),
) -> PatchResponse:
    _require_product(repository, product_id)
    if payload.max_quantity < 0:
        raise HTTPException(status_code=422, detail="maxQuantity must be >= 0")
    result = repository.update_max_quantity(product_id, payload.max_quantity, payload.last_updated)
    if result.conflict:
        logger.info("Rejected ceiling change for %s: %s", product_id, result.message)
    return result


@router.get("/{product_id}/timestamp", response_model=TimestampResponse)
async def get_product_timestamp(
    product_id: str,
    repository: InventoryRepository = Depends(get_repository),
) -> TimestampResponse:
    product = _require_product(repository, product_id)
    return TimestampResponse(last_updated=product.last_updated)


__all__ = ["get_repository", "router"]
