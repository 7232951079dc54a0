from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from ..config import Settings, get_settings
from .api import router as inventory_router
from .repository import InventoryRepository

logger = logging.getLogger(__name__)


async def _reshuffle_loop(repository: InventoryRepository, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        repository.reshuffle()


@asynccontextmanager
async def _lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    task: Optional[asyncio.Task[None]] = None
    if settings.mock_reshuffle_seconds > 0:
        task = asyncio.create_task(
            _reshuffle_loop(app.state.inventory, settings.mock_reshuffle_seconds)
        )
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass


def create_app(
    *,
    settings: Optional[Settings] = None,
    repository: Optional[InventoryRepository] = None,
) -> FastAPI:
    settings = settings or get_settings()
    if repository is None:
        repository = InventoryRepository(
            None if settings.mock_seed_catalog else [],
            conflict_rate=settings.mock_conflict_rate,
        )

    app = FastAPI(title="Storefront Mock Inventory", lifespan=_lifespan)
    app.state.settings = settings
    app.state.inventory = repository

    app.include_router(inventory_router)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app


__all__ = ["create_app"]
