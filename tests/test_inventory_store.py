import asyncio

import httpx
import pytest

from storefront.config import get_settings
from storefront.exceptions import InventoryConflictError, InventoryNetworkError
from storefront.server.main import create_app
from storefront.server.repository import InventoryRepository
from storefront.sync.fetcher import ProductFetcher
from storefront.sync.inventory import InventoryStore


def _store(repository: InventoryRepository) -> InventoryStore:
    app = create_app(settings=get_settings(), repository=repository)
    fetcher = ProductFetcher(
        base_url="http://inventory.test/api",
        transport=httpx.ASGITransport(app=app),
    )
    return InventoryStore(fetcher)


def test_sync_with_server_loads_catalog():
    store = _store(InventoryRepository())

    async def scenario():
        async with store.fetcher:
            return await store.sync_with_server()

    ok = asyncio.run(scenario())

    assert ok is True
    assert len(store.items) == 7
    assert store.status.last_synced is not None
    assert store.status.syncing is False


def test_update_max_quantity_adopts_server_item():
    repository = InventoryRepository()
    store = _store(repository)

    async def scenario():
        async with store.fetcher:
            await store.sync_with_server()
            before = store.get("1").last_updated
            confirmed = await store.update_max_quantity("1", 12)
            return before, confirmed

    before, confirmed = asyncio.run(scenario())

    assert confirmed.max_quantity == 12
    assert confirmed.last_updated > before
    assert store.get("1").max_quantity == 12
    assert repository.get("1").max_quantity == 12
    assert store.status.conflicts == []


def test_conflict_rolls_back_and_records_product():
    repository = InventoryRepository()
    store = _store(repository)

    async def scenario():
        async with store.fetcher:
            await store.sync_with_server()
            # Someone else edits the product after our sync.
            repository.update_max_quantity("1", 3, repository.get("1").last_updated)
            with pytest.raises(InventoryConflictError) as excinfo:
                await store.update_max_quantity("1", 12)
            return excinfo.value

    error = asyncio.run(scenario())

    assert store.get("1").max_quantity == 50
    assert store.status.conflicts == ["1"]
    assert error.item is not None
    assert error.item.max_quantity == 3
    assert repository.get("1").max_quantity == 3

    store.clear_conflicts()
    assert store.status.conflicts == []


def test_update_unknown_product_is_noop():
    store = _store(InventoryRepository())

    async def scenario():
        async with store.fetcher:
            await store.sync_with_server()
            return await store.update_max_quantity("999", 1)

    assert asyncio.run(scenario()) is None


def test_network_failure_keeps_previous_state():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    fetcher = ProductFetcher(base_url="http://inventory.test/api", transport=httpx.MockTransport(handler))
    store = InventoryStore(fetcher)

    async def scenario():
        async with fetcher:
            ok = await store.sync_with_server()
            store.items = InventoryRepository().list_products()
            with pytest.raises(InventoryNetworkError):
                await store.update_max_quantity("2", 1)
            return ok

    ok = asyncio.run(scenario())

    assert ok is False
    assert store.status.syncing is False
    assert store.status.last_synced is None
    assert store.get("2").max_quantity == 20
    assert store.status.conflicts == []
