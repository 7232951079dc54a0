import asyncio

import httpx

from storefront.config import get_settings
from storefront.server.main import create_app
from storefront.server.repository import InventoryRepository
from storefront.sync.batch import BatchUpdateQueue
from storefront.sync.cart import CartStore
from storefront.sync.fetcher import ProductFetcher
from storefront.sync.persistence import JsonFileStorage, LocalPersistence


class CountingRepository(InventoryRepository):
    def __init__(self) -> None:
        super().__init__()
        self.conditional_reads = 0

    def get_if_changed(self, product_id, known_last_updated):
        self.conditional_reads += 1
        return super().get_if_changed(product_id, known_last_updated)


def _fetcher(repository: InventoryRepository) -> ProductFetcher:
    app = create_app(settings=get_settings(), repository=repository)
    return ProductFetcher(
        base_url="http://inventory.test/api",
        transport=httpx.ASGITransport(app=app),
    )


def test_cart_follows_server_ceiling_end_to_end(tmp_path):
    repository = CountingRepository()
    storage_path = tmp_path / "cart.json"
    fetcher = _fetcher(repository)
    cart = CartStore(fetcher, LocalPersistence(JsonFileStorage(storage_path), key="cart"))

    async def scenario():
        async with fetcher:
            product = await fetcher.fetch_product("4")
            await cart.add_to_cart(product, 2)
            assert cart.subtotal == 38

            current = repository.get("4").last_updated
            repository.update_max_quantity("4", 4, current)

            clamped = await cart.update_quantity("4", 10)
            again = await cart.update_quantity("4", 10)
            return clamped, again

    clamped, again = asyncio.run(scenario())

    assert clamped is not None and clamped.quantity == 4
    assert again is not None and again.quantity == 4
    assert again.max_quantity == 4
    assert again.last_updated == repository.get("4").last_updated
    assert repository.conditional_reads == 3

    restored = CartStore(fetcher, LocalPersistence(JsonFileStorage(storage_path), key="cart"))
    restored.initialize()
    assert [(item.id, item.quantity, item.max_quantity) for item in restored.items] == [("4", 4, 4)]


def test_concurrent_refreshes_hit_the_server_once():
    repository = CountingRepository()
    fetcher = _fetcher(repository)

    async def scenario():
        async with fetcher:
            return await asyncio.gather(*(fetcher.fetch_single_product("2") for _ in range(4)))

    results = asyncio.run(scenario())

    assert repository.conditional_reads == 1
    assert all(result is not None and result.id == "2" for result in results)


def test_batched_updates_against_live_service(tmp_path):
    repository = CountingRepository()
    fetcher = _fetcher(repository)
    cart = CartStore(fetcher, LocalPersistence(JsonFileStorage(tmp_path / "cart.json"), key="cart"))
    queue = BatchUpdateQueue(cart, window_seconds=0)

    async def scenario():
        async with fetcher:
            for product_id in ("1", "7"):
                await cart.add_to_cart(await fetcher.fetch_product(product_id), 1)
            reads_before = repository.conditional_reads
            for quantity in (2, 3, 4):
                queue.queue_update("1", quantity)
            queue.queue_update("7", 500)
            await queue.flush()
            return repository.conditional_reads - reads_before

    reads = asyncio.run(scenario())

    assert reads == 2
    assert cart.get_cart_item("1").quantity == 4
    assert cart.get_cart_item("7").quantity == 95
    assert cart.item_count == 99
