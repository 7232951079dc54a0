"""Command line entry point for the storefront demo."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table

from .config import get_settings
from .exceptions import InventoryError
from .log import setup_logging
from .schemas.product import Product
from .sync.cart import CartStore
from .sync.fetcher import ProductFetcher
from .sync.persistence import JsonFileStorage, LocalPersistence
from .utils.currency import format_currency


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="storefront",
        description="Storefront demo: mock inventory service and a synchronized cart",
    )
    parser.add_argument("--base-url", help="Inventory service base URL (default: INVENTORY_BASE_URL)")
    parser.add_argument("--storage", help="Cart storage file (default: CART_STORAGE_PATH)")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the mock inventory service")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    sub.add_parser("catalog", help="List the inventory catalog")

    cart = sub.add_parser("cart", help="Inspect or change the cart")
    cart_sub = cart.add_subparsers(dest="cart_command", required=True)
    cart_sub.add_parser("show", help="Show the cart")
    add = cart_sub.add_parser("add", help="Add a product to the cart")
    add.add_argument("product_id")
    add.add_argument("-q", "--quantity", type=int, default=1)
    update = cart_sub.add_parser("update", help="Set the quantity of a cart line")
    update.add_argument("product_id")
    update.add_argument("quantity", type=int)
    remove = cart_sub.add_parser("remove", help="Remove a cart line")
    remove.add_argument("product_id")
    return parser


def _catalog_table(products: Sequence[Product]) -> Table:
    table = Table(title="Catalog")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Price", justify="right")
    table.add_column("Available", justify="right")
    table.add_column("Updated")
    for product in products:
        table.add_row(
            product.id,
            product.name,
            format_currency(product.effective_price),
            str(product.max_quantity) if product.in_stock else "out of stock",
            product.last_updated,
        )
    return table


def _cart_table(cart: CartStore) -> Table:
    table = Table(title="Cart", caption=f"{cart.item_count} items, subtotal {format_currency(cart.subtotal)}")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Qty", justify="right")
    table.add_column("Max", justify="right")
    table.add_column("Line total", justify="right")
    table.add_column("Synchronized")
    for item in cart.items:
        synced = item.last_synchronized.isoformat(timespec="seconds") if item.last_synchronized else "-"
        table.add_row(
            item.id,
            item.name,
            str(item.quantity),
            str(item.max_quantity),
            format_currency(item.line_total),
            synced,
        )
    return table


async def _run_catalog(console: Console, fetcher: ProductFetcher) -> int:
    async with fetcher:
        products = await fetcher.fetch_products()
    console.print(_catalog_table(products))
    return 0


async def _run_cart(console: Console, args: argparse.Namespace, fetcher: ProductFetcher, storage: Path) -> int:
    cart = CartStore(fetcher, LocalPersistence(JsonFileStorage(storage)))
    cart.initialize()
    async with fetcher:
        if args.cart_command == "add":
            existing = cart.get_cart_item(args.product_id)
            product: Product = existing if existing is not None else await fetcher.fetch_product(args.product_id)
            await cart.add_to_cart(product, args.quantity)
        elif args.cart_command == "update":
            if cart.get_cart_item(args.product_id) is None:
                console.print(f"[yellow]Product {args.product_id} is not in the cart[/yellow]")
                return 1
            await cart.update_quantity(args.product_id, args.quantity)
        elif args.cart_command == "remove":
            cart.remove_from_cart(args.product_id)

    console.print(_cart_table(cart))
    for issue in cart.issues:
        console.print(f"[yellow]Could not refresh {issue.product_id}: {issue.message}[/yellow]")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(Path(settings.log_dir) if settings.log_dir else None, settings.log_level)
    console = Console()

    if args.command == "serve":
        import uvicorn

        from .server.main import create_app

        uvicorn.run(create_app(settings=settings), host=args.host, port=args.port)
        return 0

    fetcher = ProductFetcher(base_url=args.base_url)
    try:
        if args.command == "catalog":
            return asyncio.run(_run_catalog(console, fetcher))
        storage = Path(args.storage or settings.cart_storage_path)
        return asyncio.run(_run_cart(console, args, fetcher, storage))
    except InventoryError as exc:
        console.print(f"[red]{exc.with_trace()}[/red]")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
