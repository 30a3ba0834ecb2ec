import asyncio
from decimal import Decimal

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from storefront.database import create_engine, create_session_factory, create_tables
from storefront.domain.models import Product
from storefront.infrastructure.unit_of_work import UnitOfWork
from storefront.presentation.api import order_router, cart_router, get_uow


@pytest.fixture()
def uow(tmp_path):
    """Unit of Work over a fresh SQLite file database per test."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}")
    asyncio.run(create_tables(engine))
    return UnitOfWork(create_session_factory(engine))


@pytest.fixture()
def add_product(uow):
    def _add(product_id, price="20.00", stock=10, sold=0, name=None, images=None):
        product = Product(
            id=product_id,
            name=name or f"Product {product_id}",
            price=Decimal(price),
            stock=stock,
            sold=sold,
            images=images if images is not None else [f"{product_id}.jpg"],
        )

        async def _run():
            async with uow() as tx:
                await tx.products.add(product)
                await tx.commit()

        asyncio.run(_run())
        return product

    return _add


@pytest.fixture()
def get_product(uow):
    def _get(product_id):
        async def _run():
            async with uow() as tx:
                return await tx.products.get_by_id(product_id)

        return asyncio.run(_run())

    return _get


@pytest.fixture()
def add_cart_line(uow):
    """Writes a cart line directly, bypassing the stock checks of the cart use cases."""

    def _add(user_id, product_id, quantity=1, size="M", color="black", price="20.00"):
        async def _run():
            async with uow() as tx:
                cart = await tx.carts.get_by_user_id(user_id)
                if not cart:
                    cart = await tx.carts.create(user_id)
                line_id = await tx.carts.add_line(cart.id, product_id, quantity, size, color, Decimal(price))
                await tx.carts.refresh_total(cart.id)
                await tx.commit()
                return line_id

        return asyncio.run(_run())

    return _add


@pytest.fixture()
def get_cart(uow):
    def _get(user_id):
        async def _run():
            async with uow() as tx:
                return await tx.carts.get_by_user_id(user_id)

        return asyncio.run(_run())

    return _get


@pytest.fixture()
def user_orders(uow):
    def _list(user_id):
        async def _run():
            async with uow() as tx:
                return await tx.orders.list_by_user(user_id)

        return asyncio.run(_run())

    return _list


@pytest.fixture()
def client(uow):
    app = FastAPI()
    app.include_router(order_router, prefix="/api")
    app.include_router(cart_router, prefix="/api")
    app.dependency_overrides[get_uow] = lambda: uow
    return TestClient(app)
