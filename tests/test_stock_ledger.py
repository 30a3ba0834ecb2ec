"""Tests for atomic stock reservation and restoration."""

import asyncio

import pytest

from storefront.domain.exceptions import InsufficientStockError, ProductNotFoundError, ValidationError


def _reserve(uow, product_id, quantity):
    async def _run():
        async with uow() as tx:
            await tx.stock.reserve(product_id, quantity)
            await tx.commit()

    asyncio.run(_run())


def _restore(uow, product_id, quantity):
    async def _run():
        async with uow() as tx:
            restored = await tx.stock.restore(product_id, quantity)
            await tx.commit()
            return restored

    return asyncio.run(_run())


class TestReserve:
    def test_moves_quantity_from_stock_to_sold(self, uow, add_product, get_product):
        add_product("p1", stock=5, sold=1)

        _reserve(uow, "p1", 3)

        product = get_product("p1")
        assert product.stock == 2
        assert product.sold == 4

    def test_can_take_the_last_unit(self, uow, add_product, get_product):
        add_product("p1", stock=1)

        _reserve(uow, "p1", 1)

        assert get_product("p1").stock == 0

    def test_rejects_more_than_available(self, uow, add_product, get_product):
        add_product("p1", stock=2, name="Linen Shirt")

        with pytest.raises(InsufficientStockError) as exc:
            _reserve(uow, "p1", 3)

        assert exc.value.product_id == "p1"
        assert exc.value.product_name == "Linen Shirt"
        assert exc.value.available == 2
        assert exc.value.required == 3
        product = get_product("p1")
        assert product.stock == 2
        assert product.sold == 0

    def test_unknown_product(self, uow):
        with pytest.raises(ProductNotFoundError):
            _reserve(uow, "missing", 1)

    def test_rejects_non_positive_quantity(self, uow, add_product):
        add_product("p1", stock=2)

        with pytest.raises(ValidationError):
            _reserve(uow, "p1", 0)


class TestRestore:
    def test_moves_quantity_from_sold_back_to_stock(self, uow, add_product, get_product):
        add_product("p1", stock=1, sold=4)

        assert _restore(uow, "p1", 3) is True

        product = get_product("p1")
        assert product.stock == 4
        assert product.sold == 1

    def test_sold_never_goes_negative(self, uow, add_product, get_product):
        add_product("p1", stock=3, sold=1)

        _restore(uow, "p1", 2)

        product = get_product("p1")
        assert product.stock == 5
        assert product.sold == 0

    def test_missing_product_is_skipped(self, uow):
        assert _restore(uow, "missing", 1) is False
