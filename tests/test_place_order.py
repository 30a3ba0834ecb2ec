"""Tests for turning a cart into an order."""

import asyncio
from decimal import Decimal

import pytest

from storefront.application.place_order import PlaceOrderUseCase, PlaceOrderDTO
from storefront.domain.exceptions import (
    EmptyCartError, InsufficientStockError, ProductNotFoundError, ValidationError
)
from storefront.domain.models import OrderStatus, PaymentStatus, ShippingAddress
from storefront.infrastructure.repositories import SQLAlchemyProductRepository

ADDRESS = ShippingAddress(street="12 Abay Ave", city="Almaty", postal_code="050000", country="KZ")


def _place(uow, user_id="u1", address=ADDRESS, payment_method="card"):
    dto = PlaceOrderDTO(user_id=user_id, shipping_address=address, payment_method=payment_method)
    return asyncio.run(PlaceOrderUseCase(uow)(dto))


class TestPlaceOrder:
    def test_creates_priced_order_and_drains_cart(
        self, uow, add_product, add_cart_line, get_product, get_cart, user_orders
    ):
        add_product("p1", price="20.00", stock=5, images=["p1-front.jpg", "p1-back.jpg"])
        add_product("p2", price="15.00", stock=3)
        add_cart_line("u1", "p1", quantity=2, size="M", color="black", price="20.00")
        add_cart_line("u1", "p2", quantity=1, size="L", color="white", price="15.00")

        order = _place(uow)

        assert order.user_id == "u1"
        assert order.items_price == Decimal("55")
        assert order.shipping_price == Decimal("10")
        assert order.tax_price == Decimal("8.25")
        assert order.total_price == Decimal("73.25")
        assert order.order_status == OrderStatus.PENDING
        assert order.payment_status == PaymentStatus.PENDING
        assert order.is_paid is False
        assert order.is_delivered is False

        assert [(line.product_id, line.quantity, line.size, line.color) for line in order.lines] == [
            ("p1", 2, "M", "black"),
            ("p2", 1, "L", "white"),
        ]
        assert order.lines[0].image == "p1-front.jpg"
        assert order.lines[0].name == "Product p1"

        assert get_product("p1").stock == 3
        assert get_product("p1").sold == 2
        assert get_product("p2").stock == 2
        assert get_product("p2").sold == 1

        cart = get_cart("u1")
        assert cart.lines == []
        assert cart.total_price == Decimal("0")

        stored = user_orders("u1")
        assert [o.id for o in stored] == [order.id]
        assert stored[0].total_price == Decimal("73.25")
        assert stored[0].shipping_address == ADDRESS

    def test_snapshots_current_catalog_price_not_cart_price(self, uow, add_product, add_cart_line):
        add_product("p1", price="20.00", stock=5)
        add_cart_line("u1", "p1", quantity=1, price="18.00")

        order = _place(uow)

        assert order.lines[0].price == Decimal("20.00")
        assert order.items_price == Decimal("20.00")

    def test_product_without_images_gets_empty_image(self, uow, add_product, add_cart_line):
        add_product("p1", stock=5, images=[])
        add_cart_line("u1", "p1")

        assert _place(uow).lines[0].image == ""

    def test_large_order_ships_free(self, uow, add_product, add_cart_line):
        add_product("coat", price="120.00", stock=2)
        add_cart_line("u1", "coat", quantity=1, price="120.00")

        order = _place(uow)

        assert order.shipping_price == Decimal("0")
        assert order.total_price == Decimal("138.00")


class TestPlaceOrderFailures:
    def test_no_cart(self, uow, user_orders):
        with pytest.raises(EmptyCartError):
            _place(uow)

        assert user_orders("u1") == []

    def test_cart_without_lines(self, uow, add_product, add_cart_line, get_cart, user_orders):
        add_product("p1", stock=5)
        line_id = add_cart_line("u1", "p1")

        async def _drop_line():
            async with uow() as tx:
                cart = await tx.carts.get_by_user_id("u1")
                await tx.carts.remove_line(cart.id, line_id)
                await tx.commit()

        asyncio.run(_drop_line())

        with pytest.raises(EmptyCartError):
            _place(uow)
        assert user_orders("u1") == []

    def test_insufficient_stock_changes_nothing(
        self, uow, add_product, add_cart_line, get_product, get_cart, user_orders
    ):
        add_product("p1", stock=5)
        add_product("p2", stock=1, name="Silk Scarf")
        add_cart_line("u1", "p1", quantity=2)
        add_cart_line("u1", "p2", quantity=2)

        with pytest.raises(InsufficientStockError) as exc:
            _place(uow)

        assert exc.value.product_id == "p2"
        assert exc.value.product_name == "Silk Scarf"
        assert (get_product("p1").stock, get_product("p1").sold) == (5, 0)
        assert (get_product("p2").stock, get_product("p2").sold) == (1, 0)
        assert len(get_cart("u1").lines) == 2
        assert user_orders("u1") == []

    def test_missing_product(self, uow, add_product, add_cart_line, get_product, user_orders):
        add_product("p1", stock=5)
        add_cart_line("u1", "p1", quantity=1)
        add_cart_line("u1", "gone", quantity=1)

        with pytest.raises(ProductNotFoundError) as exc:
            _place(uow)

        assert exc.value.product_id == "gone"
        assert get_product("p1").stock == 5
        assert user_orders("u1") == []

    @pytest.mark.parametrize(
        "address, payment_method",
        [
            (None, "card"),
            (ADDRESS, None),
            (ADDRESS, "   "),
            (ShippingAddress(street="", city="Almaty", postal_code="050000", country="KZ"), "card"),
            ({"street": "12 Abay Ave"}, "card"),
            ({**ADDRESS.model_dump(), "city": 42}, "card"),
            ("12 Abay Ave, Almaty", "card"),
        ],
    )
    def test_requires_address_and_payment_method(
        self, uow, add_product, add_cart_line, get_product, address, payment_method
    ):
        add_product("p1", stock=5)
        add_cart_line("u1", "p1")

        with pytest.raises(ValidationError):
            _place(uow, address=address, payment_method=payment_method)

        assert get_product("p1").stock == 5

    def test_reservation_failure_rolls_back_earlier_lines(
        self, uow, add_product, add_cart_line, get_product, get_cart, user_orders, monkeypatch
    ):
        add_product("p1", stock=5)
        add_product("p2", stock=2)
        add_cart_line("u1", "p1", quantity=1)
        add_cart_line("u1", "p2", quantity=3)

        # Stock read before reservation is stale: it reports plenty of units
        original_get = SQLAlchemyProductRepository.get_by_id

        async def stale_get(self, product_id):
            product = await original_get(self, product_id)
            return product.model_copy(update={"stock": product.stock + 100}) if product else None

        monkeypatch.setattr(SQLAlchemyProductRepository, "get_by_id", stale_get)

        with pytest.raises(InsufficientStockError) as exc:
            _place(uow)

        monkeypatch.undo()
        assert exc.value.product_id == "p2"
        assert exc.value.available == 2
        assert (get_product("p1").stock, get_product("p1").sold) == (5, 0)
        assert (get_product("p2").stock, get_product("p2").sold) == (2, 0)
        assert len(get_cart("u1").lines) == 2
        assert user_orders("u1") == []


def test_concurrent_orders_for_last_unit(uow, add_product, add_cart_line, get_product, get_cart, user_orders):
    add_product("last", stock=1)
    add_cart_line("u1", "last", quantity=1)
    add_cart_line("u2", "last", quantity=1)

    async def _race():
        use_case = PlaceOrderUseCase(uow)
        return await asyncio.gather(
            use_case(PlaceOrderDTO(user_id="u1", shipping_address=ADDRESS, payment_method="card")),
            use_case(PlaceOrderDTO(user_id="u2", shipping_address=ADDRESS, payment_method="card")),
            return_exceptions=True,
        )

    results = asyncio.run(_race())

    failures = [r for r in results if isinstance(r, Exception)]
    orders = [r for r in results if not isinstance(r, Exception)]
    assert len(orders) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], InsufficientStockError)

    product = get_product("last")
    assert product.stock == 0
    assert product.sold == 1

    winner = orders[0].user_id
    loser = "u2" if winner == "u1" else "u1"
    assert len(user_orders(winner)) == 1
    assert user_orders(loser) == []
    assert len(get_cart(loser).lines) == 1
