import logging
from pydantic import BaseModel
from typing import Optional

from storefront.domain.exceptions import (
    ValidationError, ProductNotFoundError, InsufficientStockError, CartNotFoundError, CartLineNotFoundError
)
from storefront.application.cart_snapshot import CartSnapshot, CartSnapshotReader

logger = logging.getLogger(__name__)


class AddToCartDTO(BaseModel):
    user_id: str
    product_id: Optional[str] = None
    quantity: Optional[int] = None
    size: Optional[str] = None
    color: Optional[str] = None


def _check_stock(product, quantity: int) -> None:
    if product.stock < quantity:
        raise InsufficientStockError(product.id, product.name, product.stock, quantity)


async def _load_cart(uow, user_id: str):
    cart = await uow.carts.get_by_user_id(user_id)
    if not cart:
        raise CartNotFoundError("Корзина не найдена")
    return cart


async def _snapshot(uow, user_id: str) -> CartSnapshot:
    cart = await uow.carts.get_by_user_id(user_id)
    return await CartSnapshotReader(uow).resolve(cart)


class GetCartUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str) -> CartSnapshot:
        async with self._uow() as uow:
            cart = await uow.carts.get_by_user_id(user_id)
            if not cart:
                # Корзина создается при первом обращении
                cart = await uow.carts.create(user_id)
                await uow.commit()
            return await CartSnapshotReader(uow).resolve(cart)


class AddToCartUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, dto: AddToCartDTO) -> CartSnapshot:
        if not dto.product_id or not dto.quantity or not dto.size or not dto.color:
            raise ValidationError("Заполните все обязательные поля")
        if dto.quantity < 1:
            raise ValidationError("Количество должно быть не меньше 1")

        async with self._uow() as uow:
            product = await uow.products.get_by_id(dto.product_id)
            if not product:
                raise ProductNotFoundError(dto.product_id)
            _check_stock(product, dto.quantity)

            cart = await uow.carts.get_by_user_id(dto.user_id)
            if not cart:
                cart = await uow.carts.create(dto.user_id)

            existing = cart.find_line(dto.product_id, dto.size, dto.color)
            if existing:
                # Та же комбинация товар/размер/цвет: увеличиваем количество
                quantity = existing.quantity + dto.quantity
                _check_stock(product, quantity)
                await uow.carts.update_line_quantity(cart.id, existing.id, quantity)
            else:
                await uow.carts.add_line(cart.id, product.id, dto.quantity, dto.size, dto.color, product.price)

            await uow.carts.refresh_total(cart.id)
            await uow.commit()
            logger.info(f"Товар {product.id} добавлен в корзину пользователя {dto.user_id}")
            return await _snapshot(uow, dto.user_id)


class UpdateCartLineUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str, line_id: str, quantity: Optional[int]) -> CartSnapshot:
        if not quantity or quantity < 1:
            raise ValidationError("Количество должно быть не меньше 1")

        async with self._uow() as uow:
            cart = await _load_cart(uow, user_id)
            line = cart.get_line(line_id)
            if not line:
                raise CartLineNotFoundError("Позиция не найдена в корзине")

            product = await uow.products.get_by_id(line.product_id)
            if not product:
                raise ProductNotFoundError(line.product_id)
            _check_stock(product, quantity)

            await uow.carts.update_line_quantity(cart.id, line_id, quantity)
            await uow.carts.refresh_total(cart.id)
            await uow.commit()
            return await _snapshot(uow, user_id)


class RemoveCartLineUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str, line_id: str) -> CartSnapshot:
        async with self._uow() as uow:
            cart = await _load_cart(uow, user_id)
            await uow.carts.remove_line(cart.id, line_id)
            await uow.carts.refresh_total(cart.id)
            await uow.commit()
            return await _snapshot(uow, user_id)


class ClearCartUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str) -> None:
        async with self._uow() as uow:
            cart = await _load_cart(uow, user_id)
            await uow.carts.clear(cart.id)
            await uow.commit()
        logger.info(f"Корзина пользователя {user_id} очищена")
