from typing import List, Optional
from pydantic import BaseModel

from storefront.domain.models import Cart, CartLine, Product
from storefront.domain.exceptions import EmptyCartError


class ResolvedCartLine(BaseModel):
    line: CartLine
    product: Optional[Product] = None


class CartSnapshot(BaseModel):
    cart: Cart
    lines: List[ResolvedCartLine]


class CartSnapshotReader:
    """Читает корзину пользователя с актуальными товарами. Ничего не меняет."""

    def __init__(self, uow):
        self._uow = uow

    async def resolve(self, cart: Cart) -> CartSnapshot:
        lines = []
        for line in cart.lines:
            product = await self._uow.products.get_by_id(line.product_id)
            lines.append(ResolvedCartLine(line=line, product=product))
        return CartSnapshot(cart=cart, lines=lines)

    async def load(self, user_id: str) -> CartSnapshot:
        cart = await self._uow.carts.get_by_user_id(user_id)
        if not cart or not cart.lines:
            raise EmptyCartError(user_id)
        return await self.resolve(cart)
