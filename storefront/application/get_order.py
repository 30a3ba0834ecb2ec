import math
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel

from storefront.domain.models import Actor, Order, OrderStatus
from storefront.domain.exceptions import OrderNotFoundError, NotAuthorizedError


class GetOrderUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str, actor: Actor) -> Order:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise OrderNotFoundError(f"Заказ {order_id} не найден")
            if not order.is_visible_to(actor):
                raise NotAuthorizedError("Нет прав на просмотр этого заказа")
            return order


class ListUserOrdersUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str) -> List[Order]:
        async with self._uow() as uow:
            return await uow.orders.list_by_user(user_id)


class OrdersPage(BaseModel):
    orders: List[Order]
    page: int
    pages: int
    total: int


class ListOrdersUseCase:
    """Все заказы для администратора, новые сверху"""

    def __init__(self, unit_of_work, page_size: int = 20):
        self._uow = unit_of_work
        self._page_size = page_size

    async def __call__(
        self,
        page: int = 1,
        status: Optional[OrderStatus] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> OrdersPage:
        page = max(page, 1)
        async with self._uow() as uow:
            orders, total = await uow.orders.list(
                limit=self._page_size,
                offset=self._page_size * (page - 1),
                status=status,
                start_date=start_date,
                end_date=end_date
            )
        return OrdersPage(
            orders=orders,
            page=page,
            pages=math.ceil(total / self._page_size),
            total=total
        )
