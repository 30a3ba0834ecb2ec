import logging
from pydantic import BaseModel
from datetime import datetime, timezone
from typing import Optional

from storefront.domain.models import Order, OrderStatus, PaymentStatus
from storefront.domain.exceptions import OrderNotFoundError

logger = logging.getLogger(__name__)


class UpdateOrderStatusDTO(BaseModel):
    order_id: str
    order_status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None


class UpdateOrderStatusUseCase:
    """Ручная смена статусов администратором.

    Последовательность статусов не проверяется: из pending можно сразу
    перейти в delivered. Перевод в cancelled здесь не возвращает товар
    на склад, для этого есть отмена заказа.
    """

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, dto: UpdateOrderStatusDTO) -> Order:
        logger.info(f"Обновление статуса заказа {dto.order_id}: {dto.order_status}, {dto.payment_status}")

        async with self._uow() as uow:
            order = await uow.orders.get_by_id(dto.order_id)
            if not order:
                raise OrderNotFoundError(f"Заказ {dto.order_id} не найден")

            now = datetime.now(timezone.utc)
            fields = {}
            if dto.order_status:
                fields["order_status"] = dto.order_status
                if dto.order_status == OrderStatus.DELIVERED:
                    fields["is_delivered"] = True
                    fields["delivered_at"] = now

            if dto.payment_status:
                fields["payment_status"] = dto.payment_status
                if dto.payment_status == PaymentStatus.PAID:
                    fields["is_paid"] = True
                    fields["paid_at"] = now

            if fields:
                await uow.orders.update_status(dto.order_id, **fields)
                await uow.commit()
                order = await uow.orders.get_by_id(dto.order_id)

        return order
