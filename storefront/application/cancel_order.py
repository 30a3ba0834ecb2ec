import logging

from storefront.domain.models import Actor, Order, OrderStatus, CANCELLABLE_STATUSES
from storefront.domain.exceptions import OrderNotFoundError, NotAuthorizedError, InvalidTransitionError

logger = logging.getLogger(__name__)


class CancelOrderUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_id: str, actor: Actor) -> Order:
        logger.info(f"Отмена заказа {order_id} пользователем {actor.user_id}")

        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise OrderNotFoundError(f"Заказ {order_id} не найден")
            if not order.is_visible_to(actor):
                raise NotAuthorizedError("Нет прав на отмену этого заказа")

            if order.order_status == OrderStatus.CANCELLED:
                raise InvalidTransitionError("Заказ уже отменен")
            if not order.can_be_cancelled():
                raise InvalidTransitionError("Нельзя отменить отправленный или доставленный заказ")

            # Статус меняется условным UPDATE: повторная отмена не вернет товар дважды
            if not await uow.orders.transition_status(order_id, OrderStatus.CANCELLED, CANCELLABLE_STATUSES):
                logger.warning(f"Заказ {order_id} изменен параллельно, отмена отклонена")
                raise InvalidTransitionError("Статус заказа изменился, отмена невозможна")

            for line in order.lines:
                await uow.stock.restore(line.product_id, line.quantity)

            await uow.commit()
            cancelled = await uow.orders.get_by_id(order_id)

        logger.info(f"Заказ {order_id} отмечен CANCELLED")
        return cancelled
