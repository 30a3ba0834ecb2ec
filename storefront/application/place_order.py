import logging
from pydantic import BaseModel
from datetime import datetime, timezone
from typing import Any, Optional
import uuid

from storefront.domain.models import Order, OrderLine, OrderStatus, PaymentStatus, ShippingAddress
from storefront.domain.exceptions import ValidationError, ProductNotFoundError, InsufficientStockError
from storefront.domain.pricing import calculate_prices
from storefront.application.cart_snapshot import CartSnapshotReader


logger = logging.getLogger(__name__)


class PlaceOrderDTO(BaseModel):
    user_id: str
    # ShippingAddress либо сырой JSON из запроса
    shipping_address: Any = None
    payment_method: Optional[str] = None


def _validate(order_data: PlaceOrderDTO) -> ShippingAddress:
    address = order_data.shipping_address
    if isinstance(address, ShippingAddress):
        address = address.model_dump()
    if not isinstance(address, dict) or not order_data.payment_method or not order_data.payment_method.strip():
        raise ValidationError("Укажите адрес доставки и способ оплаты")
    blank = [
        name for name in ShippingAddress.model_fields
        if not isinstance(address.get(name), str) or not address[name].strip()
    ]
    if blank:
        raise ValidationError(f"Не заполнены поля адреса доставки: {', '.join(blank)}")
    return ShippingAddress(**{name: address[name] for name in ShippingAddress.model_fields})


class PlaceOrderUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_data: PlaceOrderDTO) -> Order:
        shipping_address = _validate(order_data)
        logger.info(f"Оформление заказа для пользователя {order_data.user_id}")

        # Все шаги в одной транзакции: при любой ошибке резервы и заказ откатываются
        async with self._uow() as uow:
            # 1. Корзина с актуальными товарами
            snapshot = await CartSnapshotReader(uow).load(order_data.user_id)

            # 2. Проверка остатков и снимок позиций
            lines = []
            for resolved in snapshot.lines:
                cart_line, product = resolved.line, resolved.product
                if product is None:
                    raise ProductNotFoundError(cart_line.product_id)
                if product.stock < cart_line.quantity:
                    raise InsufficientStockError(product.id, product.name, product.stock, cart_line.quantity)
                lines.append(
                    OrderLine(
                        product_id=product.id,
                        name=product.name,
                        price=product.price,
                        quantity=cart_line.quantity,
                        size=cart_line.size,
                        color=cart_line.color,
                        image=product.main_image
                    )
                )

            # 3. Расчет суммы
            prices = calculate_prices((line.price, line.quantity) for line in lines)

            # 4. Резерв на складе в порядке корзины
            for line in lines:
                await uow.stock.reserve(line.product_id, line.quantity)

            # 5. Создание заказа
            now = datetime.now(timezone.utc)
            order = Order(
                id=str(uuid.uuid4()),
                user_id=order_data.user_id,
                lines=lines,
                shipping_address=shipping_address,
                payment_method=order_data.payment_method.strip(),
                items_price=prices.items_price,
                shipping_price=prices.shipping_price,
                tax_price=prices.tax_price,
                total_price=prices.total_price,
                order_status=OrderStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
                created_at=now,
                updated_at=now
            )
            await uow.orders.create(order)

            # 6. Очистка корзины
            await uow.carts.clear(snapshot.cart.id)
            await uow.commit()

        logger.info(f"Заказ создан: {order.id}, сумма {order.total_price}")
        return order
