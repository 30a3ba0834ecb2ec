"""Расчет стоимости заказа.

Правила фиксированные: доставка бесплатна, если сумма товаров строго больше
100, иначе 10; налог 15% от суммы товаров, округленный до копеек.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Tuple, Union

from pydantic import BaseModel

FREE_SHIPPING_THRESHOLD = Decimal("100")
SHIPPING_FEE = Decimal("10")
TAX_RATE = Decimal("0.15")
CENT = Decimal("0.01")

Amount = Union[Decimal, int, str, float]


class PriceBreakdown(BaseModel):
    items_price: Decimal
    shipping_price: Decimal
    tax_price: Decimal
    total_price: Decimal


def _to_decimal(value: Amount) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # float через str, чтобы не тащить двоичную погрешность
    return Decimal(str(value))


def calculate_prices(lines: Iterable[Tuple[Amount, int]]) -> PriceBreakdown:
    """Считает сумму товаров, доставку, налог и итог по парам (цена, количество)"""
    items_price = Decimal("0")
    for unit_price, quantity in lines:
        price = _to_decimal(unit_price)
        if price < 0:
            raise ValueError(f"Цена не может быть отрицательной: {price}")
        if quantity < 1:
            raise ValueError(f"Количество должно быть не меньше 1: {quantity}")
        items_price += price * quantity

    shipping_price = Decimal("0") if items_price > FREE_SHIPPING_THRESHOLD else SHIPPING_FEE
    tax_price = (items_price * TAX_RATE).quantize(CENT, rounding=ROUND_HALF_UP)

    return PriceBreakdown(
        items_price=items_price,
        shipping_price=shipping_price,
        tax_price=tax_price,
        total_price=items_price + shipping_price + tax_price,
    )
