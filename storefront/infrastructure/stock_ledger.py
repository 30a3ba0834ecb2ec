import logging
from datetime import datetime, timezone
from sqlalchemy import select, update, case
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.domain.exceptions import InsufficientStockError, ProductNotFoundError, ValidationError
from storefront.infrastructure.db_schema import products_tbl
from storefront.application.interfaces import StockLedger

logger = logging.getLogger(__name__)


class SQLAlchemyStockLedger(StockLedger):
    """Атомарные изменения stock/sold одним UPDATE, без чтения перед записью"""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def reserve(self, product_id: str, quantity: int) -> None:
        _check_quantity(quantity)
        stmt = (
            update(products_tbl)
            .where(
                products_tbl.c.id == product_id,
                products_tbl.c.stock >= quantity
            )
            .values(
                stock=products_tbl.c.stock - quantity,
                sold=products_tbl.c.sold + quantity,
                updated_at=datetime.now(timezone.utc)
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 1:
            return

        # Строка не обновилась: либо товара нет, либо не хватает остатка
        row = (await self._session.execute(
            select(products_tbl.c.name, products_tbl.c.stock).where(products_tbl.c.id == product_id)
        )).fetchone()
        if not row:
            raise ProductNotFoundError(product_id)
        logger.warning(f"Резерв отклонен: товар {product_id}, доступно {row.stock}, требуется {quantity}")
        raise InsufficientStockError(product_id, row.name, row.stock, quantity)

    async def restore(self, product_id: str, quantity: int) -> bool:
        _check_quantity(quantity)
        stmt = (
            update(products_tbl)
            .where(products_tbl.c.id == product_id)
            .values(
                stock=products_tbl.c.stock + quantity,
                # sold не уходит ниже нуля
                sold=case(
                    (products_tbl.c.sold >= quantity, products_tbl.c.sold - quantity),
                    else_=0
                ),
                updated_at=datetime.now(timezone.utc)
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            logger.warning(f"Товар {product_id} не найден, возврат {quantity} шт. пропущен")
            return False
        return True


def _check_quantity(quantity: int) -> None:
    if quantity < 1:
        raise ValidationError(f"Количество должно быть не меньше 1: {quantity}")
