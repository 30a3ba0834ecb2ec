import uuid
from collections import defaultdict
from decimal import Decimal
from typing import Optional, List, Tuple
from datetime import datetime, timezone
from sqlalchemy import select, insert, update, delete, func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.domain.models import (
    Cart, CartLine, Order, OrderLine, OrderStatus, PaymentStatus, Product, ShippingAddress
)
from storefront.infrastructure.db_schema import (
    products_tbl, carts_tbl, cart_lines_tbl, orders_tbl, order_lines_tbl
)
from storefront.application.interfaces import ProductRepository, CartRepository, OrderRepository


class SQLAlchemyProductRepository(ProductRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, product_id: str) -> Optional[Product]:
        result = await self._session.execute(
            select(products_tbl).where(products_tbl.c.id == product_id)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def add(self, product: Product) -> None:
        stmt = insert(products_tbl).values(
            id=product.id,
            name=product.name,
            price=product.price,
            stock=product.stock,
            sold=product.sold,
            images=list(product.images)
        )
        await self._session.execute(stmt)

    def _to_domain(self, row) -> Product:
        return Product(
            id=row.id,
            name=row.name,
            price=Decimal(row.price),
            stock=row.stock,
            sold=row.sold,
            images=row.images or []
        )


class SQLAlchemyCartRepository(CartRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_user_id(self, user_id: str) -> Optional[Cart]:
        result = await self._session.execute(
            select(carts_tbl).where(carts_tbl.c.user_id == user_id)
        )
        row = result.fetchone()
        if not row:
            return None

        lines = await self._session.execute(
            select(cart_lines_tbl)
            .where(cart_lines_tbl.c.cart_id == row.id)
            .order_by(cart_lines_tbl.c.position.asc())
        )
        return Cart(
            id=row.id,
            user_id=row.user_id,
            total_price=Decimal(row.total_price),
            updated_at=row.updated_at,
            lines=[self._line_to_domain(line) for line in lines.fetchall()]
        )

    def _insert(self, table):
        # INSERT ... ON CONFLICT есть в обоих диалектах, но конструкторы разные
        if self._session.get_bind().dialect.name == "postgresql":
            return pg_insert(table)
        return sqlite_insert(table)

    async def create(self, user_id: str) -> Cart:
        """Создает корзину; при гонке двух первых запросов возвращает уже созданную"""
        now = datetime.now(timezone.utc)
        stmt = self._insert(carts_tbl).values(
            id=str(uuid.uuid4()),
            user_id=user_id,
            total_price=Decimal("0"),
            created_at=now,
            updated_at=now
        ).on_conflict_do_nothing(index_elements=[carts_tbl.c.user_id])
        await self._session.execute(stmt)
        return await self.get_by_user_id(user_id)

    async def add_line(self, cart_id: str, product_id: str, quantity: int, size: str, color: str, price) -> str:
        # Новая строка всегда встает в конец корзины
        result = await self._session.execute(
            select(func.coalesce(func.max(cart_lines_tbl.c.position), 0))
            .where(cart_lines_tbl.c.cart_id == cart_id)
        )
        position = result.scalar_one() + 1

        stmt = self._insert(cart_lines_tbl).values(
            id=str(uuid.uuid4()),
            cart_id=cart_id,
            position=position,
            product_id=product_id,
            quantity=quantity,
            size=size,
            color=color,
            price=price
        )
        # Та же комбинация уже добавлена параллельным запросом: складываем количество
        stmt = stmt.on_conflict_do_update(
            index_elements=[
                cart_lines_tbl.c.cart_id, cart_lines_tbl.c.product_id, cart_lines_tbl.c.size, cart_lines_tbl.c.color
            ],
            set_={"quantity": cart_lines_tbl.c.quantity + stmt.excluded.quantity}
        )
        await self._session.execute(stmt)

        result = await self._session.execute(
            select(cart_lines_tbl.c.id).where(
                cart_lines_tbl.c.cart_id == cart_id,
                cart_lines_tbl.c.product_id == product_id,
                cart_lines_tbl.c.size == size,
                cart_lines_tbl.c.color == color
            )
        )
        return result.scalar_one()

    async def update_line_quantity(self, cart_id: str, line_id: str, quantity: int) -> None:
        stmt = (
            update(cart_lines_tbl)
            .where(cart_lines_tbl.c.cart_id == cart_id, cart_lines_tbl.c.id == line_id)
            .values(quantity=quantity)
        )
        await self._session.execute(stmt)

    async def remove_line(self, cart_id: str, line_id: str) -> None:
        stmt = delete(cart_lines_tbl).where(
            cart_lines_tbl.c.cart_id == cart_id,
            cart_lines_tbl.c.id == line_id
        )
        await self._session.execute(stmt)

    async def refresh_total(self, cart_id: str) -> None:
        """Пересчет total_price по текущим строкам корзины"""
        result = await self._session.execute(
            select(cart_lines_tbl.c.price, cart_lines_tbl.c.quantity)
            .where(cart_lines_tbl.c.cart_id == cart_id)
        )
        total = sum((Decimal(row.price) * row.quantity for row in result.fetchall()), Decimal("0"))
        await self._set_total(cart_id, total)

    async def clear(self, cart_id: str) -> None:
        await self._session.execute(
            delete(cart_lines_tbl).where(cart_lines_tbl.c.cart_id == cart_id)
        )
        await self._set_total(cart_id, Decimal("0"))

    async def _set_total(self, cart_id: str, total: Decimal) -> None:
        stmt = (
            update(carts_tbl)
            .where(carts_tbl.c.id == cart_id)
            .values(
                total_price=total,
                updated_at=datetime.now(timezone.utc)
            )
        )
        await self._session.execute(stmt)

    def _line_to_domain(self, row) -> CartLine:
        return CartLine(
            id=row.id,
            product_id=row.product_id,
            quantity=row.quantity,
            size=row.size,
            color=row.color,
            price=Decimal(row.price)
        )


class SQLAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        result = await self._session.execute(
            select(orders_tbl).where(orders_tbl.c.id == order_id)
        )
        row = result.fetchone()
        if not row:
            return None
        orders = await self._with_lines([row])
        return orders[0]

    async def list_by_user(self, user_id: str) -> List[Order]:
        result = await self._session.execute(
            select(orders_tbl)
            .where(orders_tbl.c.user_id == user_id)
            .order_by(orders_tbl.c.created_at.desc())
        )
        return await self._with_lines(result.fetchall())

    async def list(
        self,
        limit: int,
        offset: int,
        status: Optional[OrderStatus] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Tuple[List[Order], int]:
        conditions = []
        if status:
            conditions.append(orders_tbl.c.order_status == status)
        if start_date:
            conditions.append(orders_tbl.c.created_at >= start_date)
        if end_date:
            conditions.append(orders_tbl.c.created_at <= end_date)

        count = await self._session.execute(
            select(func.count()).select_from(orders_tbl).where(*conditions)
        )
        result = await self._session.execute(
            select(orders_tbl)
            .where(*conditions)
            .order_by(orders_tbl.c.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        orders = await self._with_lines(result.fetchall())
        return orders, count.scalar_one()

    async def create(self, order: Order) -> None:
        stmt = insert(orders_tbl).values(
            id=order.id,
            user_id=order.user_id,
            shipping_address=order.shipping_address.model_dump(),
            payment_method=order.payment_method,
            items_price=order.items_price,
            shipping_price=order.shipping_price,
            tax_price=order.tax_price,
            total_price=order.total_price,
            order_status=order.order_status,
            payment_status=order.payment_status,
            is_paid=order.is_paid,
            paid_at=order.paid_at,
            is_delivered=order.is_delivered,
            delivered_at=order.delivered_at,
            created_at=order.created_at,
            updated_at=order.updated_at
        )
        await self._session.execute(stmt)

        await self._session.execute(
            insert(order_lines_tbl),
            [
                {
                    "id": str(uuid.uuid4()),
                    "order_id": order.id,
                    "position": position,
                    "product_id": line.product_id,
                    "name": line.name,
                    "price": line.price,
                    "quantity": line.quantity,
                    "size": line.size,
                    "color": line.color,
                    "image": line.image
                }
                for position, line in enumerate(order.lines, start=1)
            ]
        )

    async def transition_status(self, order_id: str, status: OrderStatus, allowed_from) -> bool:
        """Меняет статус, только если текущий входит в allowed_from. Одна операция UPDATE."""
        stmt = (
            update(orders_tbl)
            .where(
                orders_tbl.c.id == order_id,
                orders_tbl.c.order_status.in_(list(allowed_from))
            )
            .values(
                order_status=status,
                updated_at=datetime.now(timezone.utc)
            )
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def update_status(self, order_id: str, **fields) -> None:
        stmt = (
            update(orders_tbl)
            .where(orders_tbl.c.id == order_id)
            .values(
                updated_at=datetime.now(timezone.utc),
                **fields
            )
        )
        await self._session.execute(stmt)

    async def _with_lines(self, rows) -> List[Order]:
        if not rows:
            return []
        result = await self._session.execute(
            select(order_lines_tbl)
            .where(order_lines_tbl.c.order_id.in_([row.id for row in rows]))
            .order_by(order_lines_tbl.c.position.asc())
        )
        lines = defaultdict(list)
        for line in result.fetchall():
            lines[line.order_id].append(
                OrderLine(
                    product_id=line.product_id,
                    name=line.name,
                    price=Decimal(line.price),
                    quantity=line.quantity,
                    size=line.size,
                    color=line.color,
                    image=line.image
                )
            )
        return [self._to_domain(row, lines[row.id]) for row in rows]

    def _to_domain(self, row, lines: List[OrderLine]) -> Order:
        """Трансформация DB → Domain"""
        return Order(
            id=row.id,
            user_id=row.user_id,
            lines=lines,
            shipping_address=ShippingAddress(**row.shipping_address),
            payment_method=row.payment_method,
            items_price=Decimal(row.items_price),
            shipping_price=Decimal(row.shipping_price),
            tax_price=Decimal(row.tax_price),
            total_price=Decimal(row.total_price),
            order_status=OrderStatus(row.order_status),
            payment_status=PaymentStatus(row.payment_status),
            is_paid=row.is_paid,
            paid_at=row.paid_at,
            is_delivered=row.is_delivered,
            delivered_at=row.delivered_at,
            created_at=row.created_at,
            updated_at=row.updated_at
        )
