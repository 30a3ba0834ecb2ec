from sqlalchemy import (
    Table, Column, String, Integer, Numeric, Boolean, Enum, DateTime, JSON, MetaData,
    ForeignKey, CheckConstraint, UniqueConstraint,
)
from sqlalchemy.sql import func

from storefront.domain.models import OrderStatus, PaymentStatus

metadata = MetaData()

MONEY = Numeric(10, 2)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


products_tbl = Table(
    "products",
    metadata,
    Column("id", String, primary_key=True),
    Column("name", String(100), nullable=False),
    Column("price", MONEY, nullable=False),
    Column("stock", Integer, nullable=False, default=0),
    Column("sold", Integer, nullable=False, default=0),
    Column("images", JSON, nullable=False, default=list),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now()),
    CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
    CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
    CheckConstraint("sold >= 0", name="ck_products_sold_non_negative"),
)


carts_tbl = Table(
    "carts",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, nullable=False, unique=True, index=True),
    Column("total_price", MONEY, nullable=False, default=0),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now()),
)


cart_lines_tbl = Table(
    "cart_lines",
    metadata,
    Column("id", String, primary_key=True),
    Column("cart_id", String, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("position", Integer, nullable=False),
    Column("product_id", String, nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("size", String, nullable=False),
    Column("color", String, nullable=False),
    Column("price", MONEY, nullable=False),
    CheckConstraint("quantity >= 1", name="ck_cart_lines_quantity_positive"),
    UniqueConstraint("cart_id", "product_id", "size", "color", name="uq_cart_lines_selection"),
)


orders_tbl = Table(
    "orders",
    metadata,
    Column("id", String, primary_key=True),
    Column("user_id", String, nullable=False, index=True),
    Column("shipping_address", JSON, nullable=False),
    Column("payment_method", String, nullable=False),
    Column("items_price", MONEY, nullable=False),
    Column("shipping_price", MONEY, nullable=False),
    Column("tax_price", MONEY, nullable=False),
    Column("total_price", MONEY, nullable=False),
    Column(
        "order_status",
        Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        nullable=False,
        default=OrderStatus.PENDING,
    ),
    Column(
        "payment_status",
        Enum(PaymentStatus, name="payment_status", values_callable=_enum_values),
        nullable=False,
        default=PaymentStatus.PENDING,
    ),
    Column("is_paid", Boolean, nullable=False, default=False),
    Column("paid_at", DateTime(timezone=True), nullable=True),
    Column("is_delivered", Boolean, nullable=False, default=False),
    Column("delivered_at", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now(), index=True),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now()),
)


order_lines_tbl = Table(
    "order_lines",
    metadata,
    Column("id", String, primary_key=True),
    Column("order_id", String, ForeignKey("orders.id"), nullable=False, index=True),
    Column("position", Integer, nullable=False),
    Column("product_id", String, nullable=False),
    Column("name", String, nullable=False),
    Column("price", MONEY, nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("size", String, nullable=False),
    Column("color", String, nullable=False),
    Column("image", String, nullable=False, default=""),
)
