from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field


class UserRole(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


# Отменить можно только заказ, который еще не отправлен
CANCELLABLE_STATUSES = (OrderStatus.PENDING, OrderStatus.PROCESSING)


class Actor(BaseModel):
    """Пользователь, от имени которого выполняется операция"""
    user_id: str
    role: UserRole = UserRole.CUSTOMER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class Product(BaseModel):
    """Товар каталога вместе со счетчиками склада"""
    id: str
    name: str
    price: Decimal = Field(ge=0)
    stock: int = Field(default=0, ge=0)
    sold: int = Field(default=0, ge=0)
    images: List[str] = Field(default_factory=list)

    @property
    def main_image(self) -> str:
        return self.images[0] if self.images else ""


class CartLine(BaseModel):
    id: str
    product_id: str
    quantity: int = Field(ge=1)
    size: str
    color: str
    price: Decimal

    def matches(self, product_id: str, size: str, color: str) -> bool:
        return self.product_id == product_id and self.size == size and self.color == color


class Cart(BaseModel):
    id: str
    user_id: str
    lines: List[CartLine] = Field(default_factory=list)
    total_price: Decimal = Decimal("0")
    updated_at: Optional[datetime] = None

    def find_line(self, product_id: str, size: str, color: str) -> Optional[CartLine]:
        for line in self.lines:
            if line.matches(product_id, size, color):
                return line
        return None

    def get_line(self, line_id: str) -> Optional[CartLine]:
        return next((line for line in self.lines if line.id == line_id), None)


class ShippingAddress(BaseModel):
    street: str
    city: str
    postal_code: str
    country: str


class OrderLine(BaseModel):
    """Снимок товара на момент покупки"""
    product_id: str
    name: str
    price: Decimal
    quantity: int
    size: str
    color: str
    image: str = ""


class Order(BaseModel):
    """Domain Entity — заказ"""
    id: str
    user_id: str
    lines: List[OrderLine]
    shipping_address: ShippingAddress
    payment_method: str
    items_price: Decimal
    shipping_price: Decimal
    tax_price: Decimal
    total_price: Decimal
    order_status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    is_paid: bool = False
    paid_at: Optional[datetime] = None
    is_delivered: bool = False
    delivered_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    def is_visible_to(self, actor: Actor) -> bool:
        """Бизнес-правило: заказ доступен владельцу и администратору"""
        return actor.is_admin or actor.user_id == self.user_id

    def can_be_cancelled(self) -> bool:
        """Бизнес-правило: можно отменить только pending или processing"""
        return self.order_status in CANCELLABLE_STATUSES
