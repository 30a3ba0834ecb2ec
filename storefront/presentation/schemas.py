from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from storefront.domain.models import OrderStatus, PaymentStatus, ShippingAddress


class PlaceOrderRequest(BaseModel):
    shipping_address: Any = None
    payment_method: Optional[str] = None


class UpdateOrderStatusRequest(BaseModel):
    order_status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None


class OrderLineResponse(BaseModel):
    product_id: str
    name: str
    price: Decimal
    quantity: int
    size: str
    color: str
    image: str


class OrderResponse(BaseModel):
    id: str
    user_id: str
    lines: List[OrderLineResponse]
    shipping_address: ShippingAddress
    payment_method: str
    items_price: Decimal
    shipping_price: Decimal
    tax_price: Decimal
    total_price: Decimal
    order_status: OrderStatus
    payment_status: PaymentStatus
    is_paid: bool
    paid_at: Optional[datetime] = None
    is_delivered: bool
    delivered_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, order):
        return cls(
            id=order.id,
            user_id=order.user_id,
            lines=[OrderLineResponse(**line.model_dump()) for line in order.lines],
            shipping_address=order.shipping_address,
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


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]
    page: int
    pages: int
    total: int


class AddToCartRequest(BaseModel):
    product_id: Optional[str] = None
    quantity: Optional[int] = None
    size: Optional[str] = None
    color: Optional[str] = None


class UpdateCartLineRequest(BaseModel):
    quantity: Optional[int] = None


class CartProductResponse(BaseModel):
    id: str
    name: str
    price: Decimal
    images: List[str]
    stock: int


class CartLineResponse(BaseModel):
    id: str
    product_id: str
    product: Optional[CartProductResponse] = None
    quantity: int
    size: str
    color: str
    price: Decimal


class CartResponse(BaseModel):
    id: str
    user_id: str
    lines: List[CartLineResponse]
    total_price: Decimal

    @classmethod
    def from_snapshot(cls, snapshot):
        lines = []
        for resolved in snapshot.lines:
            product = resolved.product
            lines.append(
                CartLineResponse(
                    **resolved.line.model_dump(),
                    product=CartProductResponse(
                        id=product.id,
                        name=product.name,
                        price=product.price,
                        images=product.images,
                        stock=product.stock
                    ) if product else None
                )
            )
        return cls(
            id=snapshot.cart.id,
            user_id=snapshot.cart.user_id,
            lines=lines,
            total_price=snapshot.cart.total_price
        )


class MessageResponse(BaseModel):
    status: str = "ok"
    message: str


class ErrorResponse(BaseModel):
    detail: str
