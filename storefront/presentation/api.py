import logging
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from storefront.presentation.schemas import (
    PlaceOrderRequest, UpdateOrderStatusRequest, OrderResponse, OrderListResponse,
    AddToCartRequest, UpdateCartLineRequest, CartResponse, MessageResponse, ErrorResponse
)
from storefront.application.place_order import PlaceOrderUseCase, PlaceOrderDTO
from storefront.application.cancel_order import CancelOrderUseCase
from storefront.application.update_order_status import UpdateOrderStatusUseCase, UpdateOrderStatusDTO
from storefront.application.get_order import GetOrderUseCase, ListUserOrdersUseCase, ListOrdersUseCase
from storefront.application.manage_cart import (
    GetCartUseCase, AddToCartUseCase, AddToCartDTO, UpdateCartLineUseCase, RemoveCartLineUseCase,
    ClearCartUseCase
)
from storefront.domain.models import Actor, OrderStatus, UserRole
from storefront.domain.exceptions import (
    ValidationError, EmptyCartError, ProductNotFoundError, InsufficientStockError, NotAuthorizedError,
    InvalidTransitionError, OrderNotFoundError, CartNotFoundError, CartLineNotFoundError
)
from storefront.infrastructure.unit_of_work import UnitOfWork
from storefront.database import get_session_factory
from storefront.config import settings

logger = logging.getLogger(__name__)

order_router = APIRouter(prefix="/orders", tags=["orders"])
cart_router = APIRouter(prefix="/cart", tags=["cart"])

BAD_REQUEST = (ValidationError, EmptyCartError, InsufficientStockError, InvalidTransitionError)
NOT_FOUND = (ProductNotFoundError, OrderNotFoundError, CartNotFoundError, CartLineNotFoundError)


def get_uow():
    return UnitOfWork(get_session_factory())


# Личность пользователя приходит от шлюза аутентификации
def get_current_actor(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: UserRole = Header(default=UserRole.CUSTOMER)
) -> Actor:
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Требуется авторизация")
    return Actor(user_id=x_user_id, role=x_user_role)


def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Доступ только для администратора")
    return actor


def to_http_error(e: Exception) -> HTTPException:
    if isinstance(e, NotAuthorizedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if isinstance(e, NOT_FOUND):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@order_router.post(
    "",
    response_model=OrderResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    status_code=status.HTTP_201_CREATED
)
async def place_order(
    request: PlaceOrderRequest,
    actor: Actor = Depends(get_current_actor),
    uow: UnitOfWork = Depends(get_uow)
):
    """Оформить заказ из корзины"""
    try:
        dto = PlaceOrderDTO(
            user_id=actor.user_id,
            shipping_address=request.shipping_address,
            payment_method=request.payment_method
        )
        order = await PlaceOrderUseCase(uow)(dto)
        return OrderResponse.from_domain(order)

    except BAD_REQUEST + NOT_FOUND as e:
        raise to_http_error(e)
    except Exception as e:
        logger.error(f"Ошибка оформления заказа: {e}", exc_info=True)
        raise HTTPException(status_code=503, detail=f"Service unavailable: {str(e)}")


@order_router.get("/my-orders", response_model=List[OrderResponse])
async def list_my_orders(
    actor: Actor = Depends(get_current_actor),
    uow: UnitOfWork = Depends(get_uow)
):
    """Заказы текущего пользователя"""
    orders = await ListUserOrdersUseCase(uow)(actor.user_id)
    return [OrderResponse.from_domain(order) for order in orders]


@order_router.get("", response_model=OrderListResponse)
async def list_orders(
    page: int = 1,
    order_status: Optional[OrderStatus] = Query(default=None, alias="status"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    actor: Actor = Depends(require_admin),
    uow: UnitOfWork = Depends(get_uow)
):
    """Все заказы (администратор)"""
    result = await ListOrdersUseCase(uow, settings.ORDERS_PAGE_SIZE)(
        page=page, status=order_status, start_date=start_date, end_date=end_date
    )
    return OrderListResponse(
        orders=[OrderResponse.from_domain(order) for order in result.orders],
        page=result.page,
        pages=result.pages,
        total=result.total
    )


@order_router.get(
    "/{order_id}",
    response_model=OrderResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}
)
async def get_order(
    order_id: str,
    actor: Actor = Depends(get_current_actor),
    uow: UnitOfWork = Depends(get_uow)
):
    """Получить заказ по ID"""
    try:
        order = await GetOrderUseCase(uow)(order_id, actor)
        return OrderResponse.from_domain(order)
    except (OrderNotFoundError, NotAuthorizedError) as e:
        raise to_http_error(e)


@order_router.put(
    "/{order_id}/cancel",
    response_model=OrderResponse,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}
)
async def cancel_order(
    order_id: str,
    actor: Actor = Depends(get_current_actor),
    uow: UnitOfWork = Depends(get_uow)
):
    """Отменить заказ и вернуть товары на склад"""
    try:
        order = await CancelOrderUseCase(uow)(order_id, actor)
        return OrderResponse.from_domain(order)
    except (OrderNotFoundError, NotAuthorizedError, InvalidTransitionError) as e:
        raise to_http_error(e)


@order_router.put(
    "/{order_id}/status",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}}
)
async def update_order_status(
    order_id: str,
    request: UpdateOrderStatusRequest,
    actor: Actor = Depends(require_admin),
    uow: UnitOfWork = Depends(get_uow)
):
    """Обновить статус заказа и оплаты (администратор)"""
    try:
        dto = UpdateOrderStatusDTO(
            order_id=order_id,
            order_status=request.order_status,
            payment_status=request.payment_status
        )
        order = await UpdateOrderStatusUseCase(uow)(dto)
        return OrderResponse.from_domain(order)
    except OrderNotFoundError as e:
        raise to_http_error(e)


@cart_router.get("", response_model=CartResponse)
async def get_cart(
    actor: Actor = Depends(get_current_actor),
    uow: UnitOfWork = Depends(get_uow)
):
    """Корзина текущего пользователя"""
    snapshot = await GetCartUseCase(uow)(actor.user_id)
    return CartResponse.from_snapshot(snapshot)


@cart_router.post(
    "/add",
    response_model=CartResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}
)
async def add_to_cart(
    request: AddToCartRequest,
    actor: Actor = Depends(get_current_actor),
    uow: UnitOfWork = Depends(get_uow)
):
    """Добавить товар в корзину"""
    try:
        dto = AddToCartDTO(user_id=actor.user_id, **request.model_dump())
        snapshot = await AddToCartUseCase(uow)(dto)
        return CartResponse.from_snapshot(snapshot)
    except BAD_REQUEST + NOT_FOUND as e:
        raise to_http_error(e)


@cart_router.put(
    "/update/{line_id}",
    response_model=CartResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}
)
async def update_cart_line(
    line_id: str,
    request: UpdateCartLineRequest,
    actor: Actor = Depends(get_current_actor),
    uow: UnitOfWork = Depends(get_uow)
):
    """Изменить количество позиции в корзине"""
    try:
        snapshot = await UpdateCartLineUseCase(uow)(actor.user_id, line_id, request.quantity)
        return CartResponse.from_snapshot(snapshot)
    except BAD_REQUEST + NOT_FOUND as e:
        raise to_http_error(e)


@cart_router.delete(
    "/remove/{line_id}",
    response_model=CartResponse,
    responses={404: {"model": ErrorResponse}}
)
async def remove_cart_line(
    line_id: str,
    actor: Actor = Depends(get_current_actor),
    uow: UnitOfWork = Depends(get_uow)
):
    """Удалить позицию из корзины"""
    try:
        snapshot = await RemoveCartLineUseCase(uow)(actor.user_id, line_id)
        return CartResponse.from_snapshot(snapshot)
    except CartNotFoundError as e:
        raise to_http_error(e)


@cart_router.delete(
    "/clear",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}}
)
async def clear_cart(
    actor: Actor = Depends(get_current_actor),
    uow: UnitOfWork = Depends(get_uow)
):
    """Очистить корзину"""
    try:
        await ClearCartUseCase(uow)(actor.user_id)
        return MessageResponse(message="Корзина очищена")
    except CartNotFoundError as e:
        raise to_http_error(e)
