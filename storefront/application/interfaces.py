from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, List, Tuple
from storefront.domain.models import Cart, Order, OrderStatus, Product


class ProductRepository(ABC):
    @abstractmethod
    async def get_by_id(self, product_id: str) -> Optional[Product]:
        pass

    @abstractmethod
    async def add(self, product: Product) -> None:
        pass


class StockLedger(ABC):
    """Единственное место, где меняются stock и sold товара"""

    @abstractmethod
    async def reserve(self, product_id: str, quantity: int) -> None:
        pass

    @abstractmethod
    async def restore(self, product_id: str, quantity: int) -> bool:
        pass


class CartRepository(ABC):
    @abstractmethod
    async def get_by_user_id(self, user_id: str) -> Optional[Cart]:
        pass

    @abstractmethod
    async def create(self, user_id: str) -> Cart:
        pass

    @abstractmethod
    async def add_line(self, cart_id: str, product_id: str, quantity: int, size: str, color: str, price) -> str:
        pass

    @abstractmethod
    async def update_line_quantity(self, cart_id: str, line_id: str, quantity: int) -> None:
        pass

    @abstractmethod
    async def remove_line(self, cart_id: str, line_id: str) -> None:
        pass

    @abstractmethod
    async def refresh_total(self, cart_id: str) -> None:
        pass

    @abstractmethod
    async def clear(self, cart_id: str) -> None:
        pass


class OrderRepository(ABC):
    @abstractmethod
    async def get_by_id(self, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def list_by_user(self, user_id: str) -> List[Order]:
        pass

    @abstractmethod
    async def list(
        self,
        limit: int,
        offset: int,
        status: Optional[OrderStatus] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Tuple[List[Order], int]:
        pass

    @abstractmethod
    async def create(self, order: Order) -> None:
        pass

    @abstractmethod
    async def transition_status(self, order_id: str, status: OrderStatus, allowed_from) -> bool:
        pass

    @abstractmethod
    async def update_status(self, order_id: str, **fields) -> None:
        pass


