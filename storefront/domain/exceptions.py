class DomainException(Exception):
    pass


class ValidationError(DomainException):
    pass


class EmptyCartError(DomainException):
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__("Корзина пуста")


class ProductNotFoundError(DomainException):
    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Товар {product_id} не найден")


class InsufficientStockError(DomainException):
    def __init__(self, product_id: str, product_name: str, available: int, required: int):
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.required = required
        super().__init__(
            f"Недостаточно товара {product_name}. Доступно: {available}, требуется: {required}"
        )


class NotAuthorizedError(DomainException):
    pass


class InvalidTransitionError(DomainException):
    pass


class OrderNotFoundError(DomainException):
    pass


class CartNotFoundError(DomainException):
    pass


class CartLineNotFoundError(DomainException):
    pass
