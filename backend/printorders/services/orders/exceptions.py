"""Order domain exceptions."""

from printorders.services.exceptions import NotFoundError, ValidationError


class OrderNotFound(NotFoundError):
    """Order not found."""

    pass


class OrderItemNotFound(NotFoundError):
    """Order item does not exist or does not belong to the specified order."""

    pass


class EmptyOrder(ValidationError):
    """Order has no items."""

    pass
