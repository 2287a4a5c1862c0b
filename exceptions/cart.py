"""
Cart-related exceptions.
"""

from enums.line_item_error_code import LineItemErrorCode
from .base import RestaurantException


class CartException(RestaurantException):
    """Base exception for cart-related errors."""
    pass


class EmptyCartException(CartException):
    """Raised when trying to checkout with empty cart."""

    def __init__(self, user_id: int):
        super().__init__(
            f"Cart is empty for user {user_id}",
            details={'user_id': user_id}
        )
        self.user_id = user_id


class CartItemNotFoundException(CartException):
    """Raised when cart item not found."""

    def __init__(self, cart_item_id: int):
        super().__init__(
            f"Cart item {cart_item_id} not found",
            details={'cart_item_id': cart_item_id}
        )
        self.cart_item_id = cart_item_id


class LineItemValidationException(CartException):
    """
    Raised when a line item is malformed (e.g. pizza without a size).

    Always raised before anything is persisted, so a rejected mutation
    never leaves a partially applied cart behind.
    """

    def __init__(self, code: LineItemErrorCode, reason: str, product_id: str | None = None):
        super().__init__(
            reason,
            details={'code': code.value, 'product_id': product_id}
        )
        self.code = code
        self.reason = reason
        self.product_id = product_id
