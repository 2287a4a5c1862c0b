"""
Order placement exceptions.
"""

from decimal import Decimal

from .base import RestaurantException


class OrderException(RestaurantException):
    """Base exception for order-related errors."""
    pass


class OrderNotFoundException(OrderException):
    """Raised when order is not found in database."""

    def __init__(self, order_number: str):
        super().__init__(
            f"Order {order_number} not found",
            details={'order_number': order_number}
        )
        self.order_number = order_number


class BelowMinimumOrderAmountException(OrderException):
    """Raised when the cart subtotal is below the restaurant's minimum order amount."""

    def __init__(self, subtotal: Decimal, min_order_amount: Decimal, currency_symbol: str = "₹"):
        shortfall = min_order_amount - subtotal
        super().__init__(
            f"Minimum order amount is {currency_symbol}{min_order_amount}. "
            f"Your cart total is {currency_symbol}{subtotal}",
            details={
                'subtotal': str(subtotal),
                'min_order_amount': str(min_order_amount),
                'shortfall': str(shortfall),
            }
        )
        self.subtotal = subtotal
        self.min_order_amount = min_order_amount
        self.shortfall = shortfall
