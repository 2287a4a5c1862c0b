"""
Promotion-related exceptions.

Every evaluator outcome other than success is one of these. They are
expected, user-facing results (a customer typed an expired code), not bugs.
"""

from decimal import Decimal

from enums.promotion_error_code import PromotionErrorCode
from .base import RestaurantException


class PromotionException(RestaurantException):
    """Base exception for promotion errors. Carries a machine-readable code."""

    code: PromotionErrorCode

    def __init__(self, code: PromotionErrorCode, message: str, details: dict | None = None):
        details = dict(details or {})
        details.setdefault('code', code.value)
        super().__init__(message, details)
        self.code = code


class PromotionNotFoundException(PromotionException):
    """Raised when no promotion matches the (upper-cased) code or id."""

    def __init__(self, code: str | None = None, promotion_id: int | None = None):
        if code is not None:
            message = "Invalid offer code"
        else:
            message = f"Promotion {promotion_id} not found"
        super().__init__(
            PromotionErrorCode.NOT_FOUND,
            message,
            details={'promotion_code': code, 'promotion_id': promotion_id}
        )
        self.promotion_code = code
        self.promotion_id = promotion_id


class PromotionInactiveException(PromotionException):
    """Raised when the promotion is switched off by an administrator."""

    def __init__(self, promotion_code: str):
        super().__init__(
            PromotionErrorCode.INACTIVE,
            "This offer is currently inactive",
            details={'promotion_code': promotion_code}
        )
        self.promotion_code = promotion_code


class PromotionNotStartedException(PromotionException):
    """Raised when the promotion's validity window has not opened yet."""

    def __init__(self, promotion_code: str):
        super().__init__(
            PromotionErrorCode.NOT_STARTED,
            "This offer has not started yet",
            details={'promotion_code': promotion_code}
        )
        self.promotion_code = promotion_code


class PromotionExpiredException(PromotionException):
    """Raised when the promotion's validity window has closed."""

    def __init__(self, promotion_code: str):
        super().__init__(
            PromotionErrorCode.EXPIRED,
            "This offer has expired",
            details={'promotion_code': promotion_code}
        )
        self.promotion_code = promotion_code


class PromotionLimitReachedException(PromotionException):
    """Raised when usage_count has reached usage_limit."""

    def __init__(self, promotion_code: str | None = None, promotion_id: int | None = None):
        super().__init__(
            PromotionErrorCode.LIMIT_REACHED,
            "This offer has reached its usage limit",
            details={'promotion_code': promotion_code, 'promotion_id': promotion_id}
        )
        self.promotion_code = promotion_code
        self.promotion_id = promotion_id


class BelowMinimumOrderValueException(PromotionException):
    """Raised when the cart subtotal is below the promotion's minimum order value."""

    def __init__(self, promotion_code: str, shortfall: Decimal, min_order_value: Decimal, currency_symbol: str = "₹"):
        super().__init__(
            PromotionErrorCode.BELOW_MINIMUM,
            f"Add {currency_symbol}{shortfall} more to use this offer (Min order: {currency_symbol}{min_order_value})",
            details={
                'promotion_code': promotion_code,
                'shortfall': str(shortfall),
                'min_order_value': str(min_order_value),
            }
        )
        self.promotion_code = promotion_code
        self.shortfall = shortfall
        self.min_order_value = min_order_value


class PromotionConcurrencyException(PromotionException):
    """
    Raised at checkout when the usage ledger refuses a promotion that the
    evaluator approved moments earlier (another customer took the last use).

    Clients should suggest a different offer instead of retrying blindly.
    """

    def __init__(self, promotion_code: str, promotion_id: int):
        super().__init__(
            PromotionErrorCode.CONCURRENTLY_REDEEMED,
            "This offer was just fully redeemed. Please try a different offer",
            details={'promotion_code': promotion_code, 'promotion_id': promotion_id}
        )
        self.promotion_code = promotion_code
        self.promotion_id = promotion_id


class InvalidPromotionDataException(RestaurantException):
    """Raised when an administrator submits an inconsistent promotion definition."""

    def __init__(self, field: str, reason: str):
        super().__init__(
            f"Invalid promotion field '{field}': {reason}",
            details={'field': field, 'reason': reason}
        )
        self.field = field
        self.reason = reason
