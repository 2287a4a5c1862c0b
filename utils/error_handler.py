"""
Error Handler Utility for API endpoints

Provides centralized error handling for the HTTP layer with:
- Automatic exception to status code mapping
- Consistent {code, message, details} error bodies
- Logging for debugging

Usage in endpoints:
    from utils.error_handler import handle_service_error

    try:
        cart = await CartService.add_item(user_id, line, session)
    except RestaurantException as e:
        raise handle_service_error(e)
"""

import logging

from fastapi import HTTPException, status

from exceptions import (
    RestaurantException,
    EmptyCartException,
    CartItemNotFoundException,
    LineItemValidationException,
    PromotionException,
    PromotionNotFoundException,
    PromotionConcurrencyException,
    InvalidPromotionDataException,
    InvalidSettingsException,
    OrderNotFoundException,
    BelowMinimumOrderAmountException,
)

logger = logging.getLogger(__name__)

# Checked in order, first isinstance match wins
STATUS_MAPPING: list[tuple[type[RestaurantException], int, str]] = [
    # Cart exceptions
    (LineItemValidationException, status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR"),
    (CartItemNotFoundException, status.HTTP_404_NOT_FOUND, "CART_ITEM_NOT_FOUND"),
    (EmptyCartException, status.HTTP_400_BAD_REQUEST, "EMPTY_CART"),

    # Promotion exceptions
    (PromotionConcurrencyException, status.HTTP_409_CONFLICT, "CONCURRENTLY_REDEEMED"),
    (PromotionNotFoundException, status.HTTP_404_NOT_FOUND, "NOT_FOUND"),
    (PromotionException, status.HTTP_400_BAD_REQUEST, "PROMOTION_ERROR"),
    (InvalidPromotionDataException, status.HTTP_400_BAD_REQUEST, "INVALID_PROMOTION"),

    # Settings exceptions
    (InvalidSettingsException, status.HTTP_400_BAD_REQUEST, "INVALID_SETTINGS"),

    # Order exceptions
    (OrderNotFoundException, status.HTTP_404_NOT_FOUND, "ORDER_NOT_FOUND"),
    (BelowMinimumOrderAmountException, status.HTTP_400_BAD_REQUEST, "BELOW_MINIMUM_ORDER_AMOUNT"),
]


def error_body(exception: RestaurantException) -> tuple[int, dict]:
    """
    Map a service exception to an HTTP status code and response body.

    Promotion and line item errors report their own machine-readable code
    (e.g. BELOW_MINIMUM, SIZE_REQUIRED_FOR_PIZZA).

    Returns:
        (status_code, {"code": ..., "message": ..., "details": {...}})
    """
    status_code, code = status.HTTP_400_BAD_REQUEST, "BAD_REQUEST"
    for exception_type, mapped_status, mapped_code in STATUS_MAPPING:
        if isinstance(exception, exception_type):
            status_code, code = mapped_status, mapped_code
            break
    else:
        logger.error(f"Unmapped exception type: {type(exception).__name__}")

    exception_code = getattr(exception, 'code', None)
    if exception_code is not None:
        code = exception_code.value

    return status_code, {
        "code": code,
        "message": exception.message,
        "details": exception.details,
    }


def handle_service_error(exception: RestaurantException) -> HTTPException:
    """
    Convert a service exception to an HTTPException.

    Example:
        try:
            order = await CheckoutService.get_order(order_number, session)
        except RestaurantException as e:
            raise handle_service_error(e)
    """
    logger.warning(f"Service error handled: {type(exception).__name__} - {str(exception)}")
    status_code, body = error_body(exception)
    return HTTPException(status_code=status_code, detail=body)


def handle_unexpected_error(exception: Exception, correlation_id: str | None = None) -> HTTPException:
    """
    Handle unexpected exceptions (non-RestaurantException).

    Logs the full traceback and returns a generic 500 without internals.
    """
    logger.error(
        f"[{correlation_id or '-'}] Unexpected error: {type(exception).__name__} - {str(exception)}",
        exc_info=exception
    )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred. Please try again later",
            "details": {"correlation_id": correlation_id} if correlation_id else {},
        }
    )
