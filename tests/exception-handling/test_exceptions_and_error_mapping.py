"""
Tests for the exception hierarchy and its HTTP mapping.

Covers user-facing messages, machine-readable codes and the
{code, message, details} body produced by utils/error_handler.py.
"""

from decimal import Decimal

import pytest
from fastapi import HTTPException

from enums.line_item_error_code import LineItemErrorCode
from enums.promotion_error_code import PromotionErrorCode
from exceptions import (
    RestaurantException,
    EmptyCartException,
    CartItemNotFoundException,
    LineItemValidationException,
    PromotionException,
    PromotionNotFoundException,
    PromotionInactiveException,
    PromotionNotStartedException,
    PromotionExpiredException,
    PromotionLimitReachedException,
    BelowMinimumOrderValueException,
    PromotionConcurrencyException,
    InvalidPromotionDataException,
    InvalidSettingsException,
    OrderNotFoundException,
    BelowMinimumOrderAmountException,
)
from utils.error_handler import error_body, handle_service_error, handle_unexpected_error


class TestPromotionMessages:

    @pytest.mark.parametrize("exception, code, message", [
        (PromotionNotFoundException(code="NOPE"), PromotionErrorCode.NOT_FOUND, "Invalid offer code"),
        (PromotionInactiveException("OFF"), PromotionErrorCode.INACTIVE, "This offer is currently inactive"),
        (PromotionNotStartedException("SOON"), PromotionErrorCode.NOT_STARTED, "This offer has not started yet"),
        (PromotionExpiredException("OLD"), PromotionErrorCode.EXPIRED, "This offer has expired"),
        (PromotionLimitReachedException("GONE"), PromotionErrorCode.LIMIT_REACHED,
         "This offer has reached its usage limit"),
    ])
    def test_code_and_message(self, exception, code, message):
        assert isinstance(exception, PromotionException)
        assert exception.code == code
        assert exception.message == message
        assert exception.details['code'] == code.value

    def test_below_minimum_message_names_shortfall(self):
        exception = BelowMinimumOrderValueException("BIG500", Decimal("150.00"), Decimal("500.00"))

        assert exception.message == "Add ₹150.00 more to use this offer (Min order: ₹500.00)"
        assert exception.shortfall == Decimal("150.00")

    def test_not_found_by_id(self):
        exception = PromotionNotFoundException(promotion_id=9)

        assert exception.message == "Promotion 9 not found"
        assert exception.details['promotion_id'] == 9

    def test_all_engine_errors_share_a_base(self):
        for exception in (
            EmptyCartException(1),
            CartItemNotFoundException(3),
            PromotionConcurrencyException("LAST", 2),
            InvalidPromotionDataException("code", "too short"),
            InvalidSettingsException("tax_rate", "must be between 0 and 30"),
            OrderNotFoundException("ORD-X-1234"),
        ):
            assert isinstance(exception, RestaurantException)

    def test_repr_includes_details(self):
        assert repr(CartItemNotFoundException(3)) == "CartItemNotFoundException('Cart item 3 not found', cart_item_id=3)"


class TestErrorBody:

    @pytest.mark.parametrize("exception, status_code, code", [
        (EmptyCartException(1), 400, "EMPTY_CART"),
        (CartItemNotFoundException(3), 404, "CART_ITEM_NOT_FOUND"),
        (PromotionNotFoundException(code="NOPE"), 404, "NOT_FOUND"),
        (PromotionExpiredException("OLD"), 400, "EXPIRED"),
        (PromotionConcurrencyException("LAST", 2), 409, "CONCURRENTLY_REDEEMED"),
        (InvalidPromotionDataException("code", "too short"), 400, "INVALID_PROMOTION"),
        (InvalidSettingsException("tax_rate", "out of range"), 400, "INVALID_SETTINGS"),
        (OrderNotFoundException("ORD-X-1234"), 404, "ORDER_NOT_FOUND"),
        (BelowMinimumOrderAmountException(Decimal("60.00"), Decimal("100.00")), 400, "BELOW_MINIMUM_ORDER_AMOUNT"),
    ])
    def test_status_and_code(self, exception, status_code, code):
        mapped_status, body = error_body(exception)

        assert mapped_status == status_code
        assert body["code"] == code
        assert body["message"] == exception.message

    def test_line_item_error_reports_its_own_code(self):
        exception = LineItemValidationException(
            LineItemErrorCode.TOPPINGS_NOT_ALLOWED, "Toppings can only be added to pizzas", "cola"
        )

        status_code, body = error_body(exception)

        assert status_code == 400
        assert body["code"] == "TOPPINGS_NOT_ALLOWED"
        assert body["details"]["product_id"] == "cola"

    def test_below_minimum_order_amount_details(self):
        _, body = error_body(BelowMinimumOrderAmountException(Decimal("60.00"), Decimal("100.00")))

        assert body["details"]["shortfall"] == "40.00"
        assert body["message"] == "Minimum order amount is ₹100.00. Your cart total is ₹60.00"

    def test_unmapped_exception_falls_back_to_400(self):
        status_code, body = error_body(RestaurantException("Something odd"))

        assert status_code == 400
        assert body["code"] == "BAD_REQUEST"

    def test_handle_service_error_builds_http_exception(self):
        http_exception = handle_service_error(PromotionConcurrencyException("LAST", 2))

        assert isinstance(http_exception, HTTPException)
        assert http_exception.status_code == 409
        assert http_exception.detail["details"]["promotion_code"] == "LAST"

    def test_unexpected_error_hides_internals(self):
        http_exception = handle_unexpected_error(ValueError("secret internals"), "20260101-120000-abcd1234")

        assert http_exception.status_code == 500
        assert "secret internals" not in str(http_exception.detail)
        assert http_exception.detail["details"]["correlation_id"] == "20260101-120000-abcd1234"
