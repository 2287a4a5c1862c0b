"""
Custom exceptions for the restaurant pricing engine.

This module provides a hierarchy of custom exceptions for consistent error handling
throughout the application.

Exception Hierarchy:
--------------------
RestaurantException (base)
├── CartException
│   ├── EmptyCartException
│   ├── CartItemNotFoundException
│   └── LineItemValidationException
├── PromotionException (carries PromotionErrorCode)
│   ├── PromotionNotFoundException
│   ├── PromotionInactiveException
│   ├── PromotionNotStartedException
│   ├── PromotionExpiredException
│   ├── PromotionLimitReachedException
│   ├── BelowMinimumOrderValueException
│   └── PromotionConcurrencyException
├── InvalidPromotionDataException
├── SettingsException
│   └── InvalidSettingsException
└── OrderException
    ├── OrderNotFoundException
    └── BelowMinimumOrderAmountException

Usage:
------
Services raise specific exceptions:
    raise PromotionExpiredException(promotion_code="WELCOME50")

The API layer catches and maps them to HTTP errors:
    try:
        await CartService.apply_promotion(user_id, code, session)
    except RestaurantException as e:
        raise handle_service_error(e)
"""

from .base import RestaurantException
from .cart import CartException, EmptyCartException, CartItemNotFoundException, LineItemValidationException
from .promotion import (
    PromotionException,
    PromotionNotFoundException,
    PromotionInactiveException,
    PromotionNotStartedException,
    PromotionExpiredException,
    PromotionLimitReachedException,
    BelowMinimumOrderValueException,
    PromotionConcurrencyException,
    InvalidPromotionDataException,
)
from .settings import SettingsException, InvalidSettingsException
from .order import OrderException, OrderNotFoundException, BelowMinimumOrderAmountException

__all__ = [
    # Base
    'RestaurantException',

    # Cart
    'CartException',
    'EmptyCartException',
    'CartItemNotFoundException',
    'LineItemValidationException',

    # Promotion
    'PromotionException',
    'PromotionNotFoundException',
    'PromotionInactiveException',
    'PromotionNotStartedException',
    'PromotionExpiredException',
    'PromotionLimitReachedException',
    'BelowMinimumOrderValueException',
    'PromotionConcurrencyException',
    'InvalidPromotionDataException',

    # Settings
    'SettingsException',
    'InvalidSettingsException',

    # Order
    'OrderException',
    'OrderNotFoundException',
    'BelowMinimumOrderAmountException',
]
