"""
Models Package

This file ensures all SQLAlchemy models are imported and registered,
which is required for foreign keys between tables to resolve correctly.
"""

from models.base import Base
from models.promotion import Promotion
from models.restaurant_settings import RestaurantSettings
from models.cart import Cart
from models.cartItem import CartItem
from models.order import Order
from models.orderItem import OrderItem

__all__ = [
    'Base',
    'Promotion',
    'RestaurantSettings',
    'Cart',
    'CartItem',
    'Order',
    'OrderItem',
]
