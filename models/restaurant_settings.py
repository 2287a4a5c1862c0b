from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel
from sqlalchemy import Column, Integer, String, Numeric, DateTime, CheckConstraint, func

from models.base import Base

SINGLETON_ID = 1


class RestaurantSettings(Base):
    """
    Single-row configuration record read on every cart recomputation.

    There is no versioning: a change affects every open cart the next time
    it is recomputed (the cart is a live quote, not a locked price).
    """
    __tablename__ = 'restaurant_settings'

    id = Column(Integer, primary_key=True, default=SINGLETON_ID)
    name = Column(String(100), nullable=False)
    phone = Column(String, nullable=False)
    email = Column(String, nullable=False)
    address = Column(String(500), nullable=False)
    min_order_amount = Column(Numeric(10, 2), nullable=False, default=100)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=8.5)  # percent
    delivery_fee = Column(Numeric(10, 2), nullable=False, default=40)
    free_delivery_threshold = Column(Numeric(10, 2), nullable=False, default=2490)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint('tax_rate >= 0 AND tax_rate <= 100', name='check_settings_tax_rate_range'),
        CheckConstraint('delivery_fee >= 0', name='check_settings_delivery_fee_non_negative'),
        CheckConstraint('free_delivery_threshold >= 0', name='check_settings_threshold_non_negative'),
        CheckConstraint('min_order_amount >= 0', name='check_settings_min_order_non_negative'),
    )


class RestaurantSettingsDTO(BaseModel):
    name: str = "Friend's Pizza Hut"
    phone: str = "+91 98765 43210"
    email: str = "contact@friendspizzahut.com"
    address: str = "123 Pizza Street, Mumbai, Maharashtra 400001"
    min_order_amount: Decimal = Decimal("100")
    tax_rate: Decimal = Decimal("8.5")
    delivery_fee: Decimal = Decimal("40")
    free_delivery_threshold: Decimal = Decimal("2490")
    updated_at: datetime | None = None


class PublicSettingsDTO(BaseModel):
    """Customer-facing subset shown on checkout screens."""
    min_order_amount: Decimal
    tax_rate: Decimal
    delivery_fee: Decimal
    free_delivery_threshold: Decimal
