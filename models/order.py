from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel
from sqlalchemy import Column, Integer, Numeric, DateTime, String, Text, ForeignKey, CheckConstraint, func

from models.base import Base
from models.cartItem import LineItemDTO


class Order(Base):
    """
    Immutable record of a placed order.

    Totals and line items are copied from the recomputed cart at placement;
    they are never recomputed afterwards, whatever happens to the menu or
    the restaurant settings.
    """
    __tablename__ = 'orders'

    id = Column(Integer, primary_key=True)
    order_number = Column(String(32), nullable=False, unique=True)
    user_id = Column(Integer, nullable=False, index=True)
    total_items = Column(Integer, nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)
    tax_amount = Column(Numeric(10, 2), nullable=False)
    delivery_fee = Column(Numeric(10, 2), nullable=False)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    grand_total = Column(Numeric(10, 2), nullable=False)
    promotion_id = Column(Integer, ForeignKey('promotions.id', ondelete='SET NULL'), nullable=True)
    promotion_code = Column(String(20), nullable=True)
    delivery_address = Column(Text, nullable=True)
    contact_phone = Column(String, nullable=True)
    order_instructions = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=func.now())

    __table_args__ = (
        CheckConstraint('grand_total >= 0', name='check_order_grand_total_non_negative'),
        CheckConstraint('discount >= 0', name='check_order_discount_non_negative'),
    )


class OrderDTO(BaseModel):
    id: int | None = None
    order_number: str | None = None
    user_id: int | None = None
    items: list[LineItemDTO] = []
    total_items: int = 0
    subtotal: Decimal = Decimal("0.00")
    tax_amount: Decimal = Decimal("0.00")
    delivery_fee: Decimal = Decimal("0.00")
    discount: Decimal = Decimal("0.00")
    grand_total: Decimal = Decimal("0.00")
    promotion_id: int | None = None
    promotion_code: str | None = None
    delivery_address: str | None = None
    contact_phone: str | None = None
    order_instructions: str | None = None
    created_at: datetime | None = None


class PlaceOrderDTO(BaseModel):
    """Checkout details supplied by the customer; none of them affect pricing."""
    delivery_address: str | None = None
    contact_phone: str | None = None
    order_instructions: str | None = None
