# cart is the live quote of one customer: its totals are always re-derived from the
# line items and the restaurant settings currently in force. One cart per user
# (unique user_id); it expires CART_TTL_DAYS after the last mutation.
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel
from sqlalchemy import Column, Integer, ForeignKey, Numeric, DateTime, String, CheckConstraint, func

from models.base import Base
from models.cartItem import LineItemDTO


class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, nullable=False, unique=True, index=True)
    total_items = Column(Integer, nullable=False, default=0)
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(10, 2), nullable=False, default=0)
    delivery_fee = Column(Numeric(10, 2), nullable=False, default=0)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    grand_total = Column(Numeric(10, 2), nullable=False, default=0)
    applied_promotion_id = Column(Integer, ForeignKey("promotions.id", ondelete="SET NULL"), nullable=True)
    applied_promotion_code = Column(String, nullable=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint('subtotal >= 0', name='check_cart_subtotal_non_negative'),
        CheckConstraint('discount >= 0', name='check_cart_discount_non_negative'),
        CheckConstraint('grand_total >= 0', name='check_cart_grand_total_non_negative'),
    )


class CartDTO(BaseModel):
    id: int | None = None
    user_id: int | None = None
    items: list[LineItemDTO] = []
    total_items: int = 0
    subtotal: Decimal = Decimal("0.00")
    tax_amount: Decimal = Decimal("0.00")
    delivery_fee: Decimal = Decimal("0.00")
    discount: Decimal = Decimal("0.00")
    grand_total: Decimal = Decimal("0.00")
    applied_promotion_id: int | None = None
    applied_promotion_code: str | None = None
    expires_at: datetime | None = None
    updated_at: datetime | None = None
    # Set when a mutation detached a promotion that no longer applies
    promotion_notice: str | None = None
