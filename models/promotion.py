from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel
from sqlalchemy import Column, Integer, String, Boolean, Numeric, DateTime, CheckConstraint, Index, func, Enum as SQLEnum

from enums.discount_kind import DiscountKind
from models.base import Base


class Promotion(Base):
    """
    A redeemable discount: flat coupons and themed percentage offers alike.

    The only field customers ever change is usage_count, and only through
    the usage ledger's conditional increment at order placement.
    """
    __tablename__ = 'promotions'

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(20), nullable=False, unique=True)  # stored upper-cased
    title = Column(String(100), nullable=False, default="")
    description = Column(String(500), nullable=False, default="")
    discount_kind = Column(SQLEnum(DiscountKind), nullable=False)
    discount_value = Column(Numeric(10, 2), nullable=False)
    max_discount_cap = Column(Numeric(10, 2), nullable=True)  # percentage only
    min_order_value = Column(Numeric(10, 2), nullable=False, default=0)
    valid_from = Column(DateTime, nullable=False)
    valid_until = Column(DateTime, nullable=False)
    usage_limit = Column(Integer, nullable=True)  # NULL = unlimited
    usage_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=func.now())

    __table_args__ = (
        CheckConstraint('discount_value > 0', name='check_promotion_value_positive'),
        CheckConstraint('min_order_value >= 0', name='check_promotion_min_order_non_negative'),
        CheckConstraint('usage_count >= 0', name='check_promotion_usage_non_negative'),
        CheckConstraint('usage_limit IS NULL OR usage_limit >= 1', name='check_promotion_limit_positive'),
        CheckConstraint('valid_until > valid_from', name='check_promotion_window'),
        Index('ix_promotions_active_window', 'is_active', 'valid_from', 'valid_until'),
    )


class PromotionDTO(BaseModel):
    id: int | None = None
    code: str
    title: str = ""
    description: str = ""
    discount_kind: DiscountKind
    discount_value: Decimal
    max_discount_cap: Decimal | None = None
    min_order_value: Decimal = Decimal("0.00")
    valid_from: datetime
    valid_until: datetime
    usage_limit: int | None = None
    usage_count: int = 0
    is_active: bool = True
    created_at: datetime | None = None


class DiscountResultDTO(BaseModel):
    """Successful evaluation of a promotion against a cart subtotal."""
    promotion: PromotionDTO
    discount: Decimal
    final_amount: Decimal
    message: str
