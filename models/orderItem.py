from sqlalchemy import Column, Integer, ForeignKey, String, Numeric, JSON, Index, Enum as SQLEnum

from enums.pizza_size import PizzaSize
from models.base import Base


class OrderItem(Base):
    """Copy of a cart line at placement time (same snapshot columns as cart_items)."""
    __tablename__ = 'order_items'

    __table_args__ = (
        Index('ix_order_items_order_id', 'order_id'),
    )

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    product_id = Column(String, nullable=False)

    snapshot_name = Column(String, nullable=False)
    snapshot_image_url = Column(String, nullable=True)
    snapshot_category = Column(String, nullable=False)
    snapshot_base_price = Column(Numeric(10, 2), nullable=False)

    quantity = Column(Integer, nullable=False)
    size = Column(SQLEnum(PizzaSize), nullable=True)
    selected_price = Column(Numeric(10, 2), nullable=False)
    toppings = Column(JSON, nullable=False, default=list)
    special_instructions = Column(String(200), nullable=False, default="")
    line_subtotal = Column(Numeric(10, 2), nullable=False)
