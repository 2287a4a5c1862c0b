# a line item is one entry of a cart: a quantity of one catalog product with the
# chosen options. The catalog facts (name, image, category, base price) are copied
# into snapshot_* columns when the line is added, so later menu price changes never
# alter an existing cart. product_id is a weak reference used for lookups only.
from decimal import Decimal

from pydantic import BaseModel
from sqlalchemy import Column, Integer, ForeignKey, CheckConstraint, String, Numeric, JSON, Enum as SQLEnum

from enums.pizza_size import PizzaSize
from enums.topping_category import ToppingCategory
from models.base import Base


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)  # display order only
    product_id = Column(String, nullable=False)

    snapshot_name = Column(String, nullable=False)
    snapshot_image_url = Column(String, nullable=True)
    snapshot_category = Column(String, nullable=False)
    snapshot_base_price = Column(Numeric(10, 2), nullable=False)

    quantity = Column(Integer, nullable=False, default=1)
    size = Column(SQLEnum(PizzaSize), nullable=True)
    selected_price = Column(Numeric(10, 2), nullable=False)
    # [{"name": "Olives", "category": "vegetables", "price": "35.00"}, ...]
    toppings = Column(JSON, nullable=False, default=list)
    special_instructions = Column(String(200), nullable=False, default="")
    line_subtotal = Column(Numeric(10, 2), nullable=False, default=0)

    __table_args__ = (
        CheckConstraint('quantity >= 1 AND quantity <= 50', name='check_cart_item_quantity_range'),
        CheckConstraint('selected_price >= 0', name='check_cart_item_price_non_negative'),
        CheckConstraint('line_subtotal >= 0', name='check_cart_item_subtotal_non_negative'),
    )


class ProductSnapshotDTO(BaseModel):
    """Catalog facts frozen at add-time."""
    name: str
    image_url: str | None = None
    category: str
    base_price: Decimal = Decimal("0.00")


class ToppingDTO(BaseModel):
    name: str
    category: ToppingCategory
    price: Decimal = Decimal("0.00")


class LineItemDTO(BaseModel):
    id: int | None = None
    product_id: str
    snapshot: ProductSnapshotDTO
    quantity: int = 1
    size: PizzaSize | None = None
    selected_price: Decimal
    toppings: list[ToppingDTO] = []
    special_instructions: str = ""
    line_subtotal: Decimal = Decimal("0.00")  # derived by PricingService, never set by callers

    @staticmethod
    def from_row(row) -> 'LineItemDTO':
        """Build a DTO from a cart_items/order_items row (shared snapshot columns)."""
        return LineItemDTO(
            id=row.id,
            product_id=row.product_id,
            snapshot=ProductSnapshotDTO(
                name=row.snapshot_name,
                image_url=row.snapshot_image_url,
                category=row.snapshot_category,
                base_price=row.snapshot_base_price,
            ),
            quantity=row.quantity,
            size=row.size,
            selected_price=row.selected_price,
            toppings=[ToppingDTO.model_validate(topping) for topping in row.toppings or []],
            special_instructions=row.special_instructions or "",
            line_subtotal=row.line_subtotal,
        )

    def to_columns(self) -> dict:
        """Column values shared by cart_items and order_items."""
        return {
            "product_id": self.product_id,
            "snapshot_name": self.snapshot.name,
            "snapshot_image_url": self.snapshot.image_url,
            "snapshot_category": self.snapshot.category,
            "snapshot_base_price": self.snapshot.base_price,
            "quantity": self.quantity,
            "size": self.size,
            "selected_price": self.selected_price,
            "toppings": [topping.model_dump(mode="json") for topping in self.toppings],
            "special_instructions": self.special_instructions,
            "line_subtotal": self.line_subtotal,
        }
