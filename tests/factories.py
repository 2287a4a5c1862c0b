"""
Builders for line items and promotions shared by the test modules.
"""

from datetime import timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from enums.discount_kind import DiscountKind
from enums.pizza_size import PizzaSize
from enums.topping_category import ToppingCategory
from models.cartItem import LineItemDTO, ProductSnapshotDTO, ToppingDTO
from models.promotion import PromotionDTO
from repositories.promotion import PromotionRepository
from utils.clock import utc_now


def make_pizza_line(product_id: str = "margherita",
                    size: PizzaSize | None = PizzaSize.LARGE,
                    price: str = "500",
                    quantity: int = 1,
                    toppings: list[ToppingDTO] | None = None,
                    special_instructions: str = "") -> LineItemDTO:
    return LineItemDTO(
        product_id=product_id,
        snapshot=ProductSnapshotDTO(
            name=product_id.replace("-", " ").title(),
            image_url=f"https://cdn.example.com/{product_id}.jpg",
            category="pizza",
            base_price=Decimal("300"),
        ),
        quantity=quantity,
        size=size,
        selected_price=Decimal(price),
        toppings=toppings or [],
        special_instructions=special_instructions,
    )


def make_beverage_line(product_id: str = "cola",
                       price: str = "50",
                       quantity: int = 1) -> LineItemDTO:
    return LineItemDTO(
        product_id=product_id,
        snapshot=ProductSnapshotDTO(
            name=product_id.title(),
            category="beverages",
            base_price=Decimal(price),
        ),
        quantity=quantity,
        selected_price=Decimal(price),
    )


def make_topping(name: str = "Olives",
                 category: ToppingCategory = ToppingCategory.VEGETABLES,
                 price: str = "50") -> ToppingDTO:
    return ToppingDTO(name=name, category=category, price=Decimal(price))


def make_promotion(code: str = "SAVE20", **overrides) -> PromotionDTO:
    now = utc_now()
    values = dict(
        code=code,
        title="Test offer",
        discount_kind=DiscountKind.PERCENTAGE,
        discount_value=Decimal("20"),
        min_order_value=Decimal("0"),
        valid_from=now - timedelta(days=1),
        valid_until=now + timedelta(days=30),
    )
    values.update(overrides)
    return PromotionDTO(**values)


async def seed_promotion(session: AsyncSession, code: str = "SAVE20", **overrides) -> PromotionDTO:
    """Insert a promotion directly, bypassing admin validation."""
    promotion = await PromotionRepository.create(make_promotion(code, **overrides), session)
    await session.commit()
    return promotion
