"""
API router for the customer apps.

Thin mapping of HTTP requests onto CartService, PromotionService,
CheckoutService and RestaurantSettingsService. Customer identity arrives
in the X-User-Id header, set by the authenticating gateway in front of
this service.
"""

import logging
import uuid
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Request, HTTPException, Header
from pydantic import BaseModel, Field

from db import get_db_session
from enums.pizza_size import PizzaSize
from exceptions import RestaurantException
from models.cart import CartDTO
from models.cartItem import LineItemDTO, ProductSnapshotDTO, ToppingDTO
from models.order import OrderDTO, PlaceOrderDTO
from models.promotion import PromotionDTO
from models.restaurant_settings import PublicSettingsDTO
from services.cart import CartService
from services.checkout import CheckoutService
from services.promotion import PromotionService
from services.restaurant_settings import RestaurantSettingsService
from utils.error_handler import handle_service_error, handle_unexpected_error

logger = logging.getLogger(__name__)

api_router = APIRouter(prefix="/api", tags=["api"])


def generate_correlation_id() -> str:
    """Generate unique correlation ID for request tracing."""
    return f"{datetime.now().strftime('%Y%m%d-%H%M%S')}-{uuid.uuid4().hex[:8]}"


def get_redis(request: Request):
    """Settings cache client, None when the app runs without Redis."""
    return getattr(request.app.state, "redis", None)


class AddItemPayload(BaseModel):
    """A line as sent by the menu screen, catalog snapshot included."""
    product_id: str = Field(..., min_length=1)
    snapshot: ProductSnapshotDTO
    quantity: int = Field(1, description="Clamped to 50; below 1 is rejected")
    size: PizzaSize | None = None
    selected_price: Decimal = Field(..., description="Unit price for the chosen size")
    toppings: list[ToppingDTO] = []
    special_instructions: str = ""


class UpdateQuantityPayload(BaseModel):
    quantity: int = Field(..., description="0 or less removes the line")


class PromotionCodePayload(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)


class ValidatePromotionPayload(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    cart_subtotal: Decimal = Field(..., ge=0)


class DiscountPreviewResponse(BaseModel):
    code: str
    title: str
    discount: Decimal
    final_amount: Decimal
    message: str


class PlaceOrderPayload(BaseModel):
    delivery_address: str | None = Field(None, max_length=1000)
    contact_phone: str | None = Field(None, max_length=30)
    order_instructions: str | None = Field(None, max_length=500)


async def run_service_call(correlation_id: str, call):
    """
    Execute a service coroutine factory inside a database session.

    Service exceptions become 4xx responses, anything else a logged 500.
    """
    async with get_db_session() as session:
        try:
            return await call(session)
        except RestaurantException as e:
            logger.info(f"[{correlation_id}] {type(e).__name__}: {e.message}")
            raise handle_service_error(e)
        except HTTPException:
            raise
        except Exception as e:
            raise handle_unexpected_error(e, correlation_id)


# ---------------------------------------------------------------- cart

@api_router.get("/cart", response_model=CartDTO)
async def get_cart(request: Request, x_user_id: int = Header(..., gt=0)):
    """Current cart of the customer, priced with the settings in force now."""
    correlation_id = generate_correlation_id()
    redis = get_redis(request)
    return await run_service_call(
        correlation_id,
        lambda session: CartService.get_cart(x_user_id, session, redis)
    )


@api_router.post("/cart/items", response_model=CartDTO)
async def add_cart_item(request: Request, payload: AddItemPayload, x_user_id: int = Header(..., gt=0)):
    """
    Add a line to the cart.

    Returns:
        200: Recomputed cart
        400: Malformed line (code: SIZE_REQUIRED_FOR_PIZZA, INVALID_QUANTITY, ...)
    """
    correlation_id = generate_correlation_id()
    logger.info(f"[{correlation_id}] User {x_user_id} adds {payload.quantity} x {payload.product_id}")
    line = LineItemDTO(**payload.model_dump())
    redis = get_redis(request)
    return await run_service_call(
        correlation_id,
        lambda session: CartService.add_item(x_user_id, line, session, redis)
    )


@api_router.patch("/cart/items/{item_id}", response_model=CartDTO)
async def update_cart_item(request: Request,
                           item_id: int,
                           payload: UpdateQuantityPayload,
                           x_user_id: int = Header(..., gt=0)):
    correlation_id = generate_correlation_id()
    redis = get_redis(request)
    return await run_service_call(
        correlation_id,
        lambda session: CartService.update_item_quantity(x_user_id, item_id, payload.quantity, session, redis)
    )


@api_router.delete("/cart/items/{item_id}", response_model=CartDTO)
async def remove_cart_item(request: Request, item_id: int, x_user_id: int = Header(..., gt=0)):
    correlation_id = generate_correlation_id()
    redis = get_redis(request)
    return await run_service_call(
        correlation_id,
        lambda session: CartService.remove_item(x_user_id, item_id, session, redis)
    )


@api_router.delete("/cart", response_model=CartDTO)
async def clear_cart(request: Request, x_user_id: int = Header(..., gt=0)):
    correlation_id = generate_correlation_id()
    redis = get_redis(request)
    return await run_service_call(
        correlation_id,
        lambda session: CartService.clear_cart(x_user_id, session, redis)
    )


@api_router.post("/cart/promotion", response_model=CartDTO)
async def apply_promotion(request: Request, payload: PromotionCodePayload, x_user_id: int = Header(..., gt=0)):
    """
    Apply a promotion code to the cart.

    Returns:
        200: Cart with discount applied
        400: Promotion does not apply (code: INACTIVE, EXPIRED, BELOW_MINIMUM, ...)
        404: Unknown code
    """
    correlation_id = generate_correlation_id()
    redis = get_redis(request)
    return await run_service_call(
        correlation_id,
        lambda session: CartService.apply_promotion(x_user_id, payload.code, session, redis)
    )


@api_router.delete("/cart/promotion", response_model=CartDTO)
async def remove_promotion(request: Request, x_user_id: int = Header(..., gt=0)):
    correlation_id = generate_correlation_id()
    redis = get_redis(request)
    return await run_service_call(
        correlation_id,
        lambda session: CartService.remove_promotion(x_user_id, session, redis)
    )


# ---------------------------------------------------------------- promotions

@api_router.post("/promotions/validate", response_model=DiscountPreviewResponse)
async def validate_promotion(payload: ValidatePromotionPayload):
    """Preview a code against a subtotal. Never consumes usage."""
    correlation_id = generate_correlation_id()

    async def call(session):
        result = await PromotionService.evaluate(payload.code, payload.cart_subtotal, session)
        return DiscountPreviewResponse(
            code=result.promotion.code,
            title=result.promotion.title,
            discount=result.discount,
            final_amount=result.final_amount,
            message=result.message,
        )

    return await run_service_call(correlation_id, call)


@api_router.get("/promotions/active", response_model=list[PromotionDTO])
async def get_active_promotions():
    correlation_id = generate_correlation_id()
    return await run_service_call(correlation_id, PromotionService.get_active)


# ---------------------------------------------------------------- orders

@api_router.post("/orders", response_model=OrderDTO, status_code=201)
async def place_order(request: Request, payload: PlaceOrderPayload, x_user_id: int = Header(..., gt=0)):
    """
    Place an order from the customer's cart.

    Returns:
        201: Order placed, cart cleared
        400: Empty cart, below minimum order amount or promotion no longer valid
        409: Promotion was fully redeemed by another customer meanwhile
    """
    correlation_id = generate_correlation_id()
    logger.info(f"[{correlation_id}] User {x_user_id} places an order")
    details = PlaceOrderDTO(**payload.model_dump())
    redis = get_redis(request)
    return await run_service_call(
        correlation_id,
        lambda session: CheckoutService.place_order(x_user_id, details, session, redis)
    )


@api_router.get("/orders/{order_number}", response_model=OrderDTO)
async def get_order(order_number: str, x_user_id: int = Header(..., gt=0)):
    correlation_id = generate_correlation_id()

    async def call(session):
        order = await CheckoutService.get_order(order_number, session)
        if order.user_id != x_user_id:
            logger.warning(f"[{correlation_id}] User {x_user_id} requested order {order_number} of another user")
            raise HTTPException(status_code=404, detail={
                "code": "ORDER_NOT_FOUND",
                "message": f"Order {order_number} not found",
                "details": {"order_number": order_number},
            })
        return order

    return await run_service_call(correlation_id, call)


# ---------------------------------------------------------------- settings

@api_router.get("/settings/public", response_model=PublicSettingsDTO)
async def get_public_settings(request: Request):
    correlation_id = generate_correlation_id()
    redis = get_redis(request)
    return await run_service_call(
        correlation_id,
        lambda session: RestaurantSettingsService.get_public(session, redis)
    )
