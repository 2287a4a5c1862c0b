import logging
import secrets
import string
from datetime import datetime

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_commit, session_rollback
from exceptions.cart import EmptyCartException
from exceptions.order import OrderNotFoundException
from exceptions.promotion import PromotionConcurrencyException, PromotionLimitReachedException
from models.order import OrderDTO, PlaceOrderDTO
from repositories.cart import CartRepository
from repositories.order import OrderRepository
from services.cart import CartService
from services.pricing import PricingService
from services.promotion import PromotionService
from services.restaurant_settings import RestaurantSettingsService
from services.usage_ledger import UsageLedgerService
from utils.clock import utc_now, to_naive_utc
from utils.money import ZERO

logger = logging.getLogger(__name__)

BASE36_ALPHABET = string.digits + string.ascii_uppercase


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


class CheckoutService:
    """
    Order placement. The only caller of the usage ledger.
    """

    @staticmethod
    def generate_order_number(now: datetime) -> str:
        """
        ORD-<base36 millisecond timestamp>-<4 random base36 characters>, upper case.

        Example: ORD-LZ3K8Q2A-7XQ2
        """
        epoch_ms = int((now - datetime(1970, 1, 1)).total_seconds() * 1000)
        suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(4))
        return f"ORD-{to_base36(epoch_ms)}-{suffix}"

    @staticmethod
    async def _unique_order_number(now: datetime, session: AsyncSession) -> str:
        order_number = CheckoutService.generate_order_number(now)
        while await OrderRepository.order_number_exists(order_number, session):
            logger.warning(f"[Checkout] Order number collision on {order_number}, regenerating")
            order_number = CheckoutService.generate_order_number(now)
        return order_number

    @staticmethod
    async def place_order(user_id: int,
                          details: PlaceOrderDTO,
                          session: AsyncSession,
                          redis: Redis | None = None,
                          now: datetime | None = None,
                          ledger_timeout: float | None = None) -> OrderDTO:
        """
        Turn the customer's cart into an order.

        Steps:
        1. Recompute the cart with the current settings
        2. Re-evaluate the applied promotion (it must still pass)
        3. Enforce the restaurant's minimum order amount
        4. Consume one promotion usage through the ledger
        5. Copy lines and totals into an order, then clear the cart

        Everything after the ledger call runs in the same transaction, so a
        failure anywhere leaves neither an order nor a consumed usage behind.

        Args:
            user_id: Customer id
            details: Delivery address, phone and instructions
            session: Database session
            redis: Optional Redis client for the settings cache
            now: Reference time (defaults to the current UTC time)
            ledger_timeout: Optional bound in seconds for the usage ledger call

        Returns:
            The placed OrderDTO

        Raises:
            EmptyCartException: If the cart has no lines
            PromotionException subclass: If the applied promotion no longer applies
            PromotionConcurrencyException: If the last usage was taken meanwhile
            BelowMinimumOrderAmountException: If the subtotal is below the minimum order amount
        """
        async with CartService.lock_for(user_id):
            try:
                now = to_naive_utc(now) if now is not None else utc_now()
                settings = await RestaurantSettingsService.current(session, redis)
                cart = await CartService.load_cart(user_id, now, session)
                if not cart.items:
                    raise EmptyCartException(user_id)

                cart = PricingService.recompute(cart.model_copy(update={'discount': ZERO}), settings)
                promotion = None
                if cart.applied_promotion_code is not None:
                    result = await PromotionService.evaluate(cart.applied_promotion_code, cart.subtotal, session, now)
                    promotion = result.promotion
                    cart = PricingService.recompute(cart.model_copy(update={
                        'applied_promotion_id': promotion.id,
                        'discount': result.discount,
                    }), settings)

                RestaurantSettingsService.validate_minimum_order(cart.subtotal, settings)

                if promotion is not None:
                    try:
                        await UsageLedgerService.try_consume(promotion.id, session, ledger_timeout)
                    except PromotionLimitReachedException:
                        logger.warning(
                            f"[Checkout] Promotion {promotion.code} was fully redeemed while user {user_id} checked out"
                        )
                        raise PromotionConcurrencyException(promotion.code, promotion.id)

                order = OrderDTO(
                    order_number=await CheckoutService._unique_order_number(now, session),
                    user_id=user_id,
                    items=cart.items,
                    total_items=cart.total_items,
                    subtotal=cart.subtotal,
                    tax_amount=cart.tax_amount,
                    delivery_fee=cart.delivery_fee,
                    discount=cart.discount,
                    grand_total=cart.grand_total,
                    promotion_id=promotion.id if promotion else None,
                    promotion_code=promotion.code if promotion else None,
                    delivery_address=details.delivery_address,
                    contact_phone=details.contact_phone,
                    order_instructions=details.order_instructions,
                )
                order = await OrderRepository.create(order, session)

                cleared = PricingService.recompute(cart.model_copy(update={
                    'items': [],
                    'applied_promotion_id': None,
                    'applied_promotion_code': None,
                    'discount': ZERO,
                }), settings)
                await CartRepository.save(cleared, session)
                await session_commit(session)
            except Exception:
                await session_rollback(session)
                raise

        logger.info(
            f"[Checkout] Order {order.order_number} placed by user {user_id}: "
            f"{order.total_items} items, grand total {order.grand_total}"
        )
        return order

    @staticmethod
    async def get_order(order_number: str, session: AsyncSession) -> OrderDTO:
        """
        Raises:
            OrderNotFoundException: If no order carries this number
        """
        order = await OrderRepository.get_by_order_number(order_number.strip().upper(), session)
        if order is None:
            raise OrderNotFoundException(order_number)
        return order
