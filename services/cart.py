import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

import config
from db import session_commit, session_rollback
from enums.line_item_error_code import LineItemErrorCode
from exceptions.cart import CartItemNotFoundException, LineItemValidationException
from exceptions.promotion import PromotionException
from models.cart import CartDTO
from models.cartItem import LineItemDTO
from models.restaurant_settings import RestaurantSettingsDTO
from repositories.cart import CartRepository
from services.pricing import PricingService, MAX_LINE_QUANTITY
from services.promotion import PromotionService
from services.restaurant_settings import RestaurantSettingsService
from utils.clock import utc_now
from utils.money import ZERO, round2

logger = logging.getLogger(__name__)


class CartService:
    """
    Inbound cart commands.

    Every mutation loads the cart, applies the change to a copy, re-evaluates
    the applied promotion, recomputes the totals and persists the result in
    one transaction. Mutations of the same customer's cart are serialized;
    different customers never wait on each other.
    """

    # One lock per customer, mutations of one cart never interleave
    _cart_locks: Dict[int, asyncio.Lock] = {}

    @staticmethod
    def lock_for(user_id: int) -> asyncio.Lock:
        return CartService._cart_locks.setdefault(user_id, asyncio.Lock())

    @staticmethod
    def _is_idle(lock: asyncio.Lock) -> bool:
        # A just released lock can still have a woken waiter about to take it
        return not lock.locked() and not lock._waiters

    @staticmethod
    def release_idle_locks() -> int:
        """Forget locks nobody holds or waits for; returns how many were dropped."""
        idle = [user_id for user_id, lock in CartService._cart_locks.items() if CartService._is_idle(lock)]
        for user_id in idle:
            del CartService._cart_locks[user_id]
        return len(idle)

    @staticmethod
    async def load_cart(user_id: int, now: datetime, session: AsyncSession) -> CartDTO:
        """Load the customer's cart, replacing an expired one with a fresh cart."""
        cart = await CartRepository.get_by_user_id(user_id, session)
        if cart is not None and cart.expires_at is not None and cart.expires_at <= now:
            logger.info(f"[Cart] Cart of user {user_id} expired at {cart.expires_at}, starting a new one")
            await CartRepository.delete_by_user_id(user_id, session)
            cart = None
        if cart is None:
            cart = await CartRepository.get_or_create(
                user_id, now + timedelta(days=config.CART_TTL_DAYS), session
            )
        return cart

    @staticmethod
    async def price(cart: CartDTO,
                    settings: RestaurantSettingsDTO,
                    session: AsyncSession,
                    now: datetime) -> CartDTO:
        """
        Recompute a cart, re-evaluating its applied promotion first.

        A promotion that no longer applies (expired, subtotal dropped below its
        minimum, ...) is detached and the reason is put in promotion_notice.
        """
        cart = PricingService.recompute(cart.model_copy(update={'discount': ZERO}), settings)

        if cart.applied_promotion_code is None:
            return cart

        try:
            result = await PromotionService.evaluate(cart.applied_promotion_code, cart.subtotal, session, now)
        except PromotionException as e:
            logger.info(
                f"[Cart] Detached promotion {cart.applied_promotion_code} from cart {cart.id}: {e.code.value}"
            )
            return cart.model_copy(update={
                'applied_promotion_id': None,
                'applied_promotion_code': None,
                'promotion_notice': e.message,
            })

        return PricingService.recompute(cart.model_copy(update={
            'applied_promotion_id': result.promotion.id,
            'discount': result.discount,
        }), settings)

    @staticmethod
    async def _mutate(user_id: int,
                      session: AsyncSession,
                      redis: Redis | None,
                      mutation: Callable[[CartDTO], CartDTO]) -> CartDTO:
        async with CartService.lock_for(user_id):
            try:
                now = utc_now()
                settings = await RestaurantSettingsService.current(session, redis)
                cart = await CartService.load_cart(user_id, now, session)
                cart = await CartService.price(mutation(cart), settings, session, now)
                cart = cart.model_copy(update={'expires_at': now + timedelta(days=config.CART_TTL_DAYS)})
                saved = await CartRepository.save(cart, session)
                await session_commit(session)
                return saved
            except Exception:
                await session_rollback(session)
                raise

    @staticmethod
    async def get_cart(user_id: int, session: AsyncSession, redis: Redis | None = None) -> CartDTO:
        """
        Return the customer's cart priced with the settings in force now.

        Reading does not extend the cart's expiry. A customer without a live
        cart gets an unsaved empty cart (id None); the first mutation creates
        the stored one.
        """
        async with CartService.lock_for(user_id):
            try:
                now = utc_now()
                settings = await RestaurantSettingsService.current(session, redis)
                cart = await CartRepository.get_by_user_id(user_id, session)
                if cart is None or (cart.expires_at is not None and cart.expires_at <= now):
                    return PricingService.recompute(CartDTO(user_id=user_id), settings)

                cart = await CartService.price(cart, settings, session, now)
                saved = await CartRepository.save(cart, session)
                await session_commit(session)
                return saved
            except Exception:
                await session_rollback(session)
                raise

    @staticmethod
    def _prepare_new_line(line: LineItemDTO) -> LineItemDTO:
        """
        Normalize an incoming line before its first pricing.

        Prices are rounded to cents here so the stored line prices exactly
        as it did when it was added.
        """
        if line.quantity < 1:
            raise LineItemValidationException(
                LineItemErrorCode.INVALID_QUANTITY,
                f"Quantity must be between 1 and {MAX_LINE_QUANTITY}",
                line.product_id
            )
        line = line.model_copy(update={
            'id': None,
            'quantity': min(line.quantity, MAX_LINE_QUANTITY),
            'special_instructions': line.special_instructions.strip(),
            'selected_price': round2(line.selected_price),
            'snapshot': line.snapshot.model_copy(update={'base_price': round2(line.snapshot.base_price)}),
            'toppings': [topping.model_copy(update={'price': round2(topping.price)}) for topping in line.toppings],
        })
        PricingService.validate_line_item(line)
        return line

    @staticmethod
    async def add_item(user_id: int,
                       line: LineItemDTO,
                       session: AsyncSession,
                       redis: Redis | None = None) -> CartDTO:
        """
        Add a line to the customer's cart.

        A line with the same product, size and toppings (in any order) is
        merged: quantities add and the result is clamped to MAX_LINE_QUANTITY.
        The existing line keeps its special instructions.

        Args:
            user_id: Customer id
            line: Line with its catalog snapshot and chosen options
            session: Database session
            redis: Optional Redis client for the settings cache

        Returns:
            Recomputed CartDTO

        Raises:
            LineItemValidationException: If the line is malformed
        """
        line = CartService._prepare_new_line(line)

        def mutation(cart: CartDTO) -> CartDTO:
            items = list(cart.items)
            for index, existing in enumerate(items):
                if PricingService.is_same_configuration(existing, line):
                    quantity = min(existing.quantity + line.quantity, MAX_LINE_QUANTITY)
                    items[index] = existing.model_copy(update={'quantity': quantity})
                    break
            else:
                items.append(line)
            return cart.model_copy(update={'items': items})

        cart = await CartService._mutate(user_id, session, redis, mutation)
        logger.info(f"[Cart] User {user_id} added {line.quantity} x {line.product_id} ({line.snapshot.name})")
        return cart

    @staticmethod
    async def update_item_quantity(user_id: int,
                                   cart_item_id: int,
                                   quantity: int,
                                   session: AsyncSession,
                                   redis: Redis | None = None) -> CartDTO:
        """
        Set the quantity of a line.

        Zero or less removes the line; above MAX_LINE_QUANTITY is clamped.

        Raises:
            CartItemNotFoundException: If the line is not in the customer's cart
        """

        def mutation(cart: CartDTO) -> CartDTO:
            if not any(item.id == cart_item_id for item in cart.items):
                raise CartItemNotFoundException(cart_item_id)
            if quantity <= 0:
                items = [item for item in cart.items if item.id != cart_item_id]
            else:
                items = [
                    item.model_copy(update={'quantity': min(quantity, MAX_LINE_QUANTITY)})
                    if item.id == cart_item_id else item
                    for item in cart.items
                ]
            return cart.model_copy(update={'items': items})

        return await CartService._mutate(user_id, session, redis, mutation)

    @staticmethod
    async def remove_item(user_id: int,
                          cart_item_id: int,
                          session: AsyncSession,
                          redis: Redis | None = None) -> CartDTO:
        """
        Raises:
            CartItemNotFoundException: If the line is not in the customer's cart
        """

        def mutation(cart: CartDTO) -> CartDTO:
            if not any(item.id == cart_item_id for item in cart.items):
                raise CartItemNotFoundException(cart_item_id)
            return cart.model_copy(update={'items': [item for item in cart.items if item.id != cart_item_id]})

        return await CartService._mutate(user_id, session, redis, mutation)

    @staticmethod
    async def clear_cart(user_id: int, session: AsyncSession, redis: Redis | None = None) -> CartDTO:
        """Remove every line and the applied promotion."""

        def mutation(cart: CartDTO) -> CartDTO:
            return cart.model_copy(update={
                'items': [],
                'applied_promotion_id': None,
                'applied_promotion_code': None,
            })

        return await CartService._mutate(user_id, session, redis, mutation)

    @staticmethod
    async def apply_promotion(user_id: int,
                              code: str,
                              session: AsyncSession,
                              redis: Redis | None = None) -> CartDTO:
        """
        Apply a promotion code to the customer's cart.

        The code is evaluated against the current subtotal and must pass now;
        usage is not consumed until the order is placed. Replaces any
        previously applied promotion.

        Raises:
            PromotionException subclass: If the code does not apply
        """
        async with CartService.lock_for(user_id):
            try:
                now = utc_now()
                settings = await RestaurantSettingsService.current(session, redis)
                cart = await CartService.load_cart(user_id, now, session)
                cart = PricingService.recompute(cart.model_copy(update={'discount': ZERO}), settings)

                result = await PromotionService.evaluate(code, cart.subtotal, session, now)

                cart = PricingService.recompute(cart.model_copy(update={
                    'applied_promotion_id': result.promotion.id,
                    'applied_promotion_code': result.promotion.code,
                    'discount': result.discount,
                    'expires_at': now + timedelta(days=config.CART_TTL_DAYS),
                }), settings)
                saved = await CartRepository.save(cart, session)
                await session_commit(session)
            except Exception:
                await session_rollback(session)
                raise

        logger.info(f"[Cart] User {user_id} applied promotion {result.promotion.code} (discount {result.discount})")
        return saved

    @staticmethod
    async def remove_promotion(user_id: int, session: AsyncSession, redis: Redis | None = None) -> CartDTO:

        def mutation(cart: CartDTO) -> CartDTO:
            return cart.model_copy(update={
                'applied_promotion_id': None,
                'applied_promotion_code': None,
            })

        return await CartService._mutate(user_id, session, redis, mutation)
