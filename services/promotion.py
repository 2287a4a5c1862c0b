import logging
import re
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

import config
from db import session_commit
from enums.discount_kind import DiscountKind
from exceptions.promotion import (
    PromotionNotFoundException,
    PromotionInactiveException,
    PromotionNotStartedException,
    PromotionExpiredException,
    PromotionLimitReachedException,
    BelowMinimumOrderValueException,
    InvalidPromotionDataException,
)
from models.promotion import PromotionDTO, DiscountResultDTO
from repositories.promotion import PromotionRepository
from utils.clock import utc_now, to_naive_utc
from utils.money import ZERO, round2, to_decimal, format_amount

logger = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r'^[A-Z0-9]{3,20}$')


class PromotionService:
    """
    Promotion Evaluator plus the small amount of administration needed to
    seed and switch promotions.

    Evaluation is read-only: usage_count is consumed only by
    UsageLedgerService at order placement.
    """

    @staticmethod
    def normalize_code(code: str) -> str:
        return (code or "").strip().upper()

    @staticmethod
    def calculate_discount(promotion: PromotionDTO, cart_subtotal: Decimal, now: datetime) -> DiscountResultDTO:
        """
        Run the evaluation steps after lookup, short-circuiting on the first failure.

        Order: inactive, not started, expired, limit reached, below minimum,
        then the discount itself (percentage capped at max_discount_cap, or
        flat), clamped to the subtotal and rounded.

        Args:
            promotion: Promotion to evaluate
            cart_subtotal: Cart subtotal (before tax and delivery)
            now: Naive UTC reference time

        Returns:
            DiscountResultDTO with discount and final_amount

        Raises:
            PromotionException subclass describing the first failed check
        """
        subtotal = round2(cart_subtotal)

        if not promotion.is_active:
            raise PromotionInactiveException(promotion.code)
        if now < promotion.valid_from:
            raise PromotionNotStartedException(promotion.code)
        if now > promotion.valid_until:
            raise PromotionExpiredException(promotion.code)
        if promotion.usage_limit is not None and promotion.usage_count >= promotion.usage_limit:
            raise PromotionLimitReachedException(promotion.code, promotion.id)

        min_order_value = round2(promotion.min_order_value)
        if subtotal < min_order_value:
            raise BelowMinimumOrderValueException(
                promotion.code,
                shortfall=round2(min_order_value - subtotal),
                min_order_value=min_order_value,
                currency_symbol=config.CURRENCY_SYMBOL
            )

        if promotion.discount_kind == DiscountKind.PERCENTAGE:
            raw_discount = subtotal * to_decimal(promotion.discount_value) / Decimal(100)
            if promotion.max_discount_cap is not None:
                raw_discount = min(raw_discount, to_decimal(promotion.max_discount_cap))
        else:
            raw_discount = to_decimal(promotion.discount_value)

        discount = round2(min(raw_discount, subtotal))
        final_amount = round2(subtotal - discount)

        return DiscountResultDTO(
            promotion=promotion,
            discount=discount,
            final_amount=final_amount,
            message=f"You saved {format_amount(discount, config.CURRENCY_SYMBOL)}!"
        )

    @staticmethod
    async def evaluate(code: str,
                       cart_subtotal: Decimal,
                       session: AsyncSession,
                       now: datetime | None = None) -> DiscountResultDTO:
        """
        Evaluate a promotion code against a cart subtotal.

        Safe to call repeatedly for previews: never consumes usage.

        Args:
            code: Code as typed (case-insensitive, surrounding whitespace ignored)
            cart_subtotal: Cart subtotal
            session: Database session
            now: Reference time (defaults to the current UTC time)

        Returns:
            DiscountResultDTO

        Raises:
            PromotionNotFoundException: If no promotion carries the code
            PromotionException subclass: see calculate_discount()
        """
        normalized = PromotionService.normalize_code(code)
        promotion = await PromotionRepository.get_by_code(normalized, session) if normalized else None
        if promotion is None:
            raise PromotionNotFoundException(code=normalized)

        now = to_naive_utc(now) if now is not None else utc_now()
        return PromotionService.calculate_discount(promotion, cart_subtotal, now)

    @staticmethod
    def validate_promotion_data(promotion: PromotionDTO) -> PromotionDTO:
        """
        Validate and normalize an administrator's promotion definition.

        Raises:
            InvalidPromotionDataException: On the first inconsistent field
        """
        code = PromotionService.normalize_code(promotion.code)
        if not CODE_PATTERN.match(code):
            raise InvalidPromotionDataException(
                'code', "must be 3-20 characters, letters and numbers only"
            )

        value = to_decimal(promotion.discount_value)
        if value <= 0:
            raise InvalidPromotionDataException('discount_value', "must be greater than 0")
        if promotion.discount_kind == DiscountKind.PERCENTAGE and value > 100:
            raise InvalidPromotionDataException('discount_value', "percentage cannot exceed 100")
        if promotion.discount_kind == DiscountKind.PERCENTAGE and value != value.to_integral_value():
            raise InvalidPromotionDataException('discount_value', "percentage must be a whole number")

        if promotion.max_discount_cap is not None:
            if promotion.discount_kind != DiscountKind.PERCENTAGE:
                raise InvalidPromotionDataException(
                    'max_discount_cap', "only allowed for percentage promotions"
                )
            if to_decimal(promotion.max_discount_cap) <= 0:
                raise InvalidPromotionDataException('max_discount_cap', "must be greater than 0")

        if to_decimal(promotion.min_order_value) < 0:
            raise InvalidPromotionDataException('min_order_value', "cannot be negative")

        valid_from = to_naive_utc(promotion.valid_from)
        valid_until = to_naive_utc(promotion.valid_until)
        if valid_until <= valid_from:
            raise InvalidPromotionDataException('valid_until', "must be after valid_from")

        if promotion.usage_limit is not None and promotion.usage_limit < 1:
            raise InvalidPromotionDataException('usage_limit', "must be at least 1")

        return promotion.model_copy(update={
            'code': code,
            'title': promotion.title.strip(),
            'description': promotion.description.strip(),
            'discount_value': round2(value),
            'max_discount_cap': round2(promotion.max_discount_cap) if promotion.max_discount_cap is not None else None,
            'min_order_value': round2(promotion.min_order_value),
            'valid_from': valid_from,
            'valid_until': valid_until,
            'usage_count': 0,
        })

    @staticmethod
    async def create(promotion: PromotionDTO, session: AsyncSession) -> PromotionDTO:
        """
        Create a promotion after validation.

        Raises:
            InvalidPromotionDataException: If a field is invalid or the code is taken
        """
        promotion = PromotionService.validate_promotion_data(promotion)

        if await PromotionRepository.get_by_code(promotion.code, session) is not None:
            raise InvalidPromotionDataException('code', f"promotion code {promotion.code} already exists")

        created = await PromotionRepository.create(promotion, session)
        await session_commit(session)
        logger.info(
            f"[Promotion] Created {created.code} ({created.discount_kind.value} {created.discount_value}, "
            f"limit={created.usage_limit})"
        )
        return created

    @staticmethod
    async def toggle_active(promotion_id: int, session: AsyncSession) -> PromotionDTO:
        """
        Flip is_active of a promotion.

        Raises:
            PromotionNotFoundException: If the promotion does not exist
        """
        promotion = await PromotionRepository.get_by_id(promotion_id, session)
        if promotion is None:
            raise PromotionNotFoundException(promotion_id=promotion_id)

        await PromotionRepository.set_active(promotion_id, not promotion.is_active, session)
        await session_commit(session)
        logger.info(f"[Promotion] {promotion.code} is_active={not promotion.is_active}")
        return promotion.model_copy(update={'is_active': not promotion.is_active})

    @staticmethod
    async def get_active(session: AsyncSession, now: datetime | None = None) -> list[PromotionDTO]:
        """Promotions a customer could redeem right now, newest first."""
        now = to_naive_utc(now) if now is not None else utc_now()
        return await PromotionRepository.get_redeemable(now, session)
