from datetime import datetime

from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from models.promotion import Promotion, PromotionDTO


class PromotionRepository:
    """Repository for promotion lookups and the usage counter."""

    @staticmethod
    async def get_by_code(code: str, session: AsyncSession) -> PromotionDTO | None:
        """
        Get a promotion by code (case-insensitive).

        Args:
            code: Code as typed by the customer
            session: Database session

        Returns:
            PromotionDTO, or None if no promotion carries this code
        """
        stmt = select(Promotion).where(Promotion.code == code.strip().upper()).execution_options(populate_existing=True)
        result = await session_execute(stmt, session)
        promotion = result.scalar()
        return PromotionDTO.model_validate(promotion, from_attributes=True) if promotion else None

    @staticmethod
    async def get_by_id(promotion_id: int, session: AsyncSession) -> PromotionDTO | None:
        stmt = select(Promotion).where(Promotion.id == promotion_id).execution_options(populate_existing=True)
        result = await session_execute(stmt, session)
        promotion = result.scalar()
        return PromotionDTO.model_validate(promotion, from_attributes=True) if promotion else None

    @staticmethod
    async def create(promotion_dto: PromotionDTO, session: AsyncSession) -> PromotionDTO:
        promotion = Promotion(**promotion_dto.model_dump(exclude={'id', 'created_at'}))
        session.add(promotion)
        await session_flush(session)
        await session.refresh(promotion)
        return PromotionDTO.model_validate(promotion, from_attributes=True)

    @staticmethod
    async def set_active(promotion_id: int, is_active: bool, session: AsyncSession) -> None:
        stmt = (
            update(Promotion)
            .where(Promotion.id == promotion_id)
            .values(is_active=is_active)
            .execution_options(synchronize_session=False)
        )
        await session_execute(stmt, session)

    @staticmethod
    async def get_redeemable(now: datetime, session: AsyncSession) -> list[PromotionDTO]:
        """
        Get promotions a customer could redeem right now.

        Active, inside the validity window and not used up; newest first.

        Args:
            now: Naive UTC reference time
            session: Database session

        Returns:
            List of PromotionDTO
        """
        stmt = (
            select(Promotion)
            .where(Promotion.is_active == True)
            .where(Promotion.valid_from <= now)
            .where(Promotion.valid_until >= now)
            .where(or_(Promotion.usage_limit.is_(None), Promotion.usage_count < Promotion.usage_limit))
            .order_by(Promotion.created_at.desc(), Promotion.id.desc())
            .execution_options(populate_existing=True)
        )
        result = await session_execute(stmt, session)
        return [PromotionDTO.model_validate(p, from_attributes=True) for p in result.scalars().all()]

    @staticmethod
    async def increment_usage_if_available(promotion_id: int, session: AsyncSession) -> bool:
        """
        Atomically increment usage_count if the cap allows it.

        Single conditional UPDATE (compare-and-increment): the cap check and
        the increment happen in one statement, so two concurrent checkouts can
        never both pass the check and overshoot usage_limit.

        Args:
            promotion_id: ID of the promotion
            session: Database session

        Returns:
            True if the counter was incremented, False if the cap was reached
            (or the promotion does not exist)
        """
        stmt = (
            update(Promotion)
            .where(Promotion.id == promotion_id)
            .where(or_(Promotion.usage_limit.is_(None), Promotion.usage_count < Promotion.usage_limit))
            .values(usage_count=Promotion.usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        result = await session_execute(stmt, session)
        return result.rowcount == 1
