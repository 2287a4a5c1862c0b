import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

import config
from exceptions.promotion import PromotionLimitReachedException, PromotionNotFoundException
from repositories.promotion import PromotionRepository
from utils.transaction_manager import TransactionManager

logger = logging.getLogger(__name__)


class UsageLedgerService:
    """
    Consumes promotion usages.

    The cap check and the increment are a single conditional UPDATE, so
    concurrent checkouts can never push usage_count past usage_limit.
    Called only from checkout; previews never reach this service.
    """

    @staticmethod
    @TransactionManager.with_retry(
        max_attempts=config.STORAGE_RETRY_ATTEMPTS,
        delay_base=config.STORAGE_RETRY_DELAY_BASE
    )
    async def _consume(promotion_id: int, session: AsyncSession) -> None:
        if await PromotionRepository.increment_usage_if_available(promotion_id, session):
            return

        promotion = await PromotionRepository.get_by_id(promotion_id, session)
        if promotion is None:
            raise PromotionNotFoundException(promotion_id=promotion_id)
        raise PromotionLimitReachedException(promotion.code, promotion_id)

    @staticmethod
    async def try_consume(promotion_id: int, session: AsyncSession, timeout: float | None = None) -> None:
        """
        Consume one usage of a promotion.

        The increment joins the caller's transaction; the caller commits it
        together with whatever the usage pays for (the order). Transient
        storage contention is retried with exponential backoff.

        Args:
            promotion_id: ID of the promotion
            session: Database session (must not hold other uncommitted writes,
                retries roll it back)
            timeout: Optional bound in seconds for the whole call

        Raises:
            PromotionLimitReachedException: If the cap has been reached
            PromotionNotFoundException: If the promotion does not exist
            asyncio.TimeoutError: If timeout elapsed
        """
        consume = UsageLedgerService._consume(promotion_id, session=session)
        if timeout is not None:
            await asyncio.wait_for(consume, timeout)
        else:
            await consume
        logger.info(f"[UsageLedger] Consumed one usage of promotion {promotion_id}")
