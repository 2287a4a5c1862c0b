"""Cart Cleanup Job

Deletes carts that were not touched for CART_TTL_DAYS (their expires_at
has passed), together with their line items, and drops idle per-customer
cart locks.

Runs periodically as a background task of the API process.
"""

import asyncio
import logging
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

import config
from repositories.cart import CartRepository
from services.cart import CartService
from utils.clock import utc_now
from utils.transaction_manager import TransactionManager

logger = logging.getLogger(__name__)


async def delete_expired_carts(session: AsyncSession, now: datetime | None = None) -> int:
    """
    Delete expired carts in the given session (caller commits).

    Returns:
        Number of carts deleted
    """
    now = now or utc_now()
    removed_count = await CartRepository.delete_expired(now, session)
    released_locks = CartService.release_idle_locks()
    if removed_count or released_locks:
        logger.info(f"[Cart Cleanup] Removed {removed_count} expired cart(s), released {released_locks} idle lock(s)")
    return removed_count


async def cleanup_expired_carts() -> int:
    """Run one cleanup in its own transaction."""
    try:
        async with TransactionManager.atomic_transaction() as session:
            return await delete_expired_carts(session)
    except Exception as e:
        logger.error(f"[Cart Cleanup] ❌ Cleanup failed: {e}", exc_info=True)
        return 0


async def cart_cleanup_scheduler():
    """Scheduler that runs cart cleanups at configured intervals.

    This function runs indefinitely and should be started as a background task.
    """
    interval_seconds = config.CART_CLEANUP_INTERVAL_SECONDS
    logger.info(
        f"[Cart Cleanup] Scheduler started "
        f"(interval: {interval_seconds}s, cart ttl: {config.CART_TTL_DAYS} days)"
    )

    while True:
        try:
            await cleanup_expired_carts()
            logger.debug(
                f"[Cart Cleanup] Next cleanup at "
                f"{(datetime.now() + timedelta(seconds=interval_seconds)).strftime('%Y-%m-%d %H:%M:%S')}"
            )
            await asyncio.sleep(interval_seconds)

        except asyncio.CancelledError:
            logger.info("[Cart Cleanup] Scheduler stopped")
            break
