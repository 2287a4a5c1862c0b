import asyncio
import logging
from contextlib import asynccontextmanager
from functools import wraps
from typing import AsyncGenerator, Optional

from sqlalchemy.exc import OperationalError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

import config
from db import get_db_session, session_commit, session_rollback
from utils.clock import utc_now

logger = logging.getLogger(__name__)

# Errors worth another attempt: "database is locked", lost primary key races
RETRYABLE_ERRORS = (OperationalError, IntegrityError)


class TransactionManager:
    """
    Session scopes for work that runs outside a request (jobs) and the
    retry policy for storage contention.
    """

    # Transactions running longer than this (seconds) are logged as slow
    SLOW_TRANSACTION_SECONDS = 30

    MAX_ATTEMPTS = config.STORAGE_RETRY_ATTEMPTS
    RETRY_DELAY_BASE = config.STORAGE_RETRY_DELAY_BASE

    @staticmethod
    @asynccontextmanager
    async def atomic_transaction(timeout: Optional[int] = None) -> AsyncGenerator[AsyncSession, None]:
        """
        Open a session, commit when the block finishes, roll back if it raises.

        Usage:
            async with TransactionManager.atomic_transaction() as session:
                removed = await CartRepository.delete_expired(utc_now(), session)
        """
        slow_after = timeout or TransactionManager.SLOW_TRANSACTION_SECONDS

        async with get_db_session() as session:
            started_at = utc_now()
            try:
                yield session
                await session_commit(session)
            except Exception as e:
                logger.info(f"[Transaction] Rolled back: {type(e).__name__}: {e}")
                await session_rollback(session)
                raise

            elapsed = (utc_now() - started_at).total_seconds()
            if elapsed > slow_after:
                logger.warning(f"[Transaction] Took {elapsed:.2f}s (limit {slow_after}s)")
            else:
                logger.debug(f"[Transaction] Committed in {elapsed:.2f}s")

    @staticmethod
    def with_retry(max_attempts: Optional[int] = None, delay_base: Optional[float] = None):
        """
        Retry an async storage operation on OperationalError and IntegrityError.

        Waits delay_base, then twice as long each time. A `session` passed as a
        keyword argument is rolled back before the next attempt, so the
        decorated operation has to be the first write of its transaction.

        Args:
            max_attempts: Attempts in total, the first one included (default STORAGE_RETRY_ATTEMPTS)
            delay_base: First backoff in seconds (default STORAGE_RETRY_DELAY_BASE)
        """
        attempts = max_attempts if max_attempts is not None else TransactionManager.MAX_ATTEMPTS
        base = delay_base if delay_base is not None else TransactionManager.RETRY_DELAY_BASE

        def decorator(func):
            @wraps(func)
            async def wrapper(*args, **kwargs):
                attempt = 1
                while True:
                    try:
                        return await func(*args, **kwargs)
                    except RETRYABLE_ERRORS as e:
                        if attempt >= attempts:
                            logger.error(f"[Retry] {func.__name__} gave up after {attempt} attempts: {e}")
                            raise

                        session = kwargs.get("session")
                        if session is not None:
                            await session_rollback(session)

                        delay = base * (2 ** (attempt - 1))
                        logger.warning(
                            f"[Retry] {func.__name__} attempt {attempt} failed ({type(e).__name__}), "
                            f"retrying in {delay:.2f}s"
                        )
                        await asyncio.sleep(delay)
                        attempt += 1

            return wrapper
        return decorator
