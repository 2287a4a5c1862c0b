import logging
from decimal import Decimal

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

import config
from db import session_commit
from exceptions.order import BelowMinimumOrderAmountException
from exceptions.settings import InvalidSettingsException
from models.restaurant_settings import RestaurantSettingsDTO, PublicSettingsDTO
from repositories.restaurant_settings import RestaurantSettingsRepository
from utils.money import round2, to_decimal
from utils.transaction_manager import TransactionManager

logger = logging.getLogger(__name__)

CACHE_KEY = "restaurant_settings"

# field -> (minimum, maximum or None)
NUMERIC_RANGES = {
    'tax_rate': (Decimal("0"), Decimal("100")),
    'delivery_fee': (Decimal("0"), None),
    'free_delivery_threshold': (Decimal("0"), None),
    'min_order_amount': (Decimal("0"), None),
}
TEXT_FIELDS = ('name', 'phone', 'email', 'address')


class RestaurantSettingsService:
    """
    Settings Provider.

    Every cart recomputation reads current(). With a Redis client the
    singleton is cached for SETTINGS_CACHE_TTL_SECONDS and the cache entry
    is dropped on every update.
    """

    @staticmethod
    @TransactionManager.with_retry()
    async def _get_or_create(session: AsyncSession) -> RestaurantSettingsDTO:
        settings = await RestaurantSettingsRepository.get(session)
        if settings is not None:
            return settings

        # Losing the insert race raises IntegrityError; the retry reads the winner's row
        settings = await RestaurantSettingsRepository.create(RestaurantSettingsDTO(), session)
        await session_commit(session)
        logger.info("[Settings] Created restaurant settings with defaults")
        return settings

    @staticmethod
    async def current(session: AsyncSession, redis: Redis | None = None) -> RestaurantSettingsDTO:
        """
        Return the settings singleton, creating it with defaults if absent.

        Must be called before the caller's first write in the transaction:
        creating the singleton commits the session.

        Args:
            session: Database session
            redis: Optional Redis client used as a read-through cache

        Returns:
            RestaurantSettingsDTO currently in force
        """
        if redis is not None:
            cached = await redis.get(CACHE_KEY)
            if cached is not None:
                return RestaurantSettingsDTO.model_validate_json(cached)

        settings = await RestaurantSettingsService._get_or_create(session=session)

        if redis is not None:
            await redis.set(CACHE_KEY, settings.model_dump_json(), ex=config.SETTINGS_CACHE_TTL_SECONDS)
        return settings

    @staticmethod
    def validate_update(values: dict) -> dict:
        """
        Validate a partial settings update.

        Unknown fields are rejected; numeric fields must lie in range and are
        rounded to two places; text fields must not be blank.

        Raises:
            InvalidSettingsException: On the first invalid field
        """
        validated = {}
        for field, value in values.items():
            if field in NUMERIC_RANGES:
                try:
                    amount = to_decimal(value)
                except (ArithmeticError, ValueError, TypeError):
                    raise InvalidSettingsException(field, "must be a number")
                if not amount.is_finite():
                    raise InvalidSettingsException(field, "must be a finite number")
                minimum, maximum = NUMERIC_RANGES[field]
                if amount < minimum:
                    raise InvalidSettingsException(field, f"cannot be less than {minimum}")
                if maximum is not None and amount > maximum:
                    raise InvalidSettingsException(field, f"cannot be greater than {maximum}")
                validated[field] = round2(amount)
            elif field in TEXT_FIELDS:
                text = str(value).strip() if value is not None else ""
                if not text:
                    raise InvalidSettingsException(field, "cannot be empty")
                validated[field] = text
            else:
                raise InvalidSettingsException(field, "unknown setting")
        return validated

    @staticmethod
    async def update(values: dict, session: AsyncSession, redis: Redis | None = None) -> RestaurantSettingsDTO:
        """
        Apply a validated partial update to the singleton.

        Open carts pick up the new values on their next recomputation.

        Args:
            values: Field name -> new value (only the fields to change)
            session: Database session
            redis: Optional Redis client; the cached entry is invalidated

        Returns:
            Updated RestaurantSettingsDTO

        Raises:
            InvalidSettingsException: If a value is out of range
        """
        validated = RestaurantSettingsService.validate_update(values)
        await RestaurantSettingsService._get_or_create(session=session)

        if validated:
            await RestaurantSettingsRepository.update(validated, session)
            await session_commit(session)
            logger.info(f"[Settings] Updated fields: {', '.join(sorted(validated))}")

        if redis is not None:
            await redis.delete(CACHE_KEY)

        return await RestaurantSettingsRepository.get(session)

    @staticmethod
    async def get_public(session: AsyncSession, redis: Redis | None = None) -> PublicSettingsDTO:
        settings = await RestaurantSettingsService.current(session, redis)
        return PublicSettingsDTO(
            min_order_amount=settings.min_order_amount,
            tax_rate=settings.tax_rate,
            delivery_fee=settings.delivery_fee,
            free_delivery_threshold=settings.free_delivery_threshold,
        )

    @staticmethod
    def validate_minimum_order(subtotal: Decimal, settings: RestaurantSettingsDTO) -> None:
        """
        Raises:
            BelowMinimumOrderAmountException: If subtotal < min_order_amount
        """
        min_order_amount = round2(settings.min_order_amount)
        if round2(subtotal) < min_order_amount:
            raise BelowMinimumOrderAmountException(
                round2(subtotal), min_order_amount, config.CURRENCY_SYMBOL
            )
