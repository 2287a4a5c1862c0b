from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from models.restaurant_settings import RestaurantSettings, RestaurantSettingsDTO, SINGLETON_ID


class RestaurantSettingsRepository:
    """
    Repository for the restaurant settings singleton.

    The table holds at most one row (id = SINGLETON_ID).
    """

    @staticmethod
    async def get(session: AsyncSession) -> RestaurantSettingsDTO | None:
        """
        Get the settings row.

        Args:
            session: Database session

        Returns:
            RestaurantSettingsDTO, or None if the singleton was never created
        """
        stmt = select(RestaurantSettings).where(RestaurantSettings.id == SINGLETON_ID).execution_options(populate_existing=True)
        result = await session_execute(stmt, session)
        settings = result.scalar()
        return RestaurantSettingsDTO.model_validate(settings, from_attributes=True) if settings else None

    @staticmethod
    async def create(settings_dto: RestaurantSettingsDTO, session: AsyncSession) -> RestaurantSettingsDTO:
        """
        Insert the singleton row.

        Raises IntegrityError if another session created it first.
        """
        settings = RestaurantSettings(id=SINGLETON_ID, **settings_dto.model_dump(exclude={'updated_at'}))
        session.add(settings)
        await session_flush(session)
        await session.refresh(settings)
        return RestaurantSettingsDTO.model_validate(settings, from_attributes=True)

    @staticmethod
    async def update(values: dict, session: AsyncSession) -> None:
        """
        Update fields of the singleton row.

        Args:
            values: Column name -> new value
            session: Database session
        """
        stmt = (
            update(RestaurantSettings)
            .where(RestaurantSettings.id == SINGLETON_ID)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await session_execute(stmt, session)
