import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from models.order import Order, OrderDTO
from models.orderItem import OrderItem
from models.cartItem import LineItemDTO

logger = logging.getLogger(__name__)


class OrderRepository:
    @staticmethod
    async def create(order_dto: OrderDTO, session: AsyncSession) -> OrderDTO:
        """
        Insert an order and its line copies.

        Args:
            order_dto: Order built from a recomputed cart (items included)
            session: Database session

        Returns:
            OrderDTO with database ids and created_at filled in
        """
        order = Order(**order_dto.model_dump(exclude={'id', 'items', 'created_at'}))
        session.add(order)
        await session_flush(session)

        for position, item in enumerate(order_dto.items):
            session.add(OrderItem(order_id=order.id, position=position, **item.to_columns()))
        await session_flush(session)

        return await OrderRepository.get_by_id(order.id, session)

    @staticmethod
    async def get_by_id(order_id: int, session: AsyncSession) -> OrderDTO | None:
        stmt = select(Order).where(Order.id == order_id).execution_options(populate_existing=True)
        result = await session_execute(stmt, session)
        order = result.scalar()
        if order is None:
            return None
        return await OrderRepository._with_items(order, session)

    @staticmethod
    async def get_by_order_number(order_number: str, session: AsyncSession) -> OrderDTO | None:
        stmt = select(Order).where(Order.order_number == order_number).execution_options(populate_existing=True)
        result = await session_execute(stmt, session)
        order = result.scalar()
        if order is None:
            return None
        return await OrderRepository._with_items(order, session)

    @staticmethod
    async def order_number_exists(order_number: str, session: AsyncSession) -> bool:
        stmt = select(Order.id).where(Order.order_number == order_number)
        result = await session_execute(stmt, session)
        return result.scalar() is not None

    @staticmethod
    async def _with_items(order: Order, session: AsyncSession) -> OrderDTO:
        stmt = (
            select(OrderItem)
            .where(OrderItem.order_id == order.id)
            .order_by(OrderItem.position.asc())
            .execution_options(populate_existing=True)
        )
        result = await session_execute(stmt, session)
        order_dto = OrderDTO.model_validate(order, from_attributes=True)
        order_dto.items = [LineItemDTO.from_row(row) for row in result.scalars().all()]
        return order_dto
