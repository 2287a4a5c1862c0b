from datetime import datetime

from sqlalchemy import select, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute, session_flush
from models.cart import Cart, CartDTO
from models.cartItem import CartItem, LineItemDTO


class CartRepository:
    @staticmethod
    async def get_by_user_id(user_id: int, session: AsyncSession) -> CartDTO | None:
        stmt = select(Cart).where(Cart.user_id == user_id).execution_options(populate_existing=True)
        cart = await session_execute(stmt, session)
        cart = cart.scalar()
        if cart is None:
            return None
        items = await CartRepository.get_items(cart.id, session)
        cart_dto = CartDTO.model_validate(cart, from_attributes=True)
        cart_dto.items = items
        return cart_dto

    @staticmethod
    async def get_or_create(user_id: int, expires_at: datetime, session: AsyncSession) -> CartDTO:
        cart = await CartRepository.get_by_user_id(user_id, session)
        if cart is None:
            cart = Cart(user_id=user_id, expires_at=expires_at)
            session.add(cart)
            await session_flush(session)
            await session.refresh(cart)
            return CartDTO.model_validate(cart, from_attributes=True)
        return cart

    @staticmethod
    async def get_items(cart_id: int, session: AsyncSession) -> list[LineItemDTO]:
        stmt = (
            select(CartItem)
            .where(CartItem.cart_id == cart_id)
            .order_by(CartItem.position.asc(), CartItem.id.asc())
            .execution_options(populate_existing=True)
        )
        result = await session_execute(stmt, session)
        return [LineItemDTO.from_row(row) for row in result.scalars().all()]

    @staticmethod
    async def save(cart: CartDTO, session: AsyncSession) -> CartDTO:
        """
        Persist a recomputed cart: totals on the cart row, lines synced by id.

        Lines without an id are inserted, lines whose id is no longer present
        are deleted, the rest are updated in place. Returns the cart with the
        ids of newly inserted lines filled in.

        Args:
            cart: Cart whose totals were derived by PricingService.recompute()
            session: Database session

        Returns:
            CartDTO with persisted line ids
        """
        cart_update_stmt = (
            update(Cart)
            .where(Cart.id == cart.id)
            .values(
                total_items=cart.total_items,
                subtotal=cart.subtotal,
                tax_amount=cart.tax_amount,
                delivery_fee=cart.delivery_fee,
                discount=cart.discount,
                grand_total=cart.grand_total,
                applied_promotion_id=cart.applied_promotion_id,
                applied_promotion_code=cart.applied_promotion_code,
                expires_at=cart.expires_at,
            )
            .execution_options(synchronize_session=False)
        )
        await session_execute(cart_update_stmt, session)

        kept_ids = [item.id for item in cart.items if item.id is not None]
        delete_stmt = delete(CartItem).where(CartItem.cart_id == cart.id)
        if kept_ids:
            delete_stmt = delete_stmt.where(CartItem.id.not_in(kept_ids))
        await session_execute(delete_stmt, session)

        saved_items = []
        for position, item in enumerate(cart.items):
            columns = item.to_columns()
            if item.id is None:
                row = CartItem(cart_id=cart.id, position=position, **columns)
                session.add(row)
                await session_flush(session)
                saved_items.append(item.model_copy(update={"id": row.id}))
            else:
                item_update_stmt = (
                    update(CartItem)
                    .where(CartItem.id == item.id, CartItem.cart_id == cart.id)
                    .values(position=position, **columns)
                    .execution_options(synchronize_session=False)
                )
                await session_execute(item_update_stmt, session)
                saved_items.append(item)

        return cart.model_copy(update={"items": saved_items})

    @staticmethod
    async def delete_by_user_id(user_id: int, session: AsyncSession) -> None:
        cart_ids = select(Cart.id).where(Cart.user_id == user_id)
        await session_execute(delete(CartItem).where(CartItem.cart_id.in_(cart_ids)), session)
        await session_execute(delete(Cart).where(Cart.user_id == user_id), session)

    @staticmethod
    async def delete_expired(now: datetime, session: AsyncSession) -> int:
        """
        Delete carts whose expires_at has passed, together with their lines.

        Args:
            now: Naive UTC reference time
            session: Database session

        Returns:
            Number of carts deleted
        """
        count_stmt = select(func.count(Cart.id)).where(Cart.expires_at < now)
        expired_count = (await session_execute(count_stmt, session)).scalar()
        if not expired_count:
            return 0

        expired_ids = select(Cart.id).where(Cart.expires_at < now)
        await session_execute(delete(CartItem).where(CartItem.cart_id.in_(expired_ids)), session)
        await session_execute(delete(Cart).where(Cart.expires_at < now), session)
        return expired_count
