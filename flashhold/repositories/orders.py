from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flashhold.models import Order, OrderStatus


async def create_order(
    db: AsyncSession,
    user_id: int,
    product_id: int,
    hold_id: int,
    quantity: int,
    price: Decimal,
) -> Order:
    order = Order(
        user_id=user_id,
        product_id=product_id,
        hold_id=hold_id,
        quantity=quantity,
        price=price,
        status=OrderStatus.PENDING,
    )
    db.add(order)
    await db.flush()
    return order


async def get_order(db: AsyncSession, order_id: int) -> Optional[Order]:
    result = await db.execute(select(Order).where(Order.id == order_id))
    return result.scalar_one_or_none()


async def get_order_for_update(db: AsyncSession, order_id: int) -> Optional[Order]:
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def find_by_hold(db: AsyncSession, hold_id: int) -> Optional[Order]:
    result = await db.execute(select(Order).where(Order.hold_id == hold_id))
    return result.scalar_one_or_none()


async def find_by_payment_reference(db: AsyncSession, idempotency_key: str) -> Optional[Order]:
    result = await db.execute(select(Order).where(Order.payment_reference == idempotency_key))
    return result.scalar_one_or_none()
