from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flashhold.models import Hold, HoldStatus


async def create_hold(
    db: AsyncSession,
    user_id: int,
    product_id: int,
    quantity: int,
    expires_at: datetime,
) -> Hold:
    hold = Hold(
        user_id=user_id,
        product_id=product_id,
        quantity=quantity,
        status=HoldStatus.ACTIVE,
        expires_at=expires_at,
    )
    db.add(hold)
    await db.flush()
    return hold


async def get_hold(db: AsyncSession, hold_id: int) -> Optional[Hold]:
    result = await db.execute(select(Hold).where(Hold.id == hold_id))
    return result.scalar_one_or_none()


async def find_active_for_user_for_update(
    db: AsyncSession,
    hold_id: int,
    user_id: int,
    now: datetime,
) -> Optional[Hold]:
    """Lock a hold the user may still check out: theirs, active, unexpired."""
    result = await db.execute(
        select(Hold)
        .where(
            Hold.id == hold_id,
            Hold.user_id == user_id,
            Hold.status == HoldStatus.ACTIVE,
            Hold.expires_at > now,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def find_active_for_update(db: AsyncSession, hold_id: int) -> Optional[Hold]:
    """Lock a hold only if it is still active (used by the reaper)."""
    result = await db.execute(
        select(Hold)
        .where(Hold.id == hold_id, Hold.status == HoldStatus.ACTIVE)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_hold_for_update(db: AsyncSession, hold_id: int) -> Optional[Hold]:
    result = await db.execute(
        select(Hold)
        .where(Hold.id == hold_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def find_lapsed_active(db: AsyncSession, now: datetime, limit: Optional[int] = None) -> List[Hold]:
    """Active holds whose expiry has passed, oldest first. No lock taken."""
    query = (
        select(Hold)
        .where(Hold.status == HoldStatus.ACTIVE, Hold.expires_at <= now)
        .order_by(Hold.expires_at, Hold.id)
    )
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())
