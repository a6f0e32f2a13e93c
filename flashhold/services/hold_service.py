"""
HoldManager - time-bounded reservations

create_hold() runs as one unit of work:
1. Lock the product row (FOR UPDATE)
2. StockLedger.reserve() - availability check + reserved increment
3. Insert an ACTIVE hold expiring TTL minutes from now

The product lock covers both the check and the insert, so the operation
is all-or-nothing. It is the only lock taken on this path.
"""
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from flashhold.core.config import settings
from flashhold.models import Hold
from flashhold.repositories import holds as hold_repo
from flashhold.services.stock_ledger import StockLedger, stock_ledger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HoldCreated:
    hold_id: int
    expires_at: datetime


class HoldManager:
    def __init__(self, ledger: StockLedger = stock_ledger, ttl_minutes: Optional[int] = None):
        self.ledger = ledger
        self.ttl_minutes = ttl_minutes or settings.HOLD_TTL_MINUTES

    async def create_hold(
        self,
        db: AsyncSession,
        user_id: int,
        product_id: int,
        quantity: int,
        now: Optional[datetime] = None,
    ) -> HoldCreated:
        """
        Reserve quantity units of product_id for user_id.

        Must be called inside a unit of work (get_db_session); the caller's
        commit publishes the reservation and the hold together.

        Raises:
            ProductNotFound: unknown product
            InsufficientStock: not enough units available
        """
        start_time = time.time()

        await self.ledger.lock_product(db, product_id)
        await self.ledger.reserve(db, product_id, quantity)

        expires_at = Hold.create_expiry(self.ttl_minutes, now=now)
        hold = await hold_repo.create_hold(db, user_id, product_id, quantity, expires_at)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"HOLD_METRIC: hold_created "
            f"hold_id={hold.id} "
            f"user_id={user_id} "
            f"product_id={product_id} "
            f"quantity={quantity} "
            f"duration_ms={duration_ms:.2f}"
        )

        return HoldCreated(hold_id=hold.id, expires_at=expires_at)


hold_manager = HoldManager()
