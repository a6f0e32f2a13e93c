"""
Hold Expiry Service (the reaper)

Reclaims holds whose TTL lapsed without a checkout. Run on a fixed interval
by jobs.hold_expiry_scheduler (in the API process) or run_cron.py.

Each lapsed hold is its own transaction:
1. Re-lock the hold filtered by id + status=ACTIVE
   (miss -> a concurrent checkout or reaper run got there first; skip)
2. An order references the hold -> mark USED, reservation stays in place
3. Otherwise -> mark EXPIRED, then lock the product and release the
   reserved units

Locks are taken hold before product, the same order as checkout (whose
orders INSERT takes a key-share lock on the product) and settlement.

A failure on one hold is logged and counted; the sweep moves on. Overlapping
runs are safe because of the status=ACTIVE filter in step 1.
"""
import logging
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from flashhold.core.database import get_db_session
from flashhold.core.utils import utcnow
from flashhold.models import Hold, HoldStatus
from flashhold.repositories import holds as hold_repo
from flashhold.repositories import orders as order_repo
from flashhold.services.stock_ledger import StockLedger, stock_ledger

logger = logging.getLogger(__name__)


@dataclass
class ReaperStats:
    found: int = 0
    expired: int = 0
    marked_used: int = 0
    skipped: int = 0
    errors: int = 0
    units_released: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class ExpiryReaper:
    def __init__(
        self,
        ledger: StockLedger = stock_ledger,
        session_scope: Callable[[], AbstractAsyncContextManager] = get_db_session,
        batch_size: Optional[int] = None,
    ):
        self.ledger = ledger
        self.session_scope = session_scope
        self.batch_size = batch_size

    async def run_once(self, now: Optional[datetime] = None) -> ReaperStats:
        """Sweep every ACTIVE hold with expires_at <= now."""
        now = now or utcnow()
        stats = ReaperStats()

        async with self.session_scope() as db:
            lapsed = await hold_repo.find_lapsed_active(db, now, limit=self.batch_size)
            candidates = [hold.id for hold in lapsed]

        stats.found = len(candidates)
        if not candidates:
            logger.debug("No lapsed holds to reclaim")
            return stats

        logger.info(f"Expiring holds: {stats.found} lapsed")

        for hold_id in candidates:
            try:
                async with self.session_scope() as db:
                    await self._reap(db, hold_id, stats)
            except Exception as e:
                stats.errors += 1
                logger.error(f"Failed to reclaim hold {hold_id}: {e}", exc_info=True)

        logger.info(
            f"Hold expiry completed: found={stats.found} expired={stats.expired} "
            f"marked_used={stats.marked_used} skipped={stats.skipped} "
            f"errors={stats.errors} units_released={stats.units_released}"
        )
        return stats

    async def _reap(self, db: AsyncSession, hold_id: int, stats: ReaperStats) -> None:
        hold = await hold_repo.find_active_for_update(db, hold_id)
        if hold is None:
            stats.skipped += 1
            return

        existing = await order_repo.find_by_hold(db, hold.id)
        if existing is not None:
            hold.transition_to(HoldStatus.USED)
            await db.flush()
            stats.marked_used += 1
            logger.info(f"Hold {hold.id} marked as used during expiry check (order {existing.id})")
            return

        hold.transition_to(HoldStatus.EXPIRED)
        await self.ledger.release(db, hold.product_id, hold.quantity)
        stats.expired += 1
        stats.units_released += hold.quantity
        logger.info(
            f"Hold {hold.id} expired and stock released "
            f"(product_id={hold.product_id}, quantity={hold.quantity}, user_id={hold.user_id})"
        )


async def get_hold_stats(db: AsyncSession, now: Optional[datetime] = None) -> dict:
    """
    Hold statistics for monitoring.
    """
    now = now or utcnow()
    soon = now + timedelta(minutes=1)
    active = Hold.status == HoldStatus.ACTIVE

    stmt = select(
        func.count(Hold.id).filter(and_(active, Hold.expires_at > now)),
        func.count(Hold.id).filter(and_(active, Hold.expires_at <= now)),
        func.count(Hold.id).filter(and_(active, Hold.expires_at > now, Hold.expires_at <= soon)),
        func.count(Hold.id).filter(Hold.status == HoldStatus.USED),
        func.count(Hold.id).filter(Hold.status == HoldStatus.EXPIRED),
    )

    active_count, lapsed, expiring, used, expired = (await db.execute(stmt)).one()

    return {
        "active_holds": int(active_count or 0),
        "lapsed_awaiting_reap": int(lapsed or 0),
        "expiring_within_1min": int(expiring or 0),
        "used_holds": int(used or 0),
        "expired_holds": int(expired or 0),
    }


expiry_reaper = ExpiryReaper()
