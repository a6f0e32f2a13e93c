"""
Row locks are taken order -> hold -> product on every path.

SQLite serialises whole transactions, so a lock-order inversion would only
deadlock on PostgreSQL. These tests record the order in which each path
asks for its row locks instead.
"""
from datetime import timedelta

import pytest

from flashhold.core.database import get_db_session
from flashhold.core.utils import utcnow
from flashhold.repositories import holds as hold_repo
from flashhold.repositories import orders as order_repo
from flashhold.services.hold_expiry import ExpiryReaper, ReaperStats
from flashhold.services.hold_service import hold_manager
from flashhold.services.order_service import order_manager
from flashhold.services.payment_settlement import (
    PaymentNotification,
    PaymentOutcome,
    PaymentSettlementProcessor,
)
from flashhold.services.stock_ledger import StockLedger

pytestmark = pytest.mark.anyio

RANK = {"order": 0, "hold": 1, "product": 2}


class RecordingLedger(StockLedger):
    def __init__(self, locks):
        super().__init__()
        self.locks = locks

    async def lock_product(self, db, product_id):
        self.locks.append("product")
        return await super().lock_product(db, product_id)


@pytest.fixture
def locks(monkeypatch):
    taken = []

    def recording(name, func):
        async def wrapper(*args, **kwargs):
            taken.append(name)
            return await func(*args, **kwargs)
        return wrapper

    monkeypatch.setattr(hold_repo, "find_active_for_update", recording("hold", hold_repo.find_active_for_update))
    monkeypatch.setattr(hold_repo, "get_hold_for_update", recording("hold", hold_repo.get_hold_for_update))
    monkeypatch.setattr(order_repo, "get_order_for_update", recording("order", order_repo.get_order_for_update))
    return taken


def assert_ordered(taken):
    ranks = [RANK[name] for name in taken]
    assert ranks == sorted(ranks), taken


async def test_reaper_locks_hold_before_product(locks, make_user, make_product):
    user_id = await make_user()
    product_id = await make_product(stock=5)
    async with get_db_session() as db:
        await hold_manager.create_hold(db, user_id, product_id, 2, now=utcnow() - timedelta(minutes=3))

    stats = await ExpiryReaper(ledger=RecordingLedger(locks)).run_once()

    assert stats.expired == 1
    assert locks == ["hold", "product"]


async def test_reaper_skipping_a_consumed_hold_never_locks_product(locks, make_user, make_product):
    user_id = await make_user()
    product_id = await make_product(stock=5)
    now = utcnow()
    async with get_db_session() as db:
        created = await hold_manager.create_hold(db, user_id, product_id, 2, now=now)
    async with get_db_session() as db:
        await order_manager.checkout(db, created.hold_id, user_id, now=now)

    # hold picked as a candidate just before the checkout committed
    stats = ReaperStats()
    async with get_db_session() as db:
        await ExpiryReaper(ledger=RecordingLedger(locks))._reap(db, created.hold_id, stats)

    assert stats.skipped == 1
    assert locks == ["hold"]


async def test_failed_settlement_locks_order_then_hold_then_product(locks, make_user, make_product):
    user_id = await make_user()
    product_id = await make_product(stock=5)
    async with get_db_session() as db:
        created = await hold_manager.create_hold(db, user_id, product_id, 2)
    async with get_db_session() as db:
        result = await order_manager.checkout(db, created.hold_id, user_id)

    processor = PaymentSettlementProcessor(ledger=RecordingLedger(locks))
    async with get_db_session() as db:
        await processor.handle(db, PaymentNotification(
            order_id=result.order_id,
            outcome=PaymentOutcome.FAILED,
            transaction_id="txn-1",
            idempotency_key="key-1",
        ))

    assert locks == ["order", "hold", "product"]
    assert_ordered(locks)


async def test_paid_settlement_locks_order_then_product(locks, make_user, make_product):
    user_id = await make_user()
    product_id = await make_product(stock=5)
    async with get_db_session() as db:
        created = await hold_manager.create_hold(db, user_id, product_id, 2)
    async with get_db_session() as db:
        result = await order_manager.checkout(db, created.hold_id, user_id)

    processor = PaymentSettlementProcessor(ledger=RecordingLedger(locks))
    async with get_db_session() as db:
        await processor.handle(db, PaymentNotification(
            order_id=result.order_id,
            outcome=PaymentOutcome.PAID,
            transaction_id="txn-1",
            idempotency_key="key-1",
        ))

    assert locks == ["order", "product"]
    assert_ordered(locks)
