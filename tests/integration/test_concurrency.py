"""
Concurrent hold requests against a small stock.

Each request is its own unit of work on its own connection, started
together with asyncio.gather.
"""
import asyncio
from datetime import timedelta

import pytest

from flashhold.core.database import get_db_session
from flashhold.core.exceptions import InsufficientStock
from flashhold.core.utils import utcnow
from flashhold.models import Product
from flashhold.services.hold_expiry import expiry_reaper, get_hold_stats
from flashhold.services.hold_service import hold_manager
from flashhold.services.order_service import order_manager

pytestmark = pytest.mark.anyio


async def _try_hold(user_id, product_id, quantity=1):
    try:
        async with get_db_session() as db:
            return await hold_manager.create_hold(db, user_id, product_id, quantity)
    except InsufficientStock:
        return None


async def test_no_oversell_under_concurrent_holds(make_user, make_product, fetch):
    product_id = await make_product(stock=10)
    user_ids = [await make_user(name=f"Buyer {i}") for i in range(15)]

    results = await asyncio.gather(*[_try_hold(uid, product_id) for uid in user_ids])

    created = [r for r in results if r is not None]
    assert len(created) == 10
    assert len({r.hold_id for r in created}) == 10

    product = await fetch(Product, product_id)
    assert product.reserved == 10
    assert product.stock == 10

    async with get_db_session() as db:
        stats = await get_hold_stats(db)
    assert stats["active_holds"] == 10

    reaped = await expiry_reaper.run_once(now=utcnow() + timedelta(minutes=3))

    assert reaped.expired == 10
    product = await fetch(Product, product_id)
    assert product.reserved == 0
    assert product.stock == 10


async def test_mixed_quantities_never_exceed_stock(make_user, make_product, fetch):
    product_id = await make_product(stock=7)
    user_id = await make_user()

    results = await asyncio.gather(*[_try_hold(user_id, product_id, q) for q in (3, 3, 3, 2, 1)])

    held = sum(q for q, r in zip((3, 3, 3, 2, 1), results) if r is not None)
    product = await fetch(Product, product_id)
    assert product.reserved == held
    assert held <= 7


async def test_concurrent_checkout_and_reaper_on_same_hold(make_user, make_product, fetch):
    user_id = await make_user()
    product_id = await make_product(stock=5)
    now = utcnow()
    async with get_db_session() as db:
        created = await hold_manager.create_hold(db, user_id, product_id, 2, now=now)

    async def checkout():
        async with get_db_session() as db:
            return await order_manager.checkout(db, created.hold_id, user_id, now=now)

    # reaper sees the hold as lapsed, checkout still considers it valid
    order, reaped = await asyncio.gather(
        checkout(),
        expiry_reaper.run_once(now=now + timedelta(minutes=3)),
        return_exceptions=True,
    )

    product = await fetch(Product, product_id)
    if isinstance(order, Exception):
        # reaper won: released, nothing reserved
        assert reaped.expired == 1
        assert product.reserved == 0
    else:
        # checkout won: reservation stays with the order
        assert reaped.expired == 0
        assert product.reserved == 2
