"""
Pytest configuration and fixtures for Flash Hold tests.

Tests run against a throwaway SQLite file (aiosqlite). Every transaction on
it starts with BEGIN IMMEDIATE, so concurrent units of work serialise the
same way they do on PostgreSQL row locks.
"""
import os
import tempfile
import uuid
from decimal import Decimal

import pytest

# Set test environment before importing app modules
_DB_DIR = tempfile.mkdtemp(prefix="flashhold-tests-")
os.environ["ENVIRONMENT"] = "development"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'flashhold.db')}"
os.environ["SECRET_KEY"] = "test-secret-key-for-unit-tests-only"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["HOLD_EXPIRY_ENABLED"] = "false"
os.environ["PAYMENT_WEBHOOK_SECRET"] = ""

from flashhold import models  # noqa: E402  (registers tables on Base.metadata)
from flashhold.core.database import Base, engine, get_db_session  # noqa: E402
from flashhold.core.product_cache import product_cache  # noqa: E402
from flashhold.core.security import create_access_token  # noqa: E402
from flashhold.services.stock_ledger import stock_ledger  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def db_tables():
    """Fresh schema per test; shared caches and counters reset."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    product_cache.clear()
    product_cache.reset_stats()
    stock_ledger.floor_hits = 0

    yield

    # aiosqlite connections are bound to the loop that opened them
    await engine.dispose()


@pytest.fixture
def make_user(db_tables):
    async def _make(name: str = "Test User", is_active: bool = True) -> int:
        async with get_db_session() as db:
            user = models.User(
                email=f"{uuid.uuid4().hex[:12]}@example.com",
                name=name,
                is_active=is_active,
            )
            db.add(user)
            await db.flush()
            return user.id

    return _make


@pytest.fixture
def make_product(db_tables):
    async def _make(
        stock: int = 10,
        reserved: int = 0,
        price: str = "1000.00",
        name: str = "Mobile Phone",
    ) -> int:
        async with get_db_session() as db:
            product = models.Product(
                name=name,
                price=Decimal(price),
                stock=stock,
                reserved=reserved,
            )
            db.add(product)
            await db.flush()
            return product.id

    return _make


@pytest.fixture
def fetch(db_tables):
    """Load a row by primary key in a fresh session."""
    async def _fetch(model, pk):
        async with get_db_session() as db:
            return await db.get(model, pk)

    return _fetch


@pytest.fixture
def auth_headers():
    def _headers(user_id: int) -> dict:
        token = create_access_token({"sub": user_id})
        return {"Authorization": f"Bearer {token}"}

    return _headers
