"""
Migration: Create users, products, holds and orders tables (PostgreSQL)

Check constraints back the stock invariant (0 <= reserved <= stock) and
orders.hold_id is unique (at most one order per hold).
"""
import asyncio
import logging

from sqlalchemy import text

from flashhold.core.database import AsyncSessionLocal

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

TABLES = [
    ("users", """
        CREATE TABLE users (
            id SERIAL PRIMARY KEY,
            email VARCHAR(255) NOT NULL UNIQUE,
            name VARCHAR(255) NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """),
    ("products", """
        CREATE TABLE products (
            id SERIAL PRIMARY KEY,
            name VARCHAR(500) NOT NULL,
            price NUMERIC(10, 2) NOT NULL,
            stock INTEGER NOT NULL DEFAULT 0,
            reserved INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            CONSTRAINT ck_products_stock_non_negative CHECK (stock >= 0),
            CONSTRAINT ck_products_reserved_non_negative CHECK (reserved >= 0),
            CONSTRAINT ck_products_reserved_within_stock CHECK (reserved <= stock)
        )
    """),
    ("holds", """
        CREATE TABLE holds (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            product_id INTEGER NOT NULL REFERENCES products(id) ON DELETE CASCADE,
            quantity INTEGER NOT NULL CONSTRAINT ck_holds_quantity_positive CHECK (quantity > 0),
            status VARCHAR(7) NOT NULL DEFAULT 'active'
                CONSTRAINT hold_status CHECK (status IN ('active', 'used', 'expired')),
            expires_at TIMESTAMP WITH TIME ZONE NOT NULL,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """),
    ("orders", """
        CREATE TABLE orders (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            product_id INTEGER NOT NULL REFERENCES products(id) ON DELETE CASCADE,
            hold_id INTEGER NOT NULL UNIQUE REFERENCES holds(id) ON DELETE CASCADE,
            quantity INTEGER NOT NULL CONSTRAINT ck_orders_quantity_positive CHECK (quantity > 0),
            price NUMERIC(10, 2) NOT NULL,
            status VARCHAR(9) NOT NULL DEFAULT 'pending'
                CONSTRAINT order_status CHECK (status IN ('pending', 'paid', 'cancelled')),
            payment_reference VARCHAR(255) UNIQUE,
            transaction_id VARCHAR(255),
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            paid_at TIMESTAMP WITH TIME ZONE,
            cancelled_at TIMESTAMP WITH TIME ZONE
        )
    """),
]

INDEXES = [
    "CREATE INDEX ix_holds_user_id ON holds(user_id)",
    "CREATE INDEX ix_holds_product_id ON holds(product_id)",
    "CREATE INDEX ix_holds_status_expires_at ON holds(status, expires_at)",
    "CREATE INDEX ix_orders_user_id ON orders(user_id)",
    "CREATE INDEX ix_orders_product_id ON orders(product_id)",
    "CREATE INDEX ix_orders_status ON orders(status)",
    "CREATE INDEX ix_orders_created_at ON orders(created_at)",
]


async def table_exists(db, table_name: str) -> bool:
    result = await db.execute(
        text("SELECT EXISTS (SELECT 1 FROM information_schema.tables WHERE table_name = :name)"),
        {"name": table_name}
    )
    return result.scalar()


async def create_tables() -> None:
    async with AsyncSessionLocal() as db:
        try:
            created = []
            for name, ddl in TABLES:
                if await table_exists(db, name):
                    logger.info(f"{name} table already exists, skipping creation")
                    continue
                logger.info(f"Creating {name} table")
                await db.execute(text(ddl))
                created.append(name)

            if "holds" in created or "orders" in created:
                logger.info("Creating indexes")
                for ddl in INDEXES:
                    table = ddl.split(" ON ")[1].split("(")[0]
                    if table in created:
                        await db.execute(text(ddl))

            await db.commit()
            logger.info(f"Created tables: {created or 'none'}")

        except Exception:
            await db.rollback()
            logger.exception("Failed to create flash hold tables")
            raise


async def main():
    logger.info("Starting migration: create flash hold tables")
    await create_tables()
    logger.info("Migration complete")


if __name__ == "__main__":
    asyncio.run(main())
