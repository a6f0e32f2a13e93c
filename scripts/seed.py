#!/usr/bin/env python3
"""
Seed a demo product and a handful of users, and print an access token for
each user so the API can be exercised by hand.

Usage:
    python -m scripts.seed
"""
import asyncio
import logging
from decimal import Decimal

from sqlalchemy import select

from flashhold.core.database import get_db_session
from flashhold.core.security import create_access_token
from flashhold.models import Product, User

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEMO_PRODUCT = {"name": "Mobile Phone", "price": Decimal("1000.00"), "stock": 50}
DEMO_USERS = 6


async def seed() -> None:
    async with get_db_session() as db:
        existing = await db.execute(select(Product).where(Product.name == DEMO_PRODUCT["name"]))
        if existing.scalar_one_or_none() is None:
            db.add(Product(reserved=0, **DEMO_PRODUCT))
            logger.info(f"Created product {DEMO_PRODUCT['name']}")

        users = []
        for i in range(1, DEMO_USERS + 1):
            email = f"user{i}@example.com"
            result = await db.execute(select(User).where(User.email == email))
            user = result.scalar_one_or_none()
            if user is None:
                user = User(email=email, name=f"User {i}")
                db.add(user)
            users.append(user)
        await db.flush()

        for user in users:
            print(f"{user.email}: {create_access_token({'sub': user.id})}")


if __name__ == "__main__":
    asyncio.run(seed())
