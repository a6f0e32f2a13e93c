"""
StockLedger - the only writer of products.stock / products.reserved

Every mutation runs inside the caller's transaction, on a row locked with
SELECT ... FOR UPDATE. The availability check and the counter change in
reserve() happen under the same lock acquisition, so two concurrent
callers can never both observe the same free units.

Invariant maintained: 0 <= reserved <= stock.
"""
import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from flashhold.core.exceptions import InsufficientStock, ProductNotFound
from flashhold.core.product_cache import ProductCache, product_cache
from flashhold.models import Product
from flashhold.repositories import products as product_repo

logger = logging.getLogger(__name__)


def build_product_view(product: Product) -> Dict[str, Any]:
    """Display snapshot of a product row."""
    return {
        "id": product.id,
        "name": product.name,
        "price": product.price,
        "stock": product.stock,
        "reserved": product.reserved,
        "available_stock": product.available,
    }


class StockLedger:
    """Atomic reserve/release/fulfill on a product's counters."""

    def __init__(self, cache: ProductCache = product_cache):
        self.cache = cache
        # Clamp events in release/fulfill. Non-zero means a bug upstream.
        self.floor_hits = 0

    async def lock_product(self, db: AsyncSession, product_id: int) -> Product:
        """Exclusively lock the product row for the rest of the transaction."""
        product = await product_repo.get_product_for_update(db, product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product

    async def reserve(self, db: AsyncSession, product_id: int, quantity: int) -> Product:
        """
        Move quantity units from available to reserved.

        Raises:
            InsufficientStock: fewer than quantity units are available
        """
        product = await self.lock_product(db, product_id)
        available = product.stock - product.reserved

        if available < quantity:
            raise InsufficientStock(product_id, requested=quantity, available=max(0, available))

        product.reserved += quantity
        await db.flush()
        self.cache.invalidate(product_id)

        logger.debug(
            f"Reserved {quantity} of product {product_id} "
            f"(reserved={product.reserved}, stock={product.stock})"
        )
        return product

    async def release(self, db: AsyncSession, product_id: int, quantity: int) -> Product:
        """Return quantity reserved units to available."""
        product = await self.lock_product(db, product_id)
        product.reserved = self._floored(product, "reserved", quantity, "release")
        await db.flush()
        self.cache.invalidate(product_id)

        logger.debug(f"Released {quantity} of product {product_id} (reserved={product.reserved})")
        return product

    async def fulfill(self, db: AsyncSession, product_id: int, quantity: int) -> Product:
        """Consume quantity reserved units: both stock and reserved drop."""
        product = await self.lock_product(db, product_id)
        product.stock = self._floored(product, "stock", quantity, "fulfill")
        product.reserved = self._floored(product, "reserved", quantity, "fulfill")
        await db.flush()
        self.cache.invalidate(product_id)

        logger.debug(
            f"Fulfilled {quantity} of product {product_id} "
            f"(stock={product.stock}, reserved={product.reserved})"
        )
        return product

    def _floored(self, product: Product, field: str, quantity: int, operation: str) -> int:
        current = getattr(product, field)
        if current < quantity:
            self.floor_hits += 1
            logger.error(
                f"STOCK_INVARIANT: {operation} of {quantity} on product {product.id} "
                f"would take {field} below zero (current={current}); clamped to 0"
            )
            return 0
        return current - quantity

    async def get_product_view(self, db: AsyncSession, product_id: int) -> Optional[Dict[str, Any]]:
        """
        Read-only product snapshot for display.

        Served through the cache; not to be used for any reservation decision.
        """
        async def load(pid: int) -> Optional[Dict[str, Any]]:
            product = await product_repo.get_product(db, pid)
            return build_product_view(product) if product else None

        return await self.cache.get_or_fetch(product_id, load)


stock_ledger = StockLedger()
