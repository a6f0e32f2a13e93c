"""
OrderManager - converts a still-valid hold into a pending order

checkout() runs as one unit of work:
1. Lock the hold filtered by id, owner, status=ACTIVE and expires_at > now
2. If an order already references the hold, report it (no new state)
3. Snapshot price = quantity x current product price
4. Insert a PENDING order and mark the hold USED

The reservation made at hold time stays in product.reserved until the
order is settled by PaymentSettlementProcessor.

The product row is only read here. On PostgreSQL the orders INSERT still
takes a key-share lock on it (product_id foreign key), after the hold lock,
so this path is hold -> product like the reaper and settlement.
"""
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from flashhold.core.exceptions import AlreadyCheckedOut, HoldNotFound, ProductNotFound
from flashhold.core.utils import utcnow
from flashhold.models import HoldStatus
from flashhold.repositories import holds as hold_repo
from flashhold.repositories import orders as order_repo
from flashhold.repositories import products as product_repo
from flashhold.services.payment_gateway import PaymentGateway, payment_gateway

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def order_price(quantity: int, unit_price) -> Decimal:
    """quantity x unit price, rounded to cents."""
    return (Decimal(str(unit_price)) * quantity).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class CheckoutResult:
    order_id: int
    payment_url: str
    price: Decimal


class OrderManager:
    def __init__(self, gateway: PaymentGateway = payment_gateway):
        self.gateway = gateway

    async def checkout(
        self,
        db: AsyncSession,
        hold_id: int,
        user_id: int,
        now: Optional[datetime] = None,
    ) -> CheckoutResult:
        """
        Turn hold_id into a pending order for user_id.

        Raises:
            HoldNotFound: no active, unexpired hold with this id owned by user_id
            AlreadyCheckedOut: an order already exists for the hold
        """
        start_time = time.time()
        now = now or utcnow()

        hold = await hold_repo.find_active_for_user_for_update(db, hold_id, user_id, now)
        if hold is None:
            raise HoldNotFound(hold_id)

        existing = await order_repo.find_by_hold(db, hold.id)
        if existing is not None:
            logger.info(f"Checkout resubmitted for hold {hold.id}, order {existing.id} already exists")
            raise AlreadyCheckedOut(hold.id, existing.id)

        product = await product_repo.get_product(db, hold.product_id)
        if product is None:
            raise ProductNotFound(hold.product_id)

        price = order_price(hold.quantity, product.price)
        order = await order_repo.create_order(
            db,
            user_id=hold.user_id,
            product_id=hold.product_id,
            hold_id=hold.id,
            quantity=hold.quantity,
            price=price,
        )

        hold.transition_to(HoldStatus.USED)
        await db.flush()

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"CHECKOUT_METRIC: order_created "
            f"order_id={order.id} "
            f"hold_id={hold.id} "
            f"user_id={user_id} "
            f"price={price} "
            f"duration_ms={duration_ms:.2f}"
        )

        return CheckoutResult(
            order_id=order.id,
            payment_url=self.gateway.payment_url(order.id),
            price=price,
        )


order_manager = OrderManager()
