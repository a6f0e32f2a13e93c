"""
PaymentSettlementProcessor - applies a payment outcome to an order exactly once

Safe against:
- exact duplicate notifications (same idempotency key)
- notifications that arrive before checkout has created the order
- notifications with a different key for an order that is already settled

Per notification:
1. Fast path: an order already carries payment_reference == idempotency_key
   -> report its status. No lock, no side effects.
2. Lock the order row. Missing -> OrderNotFound (retryable).
3. Order not PENDING -> record the key if none is stored yet, nothing else.
4. Order PENDING:
   paid   -> PAID, store key, StockLedger.fulfill()
   failed -> CANCELLED, store key, hold -> EXPIRED, StockLedger.release()

Steps 2-4 share one transaction under the order lock. Lock order on this
path is order -> hold -> product, matching checkout and the reaper.
"""
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from flashhold.core.exceptions import OrderNotFound
from flashhold.core.utils import utcnow
from flashhold.models import HoldStatus, Order, OrderStatus
from flashhold.repositories import holds as hold_repo
from flashhold.repositories import orders as order_repo
from flashhold.services.stock_ledger import StockLedger, stock_ledger

logger = logging.getLogger(__name__)

MESSAGE_PROCESSED = "Webhook processed"
MESSAGE_DUPLICATE = "Webhook already processed"
MESSAGE_ALREADY_SETTLED = "Order already processed"


class PaymentOutcome(str, Enum):
    PAID = "paid"
    FAILED = "failed"


@dataclass(frozen=True)
class PaymentNotification:
    order_id: int
    outcome: PaymentOutcome
    transaction_id: str
    idempotency_key: str


@dataclass(frozen=True)
class SettlementResult:
    order_id: int
    order_status: OrderStatus
    processed: bool
    message: str


class PaymentSettlementProcessor:
    def __init__(self, ledger: StockLedger = stock_ledger):
        self.ledger = ledger

    async def handle(self, db: AsyncSession, notification: PaymentNotification) -> SettlementResult:
        """
        Apply one payment notification.

        Raises:
            OrderNotFound: the order does not exist (yet); safe to retry
        """
        start_time = time.time()

        replayed = await order_repo.find_by_payment_reference(db, notification.idempotency_key)
        if replayed is not None:
            logger.info(
                f"Payment notification {notification.idempotency_key} already applied "
                f"to order {replayed.id} ({OrderStatus(replayed.status).value})"
            )
            return SettlementResult(replayed.id, OrderStatus(replayed.status), False, MESSAGE_DUPLICATE)

        order = await order_repo.get_order_for_update(db, notification.order_id)
        if order is None:
            logger.warning(
                f"Payment notification for unknown order {notification.order_id} "
                f"(key={notification.idempotency_key}); sender should retry"
            )
            raise OrderNotFound(notification.order_id)

        if order.is_settled:
            if not order.payment_reference:
                order.payment_reference = notification.idempotency_key
                await db.flush()
            logger.info(
                f"Order {order.id} already {OrderStatus(order.status).value}; "
                f"notification {notification.idempotency_key} ignored"
            )
            return SettlementResult(order.id, OrderStatus(order.status), False, MESSAGE_ALREADY_SETTLED)

        if notification.outcome is PaymentOutcome.PAID:
            await self._apply_paid(db, order, notification)
        elif notification.outcome is PaymentOutcome.FAILED:
            await self._apply_failed(db, order, notification)
        else:
            raise ValueError(f"Unhandled payment outcome: {notification.outcome!r}")

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"SETTLEMENT_METRIC: order_settled "
            f"order_id={order.id} "
            f"outcome={notification.outcome.value} "
            f"status={OrderStatus(order.status).value} "
            f"transaction_id={notification.transaction_id} "
            f"duration_ms={duration_ms:.2f}"
        )
        return SettlementResult(order.id, OrderStatus(order.status), True, MESSAGE_PROCESSED)

    def _record_payment(self, order: Order, notification: PaymentNotification) -> None:
        order.payment_reference = notification.idempotency_key
        order.transaction_id = notification.transaction_id

    async def _apply_paid(self, db: AsyncSession, order: Order, notification: PaymentNotification) -> None:
        order.transition_to(OrderStatus.PAID)
        self._record_payment(order, notification)
        order.paid_at = utcnow()
        await db.flush()

        await self.ledger.fulfill(db, order.product_id, order.quantity)

    async def _apply_failed(self, db: AsyncSession, order: Order, notification: PaymentNotification) -> None:
        order.transition_to(OrderStatus.CANCELLED)
        self._record_payment(order, notification)
        order.cancelled_at = utcnow()
        await db.flush()

        hold = await hold_repo.get_hold_for_update(db, order.hold_id)
        if hold is not None and HoldStatus(hold.status) in (HoldStatus.ACTIVE, HoldStatus.USED):
            hold.transition_to(HoldStatus.EXPIRED)
            await db.flush()
            logger.info(f"Hold {hold.id} expired after payment failure on order {order.id}")

        await self.ledger.release(db, order.product_id, order.quantity)


settlement_processor = PaymentSettlementProcessor()
