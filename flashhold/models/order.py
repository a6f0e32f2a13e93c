"""
Order model

One order per hold (hold_id is unique). price is a snapshot taken at
checkout: quantity x product price at that moment.

payment_reference holds the idempotency key of the notification that
settled the order; it is unique so an exact replay can be answered from
a plain lookup.
"""
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Numeric, CheckConstraint, Enum as SQLAEnum
)
from sqlalchemy.orm import relationship

from flashhold.core.database import Base
from flashhold.core.exceptions import InvalidStateTransition
from flashhold.core.utils import utcnow


class OrderStatus(str, Enum):
    """Order settlement status."""
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


ORDER_TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.PAID, OrderStatus.CANCELLED}),
    OrderStatus.PAID: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_orders_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    hold_id = Column(Integer, ForeignKey("holds.id", ondelete="CASCADE"), nullable=False, unique=True)

    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    status = Column(
        SQLAEnum(
            OrderStatus,
            name="order_status",
            native_enum=False,
            create_constraint=True,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=OrderStatus.PENDING,
        index=True,
    )

    # Payment
    payment_reference = Column(String(255), nullable=True, unique=True)  # settling idempotency key
    transaction_id = Column(String(255), nullable=True)  # provider transaction id

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    paid_at = Column(DateTime(timezone=True))
    cancelled_at = Column(DateTime(timezone=True))

    user = relationship("User", back_populates="orders")
    product = relationship("Product", back_populates="orders")
    hold = relationship("Hold", back_populates="order")

    @property
    def is_settled(self) -> bool:
        return OrderStatus(self.status) is not OrderStatus.PENDING

    def transition_to(self, target: OrderStatus) -> None:
        """Move to target status, refusing anything outside ORDER_TRANSITIONS."""
        current = OrderStatus(self.status)
        if target not in ORDER_TRANSITIONS[current]:
            raise InvalidStateTransition("order", self.id, current.value, target.value)
        self.status = target
