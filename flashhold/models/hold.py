"""
Hold model

A time-bounded claim on product stock, created before payment.

Lifecycle:
1. ACTIVE  - created by HoldManager, quantity added to product.reserved
2. USED    - checked out into an order (reservation stays until settlement)
3. EXPIRED - TTL lapsed without an order (reaper released the stock), or
             its order's payment failed (settlement released the stock)
"""
from datetime import timedelta, datetime
from typing import Optional
from enum import Enum

from sqlalchemy import (
    Column, Integer, DateTime, ForeignKey, CheckConstraint, Index, Enum as SQLAEnum
)
from sqlalchemy.orm import relationship

from flashhold.core.database import Base
from flashhold.core.exceptions import InvalidStateTransition
from flashhold.core.utils import utcnow

# Default hold TTL in minutes
HOLD_TTL_MINUTES = 2


class HoldStatus(str, Enum):
    """Hold lifecycle status."""
    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"


HOLD_TRANSITIONS = {
    HoldStatus.ACTIVE: frozenset({HoldStatus.USED, HoldStatus.EXPIRED}),
    HoldStatus.USED: frozenset({HoldStatus.EXPIRED}),
    HoldStatus.EXPIRED: frozenset(),
}


class Hold(Base):
    __tablename__ = "holds"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_holds_quantity_positive"),
        Index("ix_holds_status_expires_at", "status", "expires_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)
    status = Column(
        SQLAEnum(
            HoldStatus,
            name="hold_status",
            native_enum=False,
            create_constraint=True,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=HoldStatus.ACTIVE,
    )
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="holds")
    product = relationship("Product", back_populates="holds")
    order = relationship("Order", back_populates="hold", uselist=False)

    def transition_to(self, target: HoldStatus) -> None:
        """Move to target status, refusing anything outside HOLD_TRANSITIONS."""
        current = HoldStatus(self.status)
        if target not in HOLD_TRANSITIONS[current]:
            raise InvalidStateTransition("hold", self.id, current.value, target.value)
        self.status = target

    @classmethod
    def create_expiry(cls, ttl_minutes: int = HOLD_TTL_MINUTES, now: Optional[datetime] = None) -> datetime:
        """Calculate expiry timestamp from now."""
        return (now or utcnow()) + timedelta(minutes=ttl_minutes)
