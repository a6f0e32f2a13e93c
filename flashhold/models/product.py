"""
Product model

stock/reserved are only ever written by StockLedger while holding the
row lock. The check constraints back the 0 <= reserved <= stock invariant
at the storage level.
"""
from sqlalchemy import Column, Integer, String, DateTime, Numeric, CheckConstraint
from sqlalchemy.orm import relationship

from flashhold.core.database import Base
from flashhold.core.utils import utcnow


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("reserved >= 0", name="ck_products_reserved_non_negative"),
        CheckConstraint("reserved <= stock", name="ck_products_reserved_within_stock"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(500), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    # Inventory
    stock = Column(Integer, nullable=False, default=0)
    reserved = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    holds = relationship("Hold", back_populates="product")
    orders = relationship("Order", back_populates="product")

    @property
    def available(self) -> int:
        return max(0, (self.stock or 0) - (self.reserved or 0))
