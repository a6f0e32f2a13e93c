"""
User model

Only what the reservation paths need: an owner id and an active flag.
Credential storage and login live with the identity provider.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship

from flashhold.core.database import Base
from flashhold.core.utils import utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    holds = relationship("Hold", back_populates="user")
    orders = relationship("Order", back_populates="user")
