"""
Hold schemas
"""
from datetime import datetime

from pydantic import BaseModel, Field

from flashhold.core.config import settings


class HoldCreate(BaseModel):
    product_id: int = Field(..., ge=1)
    quantity: int = Field(..., ge=1, le=settings.HOLD_MAX_QUANTITY)


class HoldResponse(BaseModel):
    hold_id: int
    expires_at: datetime
