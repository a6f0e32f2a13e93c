"""
Order (checkout) schemas
"""
from pydantic import BaseModel, Field


class CheckoutRequest(BaseModel):
    hold_id: int = Field(..., ge=1)


class CheckoutResponse(BaseModel):
    order_id: int
    payment_url: str
