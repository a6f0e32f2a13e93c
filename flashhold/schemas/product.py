"""
Product schemas
"""
from decimal import Decimal

from pydantic import BaseModel


class ProductResponse(BaseModel):
    id: int
    name: str
    price: Decimal
    stock: int
    reserved: int
    available_stock: int

    class Config:
        from_attributes = True
