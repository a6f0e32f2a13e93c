"""
Product routes

Read-only product view. Served through the product display cache.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from flashhold.core.database import get_db
from flashhold.core.exceptions import ProductNotFound
from flashhold.core.rate_limit import route_limit
from flashhold.schemas.product import ProductResponse
from flashhold.services.stock_ledger import stock_ledger

router = APIRouter()


@router.get("/{product_id}", response_model=ProductResponse)
@route_limit("products")
async def get_product(
    request: Request,
    product_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Product with stock, reserved and available units"""
    view = await stock_ledger.get_product_view(db, product_id)
    if view is None:
        raise ProductNotFound(product_id)
    return view
