"""
Order routes

POST /orders checks out an active hold into a pending order and returns
the payment URL. 404 for a missing/expired/foreign/consumed hold, 422 when
an order already exists for it.
"""
from fastapi import APIRouter, Depends, Request, status

from flashhold.core.database import get_db_session
from flashhold.core.rate_limit import route_limit
from flashhold.api.deps import get_current_user
from flashhold.models import User
from flashhold.schemas.order import CheckoutRequest, CheckoutResponse
from flashhold.services.order_service import order_manager

router = APIRouter()


@router.post("", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
@route_limit("orders")
async def checkout(
    request: Request,
    payload: CheckoutRequest,
    current_user: User = Depends(get_current_user),
):
    async with get_db_session() as db:
        result = await order_manager.checkout(db, payload.hold_id, current_user.id)

    return CheckoutResponse(order_id=result.order_id, payment_url=result.payment_url)
