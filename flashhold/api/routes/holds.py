"""
Hold routes

POST /holds reserves stock for two minutes (HOLD_TTL_MINUTES).
"""
from fastapi import APIRouter, Depends, HTTPException, Request, status

from flashhold.core.database import get_db_session
from flashhold.core.exceptions import ProductNotFound
from flashhold.core.rate_limit import route_limit
from flashhold.api.deps import get_current_user
from flashhold.models import User
from flashhold.schemas.hold import HoldCreate, HoldResponse
from flashhold.services.hold_service import hold_manager

router = APIRouter()


@router.post("", response_model=HoldResponse, status_code=status.HTTP_201_CREATED)
@route_limit("holds")
async def create_hold(
    request: Request,
    payload: HoldCreate,
    current_user: User = Depends(get_current_user),
):
    """
    Reserve stock for the current user.

    422 when the product does not exist or not enough units are available.
    """
    try:
        async with get_db_session() as db:
            created = await hold_manager.create_hold(
                db, current_user.id, payload.product_id, payload.quantity
            )
    except ProductNotFound:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Product {payload.product_id} does not exist",
        )

    return HoldResponse(hold_id=created.hold_id, expires_at=created.expires_at)
