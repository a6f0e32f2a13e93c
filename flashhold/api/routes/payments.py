"""
Payment webhook route

Called by the payment provider, not by users: no bearer auth, optional
HMAC signature (X-Payment-Signature). Always 200 for processed and
duplicate notifications; 404 (retryable) while the order does not exist.
"""
import logging

from fastapi import APIRouter, Depends, Request

from flashhold.core.database import get_db_session
from flashhold.core.rate_limit import route_limit
from flashhold.api.deps import verify_payment_signature
from flashhold.schemas.payment import PaymentWebhookRequest, PaymentWebhookResponse
from flashhold.services.payment_settlement import settlement_processor

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/webhook",
    response_model=PaymentWebhookResponse,
    dependencies=[Depends(verify_payment_signature)],
)
@route_limit("payments")
async def payment_webhook(request: Request, payload: PaymentWebhookRequest):
    logger.info(
        f"Payment webhook received: order_id={payload.order_id} "
        f"status={payload.status.value} key={payload.idempotency_key}"
    )

    async with get_db_session() as db:
        result = await settlement_processor.handle(db, payload.to_notification())

    return PaymentWebhookResponse(message=result.message, order_status=result.order_status)
