"""
Payment notification schemas

The outcome is accepted as either "status" (what the gateway sends) or
"outcome".
"""
from pydantic import AliasChoices, BaseModel, Field

from flashhold.models import OrderStatus
from flashhold.services.payment_settlement import PaymentNotification, PaymentOutcome


class PaymentWebhookRequest(BaseModel):
    order_id: int = Field(..., ge=1)
    status: PaymentOutcome = Field(..., validation_alias=AliasChoices("status", "outcome"))
    transaction_id: str = Field(..., min_length=1, max_length=255)
    idempotency_key: str = Field(..., min_length=1, max_length=255)

    def to_notification(self) -> PaymentNotification:
        return PaymentNotification(
            order_id=self.order_id,
            outcome=self.status,
            transaction_id=self.transaction_id,
            idempotency_key=self.idempotency_key,
        )


class PaymentWebhookResponse(BaseModel):
    message: str
    order_status: OrderStatus
