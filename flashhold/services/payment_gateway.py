"""
Payment gateway collaborator

Produces the payment-initiation URL handed back at checkout. The gateway
processes the payment on its own and reports the outcome through
POST /api/payments/webhook; nothing here is called while a row lock is held
on the gateway side.
"""
from typing import Optional

from flashhold.core.config import settings


class PaymentGateway:
    def __init__(self, base_url: Optional[str] = None):
        self.base_url = (base_url or settings.PAYMENT_GATEWAY_URL).rstrip("/")

    def payment_url(self, order_id: int) -> str:
        return f"{self.base_url}/pay/{order_id}"


payment_gateway = PaymentGateway()
