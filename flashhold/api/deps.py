"""
API dependencies
"""
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select

from flashhold.core.config import settings
from flashhold.core.database import get_db_session
from flashhold.core.exceptions import WebhookSignatureError
from flashhold.core.security import decode_token, verify_signature
from flashhold.models.user import User

security = HTTPBearer()

SIGNATURE_HEADER = "X-Payment-Signature"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> User:
    """
    Get current authenticated user.

    The lookup runs in its own short session that is closed before the
    endpoint body starts its unit of work.
    """
    payload = decode_token(credentials.credentials)

    if not payload or payload.get("type") != "access":
        raise _unauthorized("Invalid or expired token")

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise _unauthorized("Invalid or expired token")

    async with get_db_session() as db:
        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()

    if not user:
        raise _unauthorized("User not found")

    if not user.is_active:
        raise _unauthorized("Account is disabled")

    return user


async def verify_payment_signature(request: Request) -> None:
    """
    Check the HMAC-SHA256 signature of a payment notification body.

    Skipped when PAYMENT_WEBHOOK_SECRET is empty (local development).
    """
    if not settings.PAYMENT_WEBHOOK_SECRET:
        return

    body = await request.body()
    if not verify_signature(body, request.headers.get(SIGNATURE_HEADER), settings.PAYMENT_WEBHOOK_SECRET):
        raise WebhookSignatureError()
