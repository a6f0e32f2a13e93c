"""
Security utilities - JWT access tokens

Token issuance belongs to the identity provider; create_access_token is kept
for operators and the test suite. Uses timezone-aware datetimes and a JTI
per token.
"""
import hashlib
import hmac
import uuid
from datetime import timedelta
from typing import Optional

from jose import JWTError, jwt

from flashhold.core.config import settings
from flashhold.core.utils import utcnow


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    to_encode = data.copy()
    # sub must be a string (RFC 7519)
    if "sub" in to_encode:
        to_encode["sub"] = str(to_encode["sub"])
    now = utcnow()
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({
        "exp": expire,
        "type": "access",
        "jti": str(uuid.uuid4()),
        "iat": now,
    })
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate JWT token"""
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"verify_sub": False},
        )
    except JWTError:
        return None


def sign_payload(body: bytes, secret: str) -> str:
    """HMAC-SHA256 hex digest used for payment notification signatures."""
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature: Optional[str], secret: str) -> bool:
    if not signature:
        return False
    return hmac.compare_digest(signature, sign_payload(body, secret))
