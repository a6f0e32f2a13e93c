"""
Rate Limiting Configuration

SlowAPI limiter keyed on client IP. Each route group has its own configured
limit (RATE_LIMIT_HOLDS, RATE_LIMIT_ORDERS, ...); the hold and checkout
limits are the tight ones since they take row locks on hot products.
In-memory storage: multi-instance deployments should point storage_uri at
Redis.
"""
import logging
from typing import Dict

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from starlette.requests import Request
from starlette.responses import JSONResponse

from flashhold.core.config import settings

logger = logging.getLogger(__name__)

# Route group -> settings attribute holding its limit
ROUTE_LIMITS: Dict[str, str] = {
    "products": "RATE_LIMIT_PRODUCTS",
    "holds": "RATE_LIMIT_HOLDS",
    "orders": "RATE_LIMIT_ORDERS",
    "payments": "RATE_LIMIT_WEBHOOK",
}

DEFAULT_RETRY_AFTER_SECONDS = 60


def get_client_ip(request: Request) -> str:
    """
    Get client IP, respecting X-Forwarded-For for proxied requests.
    Falls back to direct IP if header not present.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # First IP in the chain is the original client
        return forwarded.split(",")[0].strip()
    return get_remote_address(request)


def limit_for(route: str) -> str:
    """Configured limit for a route group; unknown groups get RATE_LIMIT_DEFAULT."""
    return getattr(settings, ROUTE_LIMITS.get(route, "RATE_LIMIT_DEFAULT"))


limiter = Limiter(
    key_func=get_client_ip,
    enabled=settings.RATE_LIMIT_ENABLED,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
)


def route_limit(route: str):
    """
    Decorator applying the route group's limit.

    Usage:
        @router.post("")
        @route_limit("holds")
        async def create_hold(request: Request, ...):
    """
    return limiter.limit(limit_for(route))


def retry_after_seconds(exc: RateLimitExceeded) -> int:
    """Length of the exceeded limit's window, e.g. 60 for "20/minute"."""
    limit = getattr(exc, "limit", None)
    item = getattr(limit, "limit", None)
    if item is None:
        return DEFAULT_RETRY_AFTER_SECONDS
    return int(item.get_expiry())


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    JSON 429 with a Retry-After header matching the exceeded window.
    No row lock has been taken for a throttled request.
    """
    retry_after = retry_after_seconds(exc)
    logger.warning(
        f"RATE_LIMIT: exceeded ip={get_client_ip(request)} "
        f"path={request.url.path} limit={exc.detail} retry_after={retry_after}s"
    )

    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "message": f"Too many requests. Please try again in {retry_after} seconds.",
            "limit": exc.detail,
            "retry_after": retry_after,
        },
        headers={"Retry-After": str(retry_after)},
    )
