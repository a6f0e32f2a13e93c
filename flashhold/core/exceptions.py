"""
Flash Hold Exception Hierarchy

Structured exception classes for the reservation, checkout and settlement
paths. All exceptions include code, message, and details for audit trail
and debugging, plus the HTTP status the API renders them with.

Exception Hierarchy:
    FlashHoldError
    ├── NotFoundError
    │   ├── ProductNotFound
    │   ├── HoldNotFound
    │   └── OrderNotFound          (retryable)
    ├── BusinessRejection
    │   ├── InsufficientStock
    │   └── AlreadyCheckedOut
    ├── InvalidStateTransition
    └── WebhookSignatureError
"""
import logging
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class FlashHoldError(Exception):
    """
    Base exception for all Flash Hold custom errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        details: Additional context for debugging/audit
        severity: P0-P3 severity level
    """

    default_code: str = "FLASHHOLD_ERROR"
    default_severity: str = "P2"
    status_code: int = 500
    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[str] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        self.severity = severity or self.default_severity
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "severity": self.severity,
            "details": self.details,
        }

    def to_response(self) -> Dict[str, Any]:
        """Client-facing body. Details are flattened next to the message."""
        body = {"message": self.message, "code": self.code}
        body.update(self.details)
        if self.retryable:
            body["retryable"] = True
        return body

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


# =============================================================================
# NOT FOUND
# =============================================================================

class NotFoundError(FlashHoldError):
    """Entity absent or not visible to the caller."""
    default_code = "NOT_FOUND"
    default_severity = "P3"
    status_code = 404


class ProductNotFound(NotFoundError):
    default_code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: int, **kwargs):
        details = kwargs.pop("details", {})
        details["product_id"] = product_id
        super().__init__("Product not found", details=details, **kwargs)


class HoldNotFound(NotFoundError):
    """
    No active, unexpired hold with this id belongs to the caller.

    Deliberately covers "never existed", "wrong owner", "already consumed"
    and "lapsed" alike.
    """
    default_code = "HOLD_NOT_FOUND"

    def __init__(self, hold_id: int, **kwargs):
        self.hold_id = hold_id
        super().__init__("Hold not found or expired", **kwargs)


class OrderNotFound(NotFoundError):
    """
    Settlement target does not exist (yet).

    Retryable: the notification may have raced ahead of the checkout that
    creates the order.
    """
    default_code = "ORDER_NOT_FOUND"
    retryable = True

    def __init__(self, order_id: int, **kwargs):
        self.order_id = order_id
        super().__init__("Order not found. Please retry.", **kwargs)


# =============================================================================
# BUSINESS REJECTIONS
# =============================================================================

class BusinessRejection(FlashHoldError):
    """Expected, user-visible refusal. No retry implied."""
    default_code = "BUSINESS_REJECTION"
    default_severity = "P3"
    status_code = 422


class InsufficientStock(BusinessRejection):
    default_code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: int, requested: int, available: int, **kwargs):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        details = kwargs.pop("details", {})
        details.update({
            "requested": requested,
            "available": available,
        })
        super().__init__("Not enough stock", details=details, **kwargs)


class AlreadyCheckedOut(BusinessRejection):
    default_code = "HOLD_ALREADY_USED"

    def __init__(self, hold_id: int, order_id: int, **kwargs):
        self.hold_id = hold_id
        self.order_id = order_id
        details = kwargs.pop("details", {})
        details["order_id"] = order_id
        super().__init__("Hold already used", details=details, **kwargs)


# =============================================================================
# INTERNAL
# =============================================================================

class InvalidStateTransition(FlashHoldError):
    """A status change outside the allowed transition table. Always a bug."""
    default_code = "INVALID_STATE_TRANSITION"
    default_severity = "P1"

    def __init__(self, entity: str, entity_id: Optional[int], current: str, target: str, **kwargs):
        details = kwargs.pop("details", {})
        details.update({
            "entity": entity,
            "entity_id": entity_id,
            "from": current,
            "to": target,
        })
        super().__init__(
            f"Illegal {entity} transition {current} -> {target}",
            details=details,
            **kwargs,
        )


class WebhookSignatureError(FlashHoldError):
    """Payment notification failed signature verification."""
    default_code = "WEBHOOK_SIGNATURE_INVALID"
    default_severity = "P1"
    status_code = 401

    def __init__(self, message: str = "Invalid signature", **kwargs):
        super().__init__(message, **kwargs)
