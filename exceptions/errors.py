"""
Custom exception classes for the application.

Every error carries a stable code, an HTTP status and a details dict
so routes can serialize it with to_dict().
"""

from typing import Optional, Any
from datetime import datetime
from decimal import Decimal


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "ORDER_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# ORDER ERRORS
# ===================

class OrderNotFoundError(NotFoundError):
    """Order not found."""

    def __init__(self, order_id: str):
        super().__init__(
            resource="Order",
            identifier=order_id,
            code="ORDER_NOT_FOUND"
        )


class InvalidQuantityError(ValidationError):
    """Quantity must be strictly positive and within the stored precision."""

    def __init__(self, field: str, value: Any, reason: str = "must be greater than 0"):
        super().__init__(
            code="INVALID_QUANTITY",
            message=f"{field} {reason}",
            details={"field": field, "provided": str(value)}
        )


class OverconfirmationError(ValidationError):
    """
    Confirmation would push the confirmed total above the ordered quantity.

    max_quantity is what can still be confirmed, so callers can report it.
    """

    def __init__(self, requested: Decimal, max_quantity: Decimal):
        self.requested = requested
        self.max_quantity = max_quantity
        super().__init__(
            code="OVERCONFIRMATION",
            message=f"Quantity too high. Maximum: {max_quantity}",
            details={
                "requested": str(requested),
                "max_quantity": str(max_quantity),
            }
        )


class ConcurrentModificationError(ConflictError):
    """Order changed under us on every retry of a conditional write."""

    def __init__(self, order_id: str, attempts: int):
        super().__init__(
            code="ORDER_CONCURRENT_MODIFICATION",
            message="Order was modified concurrently, please retry",
            details={"id": order_id, "attempts": attempts}
        )


# ===================
# REMINDER ERRORS
# ===================

class ReminderDispatchError(ExternalServiceError):
    """A reminder could not be delivered."""

    def __init__(self, channel: str, message: str, details: Optional[dict] = None):
        super().__init__(
            service=f"reminder_{channel}",
            message=message,
            details=details
        )
