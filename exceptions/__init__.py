"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    ExternalServiceError,
    DatabaseError,

    # Orders
    OrderNotFoundError,
    InvalidQuantityError,
    OverconfirmationError,
    ConcurrentModificationError,

    # Reminders
    ReminderDispatchError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "ExternalServiceError",
    "DatabaseError",

    # Orders
    "OrderNotFoundError",
    "InvalidQuantityError",
    "OverconfirmationError",
    "ConcurrentModificationError",

    # Reminders
    "ReminderDispatchError",
]
