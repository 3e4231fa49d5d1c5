"""
Confirmation service: records partial confirmations against orders.

The append is a read-modify-write guarded by the order's version column.
When a concurrent confirmation lands between our read and our write,
the conditional update matches no row; we re-read and validate again
against the fresh ledger.
"""

from typing import Optional
from decimal import Decimal
from datetime import date
import structlog

from config import settings
from models.order import (
    Order,
    append_confirmation,
    remaining_quantity,
    is_fully_confirmed,
)
from services.order_service import OrderService, get_order_service
from exceptions import ConcurrentModificationError

logger = structlog.get_logger(__name__)


class ConfirmationService:
    """Confirmation business logic."""

    def __init__(
        self,
        order_service: Optional[OrderService] = None,
        max_attempts: Optional[int] = None,
    ):
        self.orders = order_service or get_order_service()
        self.max_attempts = max_attempts or settings.confirmation_max_retries

    def confirm(self, order_id: str, quantity: Decimal, confirmation_date: date) -> Order:
        """
        Confirm part of an order.

        Args:
            order_id: Order UUID
            quantity: Quantity to confirm (> 0, <= remaining)
            confirmation_date: Date of the confirmation

        Returns:
            The stored order with the new confirmation

        Raises:
            OrderNotFoundError: If order doesn't exist
            InvalidQuantityError: If quantity is not positive
            OverconfirmationError: If quantity exceeds the remaining quantity
            ConcurrentModificationError: If every attempt lost a write race
            DatabaseError: If the store fails
        """
        logger.info(
            "confirming_order",
            order_id=order_id,
            quantity=str(quantity),
            confirmation_date=confirmation_date.isoformat()
        )

        for attempt in range(1, self.max_attempts + 1):
            current = self.orders.get_by_id(order_id)

            # Raises before anything is written
            updated = append_confirmation(current, quantity, confirmation_date)

            saved = self.orders.save(updated, expected_version=current.version)
            if saved is not None:
                logger.info(
                    "order_confirmed",
                    order_id=order_id,
                    quantity=str(quantity),
                    remaining=str(saved.remaining_to_deliver),
                    fully_confirmed=is_fully_confirmed(saved),
                    attempt=attempt
                )
                return saved

            logger.info("confirmation_retry", order_id=order_id, attempt=attempt)

        logger.error("confirmation_gave_up", order_id=order_id, attempts=self.max_attempts)
        raise ConcurrentModificationError(order_id, self.max_attempts)

    def get_remaining(self, order_id: str) -> Decimal:
        """Quantity that can still be confirmed on an order."""
        return remaining_quantity(self.orders.get_by_id(order_id))


# Singleton instance
_confirmation_service: Optional[ConfirmationService] = None


def get_confirmation_service() -> ConfirmationService:
    """Get or create ConfirmationService instance."""
    global _confirmation_service
    if _confirmation_service is None:
        _confirmation_service = ConfirmationService()
    return _confirmation_service
