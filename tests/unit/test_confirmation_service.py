"""
Unit tests for ConfirmationService.

Tests validation, the version-guarded write and retry on conflict.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock
import pytest

from services.order_service import OrderService
from services.confirmation_service import ConfirmationService
from models.order import append_confirmation, total_confirmed
from exceptions import (
    OrderNotFoundError,
    OverconfirmationError,
    InvalidQuantityError,
    ConcurrentModificationError,
)
from tests.factories import OrderFactory


# ===================
# FIXTURES
# ===================

@pytest.fixture
def order_service(mock_db, mock_supabase):
    mock_supabase.set_table_data("orders", [
        OrderFactory.create(id="order-1", ordered_quantity=10),
    ])
    return OrderService()


@pytest.fixture
def confirmation_service(order_service):
    return ConfirmationService(order_service=order_service, max_attempts=3)


class RacingOrderService(OrderService):
    """OrderService where another writer confirms between our read and our write."""

    def __init__(self, competing_quantity: Decimal, races: int = 1):
        super().__init__()
        self.competing_quantity = competing_quantity
        self.races = races

    def save(self, order, expected_version):
        if self.races > 0:
            self.races -= 1
            current = self.get_by_id(order.id)
            competitor = append_confirmation(current, self.competing_quantity, date(2026, 1, 9))
            super().save(competitor, expected_version=current.version)
        return super().save(order, expected_version)


# ===================
# CONFIRM TESTS
# ===================

class TestConfirm:
    """Tests for confirm."""

    def test_sequence_from_empty(self, confirmation_service):
        order = confirmation_service.confirm("order-1", Decimal("4"), date(2026, 1, 5))
        assert total_confirmed(order) == Decimal("4")
        assert order.remaining_to_deliver == Decimal("6")

        order = confirmation_service.confirm("order-1", Decimal("6"), date(2026, 1, 7))
        assert total_confirmed(order) == Decimal("10")

        with pytest.raises(OverconfirmationError) as exc_info:
            confirmation_service.confirm("order-1", Decimal("1"), date(2026, 1, 8))

        assert exc_info.value.max_quantity == Decimal("0")

    def test_rejected_confirmation_writes_nothing(self, confirmation_service, order_service):
        with pytest.raises(OverconfirmationError):
            confirmation_service.confirm("order-1", Decimal("11"), date(2026, 1, 5))

        stored = order_service.get_by_id("order-1")
        assert stored.confirmations == []
        assert stored.version == 0

    def test_invalid_quantity(self, confirmation_service):
        with pytest.raises(InvalidQuantityError):
            confirmation_service.confirm("order-1", Decimal("0"), date(2026, 1, 5))

    def test_not_found(self, confirmation_service):
        with pytest.raises(OrderNotFoundError):
            confirmation_service.confirm("missing", Decimal("1"), date(2026, 1, 5))

    def test_get_remaining(self, confirmation_service):
        confirmation_service.confirm("order-1", Decimal("2.5"), date(2026, 1, 5))

        assert confirmation_service.get_remaining("order-1") == Decimal("7.5")


class TestConcurrentConfirm:
    """Two writers racing on the same order."""

    def test_retry_after_lost_race(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("orders", [
            OrderFactory.create(id="order-1", ordered_quantity=10),
        ])
        service = ConfirmationService(
            order_service=RacingOrderService(Decimal("3")),
            max_attempts=3,
        )

        order = service.confirm("order-1", Decimal("5"), date(2026, 1, 10))

        assert [c.quantity for c in order.confirmations] == [Decimal("3"), Decimal("5")]
        assert order.remaining_to_deliver == Decimal("2")
        assert order.version == 2

    def test_retry_revalidates_against_fresh_ledger(self, mock_db, mock_supabase):
        """Both fit alone; together they exceed the ordered quantity."""
        mock_supabase.set_table_data("orders", [
            OrderFactory.create(id="order-1", ordered_quantity=10),
        ])
        service = ConfirmationService(
            order_service=RacingOrderService(Decimal("6")),
            max_attempts=3,
        )

        with pytest.raises(OverconfirmationError) as exc_info:
            service.confirm("order-1", Decimal("5"), date(2026, 1, 10))

        assert exc_info.value.max_quantity == Decimal("4")
        stored = OrderService().get_by_id("order-1")
        assert total_confirmed(stored) == Decimal("6")

    def test_gives_up_after_max_attempts(self):
        order = OrderFactory.build(ordered_quantity=10)
        orders = MagicMock()
        orders.get_by_id.return_value = order
        orders.save.return_value = None

        service = ConfirmationService(order_service=orders, max_attempts=3)

        with pytest.raises(ConcurrentModificationError) as exc_info:
            service.confirm(order.id, Decimal("1"), date(2026, 1, 10))

        assert exc_info.value.status_code == 409
        assert exc_info.value.details["attempts"] == 3
        assert orders.save.call_count == 3


class TestQuantityPrecision:
    """What is stored is exactly what was confirmed."""

    def test_stored_ledger_matches_requested_quantity(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("orders", [
            OrderFactory.create(id="order-1", ordered_quantity=1000000),
        ])
        orders = OrderService()
        service = ConfirmationService(order_service=orders, max_attempts=3)

        service.confirm("order-1", Decimal("1.005"), date(2026, 1, 5))
        service.confirm("order-1", Decimal("0.001"), date(2026, 1, 6))

        stored = orders.get_by_id("order-1")
        assert [c.quantity for c in stored.confirmations] == [Decimal("1.005"), Decimal("0.001")]
        assert stored.remaining_to_deliver == stored.ordered_quantity - total_confirmed(stored)
        assert stored.remaining_to_deliver == Decimal("999998.994")

    @pytest.mark.parametrize("quantity", [
        Decimal("0.00000000000000001"),
        Decimal("1.00000000000000001"),
        Decimal("2.0005"),
    ])
    def test_finer_than_stored_precision_rejected(self, confirmation_service, order_service, quantity):
        with pytest.raises(InvalidQuantityError) as exc_info:
            confirmation_service.confirm("order-1", quantity, date(2026, 1, 5))

        assert "decimal places" in exc_info.value.message
        stored = order_service.get_by_id("order-1")
        assert stored.confirmations == []
        assert stored.remaining_to_deliver == Decimal("10")
