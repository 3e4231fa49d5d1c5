"""
Unit tests for the KPI service.

Tests the pure aggregation functions and the period presets.
"""

from datetime import date
from decimal import Decimal
import pytest

from services.kpi_service import (
    KPIService,
    compute_kpis,
    top_articles,
    top_clients,
    period_window,
    filter_window,
)
from services.order_service import OrderService
from models.kpi import KPIPeriod
from exceptions import ValidationError
from tests.factories import OrderFactory


def order(article, qty, client="ACME", created=date(2026, 1, 15), confirmations=None):
    return OrderFactory.build(
        technology=article,
        ordered_quantity=qty,
        final_client=client,
        creation_date=created,
        confirmations=confirmations,
    )


# ===================
# RANKINGS
# ===================

class TestTopArticles:
    """Tests for top_articles."""

    def test_sums_per_article(self):
        orders = [order("X", 5), order("Y", 9), order("X", 3)]

        result = top_articles(orders, 2)

        assert [(a.article, a.quantity) for a in result] == [
            ("Y", Decimal("9")),
            ("X", Decimal("8")),
        ]

    def test_ties_keep_first_seen_order(self):
        orders = [order("B", 4), order("A", 4), order("C", 1)]

        result = top_articles(orders, 2)

        assert [a.article for a in result] == ["B", "A"]

    def test_n_larger_than_groups(self):
        assert len(top_articles([order("X", 1)], 5)) == 1

    def test_empty(self):
        assert top_articles([], 3) == []


class TestTopClients:
    """Tests for top_clients."""

    def test_counts_orders_per_client(self):
        orders = [
            order("X", 100, client="SOLO"),
            order("X", 1, client="BUSY"),
            order("Y", 1, client="BUSY"),
        ]

        result = top_clients(orders, 2)

        assert [(c.client, c.order_count) for c in result] == [("BUSY", 2), ("SOLO", 1)]

    def test_ties_keep_first_seen_order(self):
        orders = [order("X", 1, client="Z"), order("X", 1, client="M")]

        assert [c.client for c in top_clients(orders, 2)] == ["Z", "M"]


# ===================
# COMPUTE KPIS
# ===================

class TestComputeKpis:
    """Tests for compute_kpis."""

    def test_counts_and_revenue(self):
        orders = [
            order("X", 10, confirmations=[(1, date(2026, 1, 16))]),
            order("Y", 4),
            order("Z", 6, confirmations=[(6, date(2026, 1, 16))]),
        ]

        report = compute_kpis(orders, date(2026, 1, 1), date(2026, 1, 31), unit_price=Decimal("50"))

        assert report.order_count == 3
        # Any confirmation counts, partial or full
        assert report.confirmed_count == 2
        assert report.unconfirmed_count == 1
        assert report.estimated_revenue == Decimal("1000")

    def test_filters_by_creation_window(self):
        orders = [
            order("X", 1, created=date(2025, 12, 31)),
            order("Y", 1, created=date(2026, 1, 1)),
            order("Z", 1, created=date(2026, 1, 31)),
            order("W", 1, created=date(2026, 2, 1)),
        ]

        report = compute_kpis(orders, date(2026, 1, 1), date(2026, 1, 31), unit_price=1)

        assert report.order_count == 2
        assert [a.article for a in report.top_articles] == ["Y", "Z"]

    def test_empty_window(self):
        report = compute_kpis([], date(2026, 1, 1), date(2026, 1, 31))

        assert report.order_count == 0
        assert report.estimated_revenue == Decimal("0")
        assert report.top_articles == []
        assert report.top_clients == []

    def test_default_unit_price_from_settings(self):
        report = compute_kpis([order("X", 2)], date(2026, 1, 1), date(2026, 1, 31))

        assert report.estimated_revenue == Decimal("100")

    def test_inverted_window_rejected(self):
        with pytest.raises(ValidationError):
            compute_kpis([], date(2026, 2, 1), date(2026, 1, 1))

    def test_does_not_mutate_input(self):
        orders = [order("X", 2), order("Y", 3)]
        before = [o.model_dump() for o in orders]

        compute_kpis(orders, date(2026, 1, 1), date(2026, 1, 31))

        assert [o.model_dump() for o in orders] == before


class TestWindows:
    """Tests for period_window and filter_window."""

    @pytest.mark.parametrize("period,expected_start", [
        (KPIPeriod.ONE_MONTH, date(2026, 2, 15)),
        (KPIPeriod.THREE_MONTHS, date(2025, 12, 15)),
        (KPIPeriod.ONE_YEAR, date(2025, 3, 15)),
    ])
    def test_presets(self, period, expected_start):
        assert period_window(period, date(2026, 3, 15)) == (expected_start, date(2026, 3, 15))

    def test_month_end_clamped(self):
        start, _ = period_window(KPIPeriod.ONE_MONTH, date(2026, 3, 31))

        assert start == date(2026, 2, 28)

    def test_filter_window_inclusive(self):
        orders = [order("X", 1, created=date(2026, 1, 1)), order("Y", 1, created=date(2026, 1, 2))]

        assert filter_window(orders, date(2026, 1, 2), date(2026, 1, 2)) == [orders[1]]


# ===================
# SERVICE
# ===================

class TestKPIService:
    """Tests for KPIService with the mocked store."""

    def test_get_kpis_for_period(self, mock_db, mock_supabase):
        mock_supabase.set_table_data("orders", [
            OrderFactory.create(technology="TON100", ordered_quantity=5, creation_date=date(2026, 3, 1)),
            OrderFactory.create(technology="TON100", ordered_quantity=3, creation_date=date(2026, 3, 10)),
            OrderFactory.create(technology="TON200", ordered_quantity=4, creation_date=date(2025, 1, 1)),
        ])
        service = KPIService(order_service=OrderService())

        report = service.get_kpis_for_period(KPIPeriod.ONE_MONTH, today=date(2026, 3, 15))

        assert report.order_count == 2
        assert report.top_articles[0].article == "TON100"
        assert report.top_articles[0].quantity == Decimal("8")
