"""
KPI service for the dashboard.

compute_kpis and the top-N helpers are pure functions over a list of
orders; KPIService only loads the orders for a window and delegates.

Note: "confirmed" here means the order has at least one confirmation
entry. That is looser than is_fully_confirmed, which the reminder
scanner uses.
"""

import calendar
from typing import Optional
from decimal import Decimal
from datetime import date
import structlog

from config import settings
from models.order import Order, has_confirmation
from models.kpi import KPIPeriod, ArticleTotal, ClientTotal, KPIReport
from services.order_service import OrderService, get_order_service
from exceptions import ValidationError

logger = structlog.get_logger(__name__)

DEFAULT_TOP_N = 3


def _months_before(day: date, months: int) -> date:
    """Same day `months` months earlier, clamped to the end of shorter months."""
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def period_window(period: KPIPeriod, today: Optional[date] = None) -> tuple[date, date]:
    """
    Window for a dashboard preset, ending today.

    1M = one month back, 3M = three months back, 1A = one year back.
    """
    today = today or date.today()
    months = {
        KPIPeriod.ONE_MONTH: 1,
        KPIPeriod.THREE_MONTHS: 3,
        KPIPeriod.ONE_YEAR: 12,
    }[period]
    return _months_before(today, months), today


def filter_window(orders: list[Order], window_start: date, window_end: date) -> list[Order]:
    """Orders created in [window_start, window_end], input order kept."""
    return [o for o in orders if window_start <= o.creation_date <= window_end]


def top_articles(orders: list[Order], n: int = DEFAULT_TOP_N) -> list[ArticleTotal]:
    """
    Articles ranked by summed ordered quantity, highest first.

    Ties keep the order in which articles were first seen.
    """
    totals: dict[str, Decimal] = {}
    for order in orders:
        totals[order.technology] = totals.get(order.technology, Decimal("0")) + order.ordered_quantity

    # sorted() is stable and dicts keep insertion order
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [ArticleTotal(article=article, quantity=qty) for article, qty in ranked[:n]]


def top_clients(orders: list[Order], n: int = DEFAULT_TOP_N) -> list[ClientTotal]:
    """
    Clients ranked by number of orders, highest first.

    Ties keep the order in which clients were first seen.
    """
    counts: dict[str, int] = {}
    for order in orders:
        counts[order.final_client] = counts.get(order.final_client, 0) + 1

    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [ClientTotal(client=client, order_count=count) for client, count in ranked[:n]]


def compute_kpis(
    orders: list[Order],
    window_start: date,
    window_end: date,
    top_n: int = DEFAULT_TOP_N,
    unit_price: Optional[Decimal] = None,
) -> KPIReport:
    """
    Compute dashboard KPIs for orders created within a window.

    Args:
        orders: Candidate orders (any creation date)
        window_start: First creation date included
        window_end: Last creation date included
        top_n: Size of the article and client rankings
        unit_price: Flat price per unit for the revenue estimate

    Returns:
        KPIReport
    """
    if window_start > window_end:
        raise ValidationError(
            "Window start must not be after window end",
            details={"start": window_start.isoformat(), "end": window_end.isoformat()}
        )

    price = Decimal(str(unit_price if unit_price is not None else settings.unit_price_eur))
    in_window = filter_window(orders, window_start, window_end)

    confirmed = sum(1 for o in in_window if has_confirmation(o))
    revenue = sum((o.ordered_quantity * price for o in in_window), Decimal("0"))

    return KPIReport(
        window_start=window_start,
        window_end=window_end,
        order_count=len(in_window),
        confirmed_count=confirmed,
        unconfirmed_count=len(in_window) - confirmed,
        estimated_revenue=revenue,
        top_articles=top_articles(in_window, top_n),
        top_clients=top_clients(in_window, top_n),
    )


class KPIService:
    """Loads orders for a window and computes KPIs."""

    def __init__(self, order_service: Optional[OrderService] = None):
        self.orders = order_service or get_order_service()

    def get_kpis(
        self,
        window_start: date,
        window_end: date,
        top_n: int = DEFAULT_TOP_N,
    ) -> KPIReport:
        logger.info(
            "computing_kpis",
            start=window_start.isoformat(),
            end=window_end.isoformat(),
            top_n=top_n
        )
        orders = self.orders.get_created_between(window_start, window_end)
        report = compute_kpis(orders, window_start, window_end, top_n=top_n)
        logger.info(
            "kpis_computed",
            orders=report.order_count,
            confirmed=report.confirmed_count
        )
        return report

    def get_kpis_for_period(
        self,
        period: KPIPeriod,
        top_n: int = DEFAULT_TOP_N,
        today: Optional[date] = None,
    ) -> KPIReport:
        start, end = period_window(period, today)
        return self.get_kpis(start, end, top_n=top_n)


# Singleton instance
_kpi_service: Optional[KPIService] = None


def get_kpi_service() -> KPIService:
    """Get or create KPIService instance."""
    global _kpi_service
    if _kpi_service is None:
        _kpi_service = KPIService()
    return _kpi_service
