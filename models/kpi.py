"""
Dashboard KPI schemas.
"""

from pydantic import Field
from enum import Enum
from datetime import date
from decimal import Decimal

from models.base import BaseSchema


class KPIPeriod(str, Enum):
    """Dashboard period presets, each ending today."""
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    ONE_YEAR = "1A"


class ArticleTotal(BaseSchema):
    """Ordered quantity summed for one article."""

    article: str
    quantity: Decimal


class ClientTotal(BaseSchema):
    """Number of orders placed by one client."""

    client: str
    order_count: int


class KPIReport(BaseSchema):
    """KPIs for orders created within a window."""

    window_start: date
    window_end: date
    order_count: int = Field(..., ge=0)

    # "Confirmed" here means at least one confirmation entry,
    # not a fully reconciled order.
    confirmed_count: int = Field(..., ge=0)
    unconfirmed_count: int = Field(..., ge=0)

    estimated_revenue: Decimal = Field(..., description="ordered quantity x flat unit price")
    top_articles: list[ArticleTotal] = Field(default_factory=list)
    top_clients: list[ClientTotal] = Field(default_factory=list)
