"""
Pydantic models for validation and serialization.
"""

from models.base import (
    BaseSchema,
    TimestampMixin,
    PaginatedResponse,
)
from models.order import (
    Unit,
    ProductFamily,
    CoverageGroup,
    OrderType,
    ConfirmationStatus,
    Confirmation,
    Order,
    OrderCreate,
    OrderUpdate,
    ConfirmationCreate,
    OrderResponse,
    OrderListResponse,
    total_confirmed,
    remaining_quantity,
    is_fully_confirmed,
    has_confirmation,
    latest_confirmation_date,
    append_confirmation,
)
from models.kpi import (
    KPIPeriod,
    ArticleTotal,
    ClientTotal,
    KPIReport,
)

__all__ = [
    # Base
    "BaseSchema",
    "TimestampMixin",
    "PaginatedResponse",

    # Order
    "Unit",
    "ProductFamily",
    "CoverageGroup",
    "OrderType",
    "ConfirmationStatus",
    "Confirmation",
    "Order",
    "OrderCreate",
    "OrderUpdate",
    "ConfirmationCreate",
    "OrderResponse",
    "OrderListResponse",
    "total_confirmed",
    "remaining_quantity",
    "is_fully_confirmed",
    "has_confirmation",
    "latest_confirmation_date",
    "append_confirmation",

    # KPI
    "KPIPeriod",
    "ArticleTotal",
    "ClientTotal",
    "KPIReport",
]
