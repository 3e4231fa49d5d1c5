"""
Business logic services.

Each service handles one domain area.
"""

from services.order_service import OrderService, get_order_service
from services.confirmation_service import ConfirmationService, get_confirmation_service
from services.kpi_service import KPIService, get_kpi_service, compute_kpis
from services.reminder_scanner import (
    DeliveryRiskScanner,
    build_dispatcher,
    create_reminder_scanner,
)

__all__ = [
    "OrderService",
    "get_order_service",
    "ConfirmationService",
    "get_confirmation_service",
    "KPIService",
    "get_kpi_service",
    "compute_kpis",
    "DeliveryRiskScanner",
    "build_dispatcher",
    "create_reminder_scanner",
]
