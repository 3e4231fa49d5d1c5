"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.orders import router as orders_router
from routes.dashboard import router as dashboard_router

__all__ = [
    "orders_router",
    "dashboard_router",
]
