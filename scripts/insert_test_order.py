"""
Insert one unconfirmed order due in two days.

The next scanner tick should send a reminder for it.
"""

import sys
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

# Add backend to path so we can import modules
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import structlog

from models.order import OrderCreate
from services.order_service import get_order_service

logger = structlog.get_logger(__name__)


def insert_test_order():
    """Create the reminder test order."""
    service = get_order_service()

    order = service.create(OrderCreate(
        technology="APS BulkNiv2",
        final_client="TEST CLIENT",
        client_delivered_id="test123",
        ordered_quantity=Decimal("10"),
        delivery_date=date.today() + timedelta(days=2),
    ))

    logger.info("test_order_inserted", order_id=order.id)
    print(f"✓ Test order inserted: {order.id} (delivery {order.delivery_date})")
    return order


if __name__ == "__main__":
    insert_test_order()
