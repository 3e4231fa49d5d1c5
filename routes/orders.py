"""
Order API routes.

Thin pass-throughs to OrderService and ConfirmationService.
Errors are returned in the standard {"error": {...}} format.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional
import structlog

from config import settings
from models.order import (
    OrderCreate,
    OrderUpdate,
    ConfirmationCreate,
    ConfirmationStatus,
    OrderResponse,
    OrderListResponse,
)
from services.order_service import get_order_service
from services.confirmation_service import get_confirmation_service
from exceptions import AppError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/orders", tags=["Orders"])


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    # Unexpected error
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


# ===================
# ROUTES
# ===================

@router.get("", response_model=OrderListResponse)
async def list_orders(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=200, description="Items per page"),
    search: Optional[str] = Query(None, description="Search client, technology or client id"),
    status: Optional[ConfirmationStatus] = Query(None, description="confirmed or unconfirmed"),
):
    """
    List orders, newest first.

    status=confirmed keeps orders with at least one confirmation.
    """
    try:
        service = get_order_service()
        orders, total = service.get_all(
            page=page,
            page_size=page_size,
            search=search,
            status=status,
        )
        return OrderListResponse.create(
            data=[OrderResponse.from_order(o) for o in orders],
            total=total,
            page=page,
            page_size=page_size,
        )

    except Exception as e:
        return handle_error(e)


@router.get("/recently-confirmed", response_model=list[OrderResponse])
async def list_recently_confirmed(
    days: Optional[int] = Query(None, ge=1, le=365, description="Look-back window in days"),
):
    """Orders whose latest confirmation falls within the last `days` days."""
    try:
        service = get_order_service()
        orders = service.get_recently_confirmed(days or settings.recent_confirmation_days)
        return [OrderResponse.from_order(o) for o in orders]

    except Exception as e:
        return handle_error(e)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str):
    """
    Get a single order with its confirmation ledger.

    Raises:
        404: Order not found
    """
    try:
        service = get_order_service()
        return OrderResponse.from_order(service.get_by_id(order_id))

    except Exception as e:
        return handle_error(e)


@router.post("", response_model=OrderResponse, status_code=201)
async def create_order(data: OrderCreate):
    """
    Create a new order.

    Raises:
        422: Validation error
    """
    try:
        service = get_order_service()
        return OrderResponse.from_order(service.create(data))

    except Exception as e:
        return handle_error(e)


@router.patch("/{order_id}", response_model=OrderResponse)
async def update_order(order_id: str, data: OrderUpdate):
    """
    Edit order fields. The ledger and ordered quantity cannot be edited.

    Raises:
        404: Order not found
    """
    try:
        service = get_order_service()
        return OrderResponse.from_order(service.update(order_id, data))

    except Exception as e:
        return handle_error(e)


@router.delete("/{order_id}")
async def delete_order(order_id: str):
    """
    Delete an order.

    Raises:
        404: Order not found
    """
    try:
        service = get_order_service()
        service.delete(order_id)
        return {"success": True, "id": order_id}

    except Exception as e:
        return handle_error(e)


@router.put("/{order_id}/confirm", response_model=OrderResponse)
async def confirm_order(order_id: str, data: ConfirmationCreate):
    """
    Confirm part (or all) of an order.

    Raises:
        404: Order not found
        409: Order modified concurrently on every attempt
        422: Quantity above what remains to confirm (details.max_quantity)
    """
    try:
        service = get_confirmation_service()
        order = service.confirm(order_id, data.quantity, data.confirmation_date)
        return OrderResponse.from_order(order)

    except Exception as e:
        return handle_error(e)


@router.get("/{order_id}/remaining")
async def get_remaining_quantity(order_id: str):
    """
    Quantity that can still be confirmed on an order.

    Raises:
        404: Order not found
    """
    try:
        service = get_confirmation_service()
        return {
            "id": order_id,
            "remaining_quantity": service.get_remaining(order_id),
        }

    except Exception as e:
        return handle_error(e)
