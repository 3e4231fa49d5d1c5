"""
Dashboard API routes.

KPIs for orders created within a period.
"""

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from typing import Optional
from datetime import date
import structlog

from models.kpi import KPIPeriod, KPIReport
from services.kpi_service import get_kpi_service, DEFAULT_TOP_N
from exceptions import AppError, ValidationError

logger = structlog.get_logger(__name__)

router = APIRouter()


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
# KPI ROUTES
# ===================

@router.get("/kpis", response_model=KPIReport)
async def get_kpis(
    period: KPIPeriod = Query(KPIPeriod.ONE_MONTH, description="1M, 3M or 1A"),
    start: Optional[date] = Query(None, description="Window start, overrides period"),
    end: Optional[date] = Query(None, description="Window end, overrides period"),
    top_n: int = Query(DEFAULT_TOP_N, ge=1, le=20, description="Size of top rankings"),
):
    """
    Confirmed/unconfirmed counts, estimated revenue, top articles and clients.

    Confirmed means at least one confirmation was recorded.
    """
    try:
        service = get_kpi_service()

        if start is not None or end is not None:
            if start is None or end is None:
                raise ValidationError(
                    "start and end must be given together",
                    details={"start": str(start), "end": str(end)}
                )
            return service.get_kpis(start, end, top_n=top_n)

        return service.get_kpis_for_period(period, top_n=top_n)

    except Exception as e:
        return handle_error(e)
