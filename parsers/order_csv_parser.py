"""
Order CSV parser for seeding the orders table.

Reads the semicolon-separated order export (one order per row, dates as
DD/MM/YYYY, up to ten quantity/date confirmation pairs) and turns each
row into an orders-table row. Confirmations are replayed through the
ledger so a row can never carry more confirmed quantity than ordered.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from io import StringIO
from pathlib import Path
from typing import Optional, Union
import structlog

import pandas as pd

from models.order import (
    Order,
    Unit,
    ProductFamily,
    CoverageGroup,
    OrderType,
    append_confirmation,
    QUANTITY_MAX_DIGITS,
    QUANTITY_DECIMAL_PLACES,
    QUANTITY_STEP,
)
from exceptions import AppError

logger = structlog.get_logger(__name__)

MAX_CONFIRMATIONS = 10

REQUIRED_COLUMNS = [
    "technology",
    "ordered_quantity",
    "final_client",
    "delivery_date",
]


# ===================
# DATA CLASSES
# ===================

@dataclass
class OrderCSVErrorRecord:
    """Single rejected row."""
    row: int
    field: str
    error: str
    value: Optional[str] = None


@dataclass
class OrderCSVParseResult:
    """Result of parsing an order CSV file."""
    rows: list[dict] = field(default_factory=list)
    errors: list[OrderCSVErrorRecord] = field(default_factory=list)
    total_rows: int = 0

    @property
    def success(self) -> bool:
        return len(self.rows) > 0


class OrderCSVParseError(AppError):
    """File could not be read as an order CSV."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="ORDER_CSV_PARSE_ERROR",
            message=message,
            status_code=422,
            details=details
        )


# ===================
# CELL HELPERS
# ===================

def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse DD/MM/YYYY; blank or malformed gives None."""
    if value is None or not str(value).strip():
        return None
    try:
        return datetime.strptime(str(value).strip(), "%d/%m/%Y").date()
    except ValueError:
        return None


def parse_quantity(value: Optional[str]) -> Decimal:
    """Parse a quantity cell (comma or dot decimal); blank gives 0."""
    if value is None or not str(value).strip():
        return Decimal("0")
    try:
        return Decimal(str(value).strip().replace(",", "."))
    except InvalidOperation:
        return Decimal("0")


def _cell(record: dict, column: str, default: Optional[str] = None) -> Optional[str]:
    value = record.get(column)
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return default
    value = str(value).strip()
    return value or default


def _enum_value(enum_cls, raw: Optional[str], default):
    try:
        return enum_cls(raw).value if raw else default.value
    except ValueError:
        return default.value


# ===================
# PARSER
# ===================

def _parse_row(record: dict, today: date) -> dict:
    """
    Convert one CSV record into an orders-table row.

    Raises:
        ValueError: with "<field>: <reason>" when the row is unusable
    """
    technology = _cell(record, "technology")
    final_client = _cell(record, "final_client")
    if not technology:
        raise ValueError("technology: required")
    if not final_client:
        raise ValueError("final_client: required")

    ordered = parse_quantity(_cell(record, "ordered_quantity"))
    if ordered <= 0:
        raise ValueError("ordered_quantity: must be greater than 0")
    if ordered >= Decimal(10) ** (QUANTITY_MAX_DIGITS - QUANTITY_DECIMAL_PLACES):
        raise ValueError("ordered_quantity: too large")
    if ordered != ordered.quantize(QUANTITY_STEP):
        raise ValueError(f"ordered_quantity: at most {QUANTITY_DECIMAL_PLACES} decimal places")

    delivery_date = parse_date(_cell(record, "delivery_date"))
    if delivery_date is None:
        raise ValueError("delivery_date: expected DD/MM/YYYY")

    creation_date = parse_date(_cell(record, "creation_date")) or today

    order = Order(
        id="csv-import",
        technology=technology,
        final_client=final_client,
        ordered_quantity=ordered,
        remaining_to_deliver=ordered,
        creation_date=creation_date,
        delivery_date=delivery_date,
    )

    for i in range(1, MAX_CONFIRMATIONS + 1):
        quantity = parse_quantity(_cell(record, f"confirmation_{i}_quantity"))
        confirmed_on = parse_date(_cell(record, f"confirmation_{i}_date"))
        if quantity > 0 and confirmed_on is not None:
            # OverconfirmationError propagates and rejects the row
            order = append_confirmation(order, quantity, confirmed_on)

    return {
        "technology": technology,
        "product_family": _enum_value(ProductFamily, _cell(record, "product_family"), ProductFamily.BULK_NIV2),
        "coverage_group": _enum_value(CoverageGroup, _cell(record, "coverage_group"), CoverageGroup.PF),
        "order_type": _enum_value(OrderType, _cell(record, "order_type"), OrderType.ZIG),
        "client_delivered_id": _cell(record, "client_delivered_id"),
        "final_client": final_client,
        "ordered_quantity": float(ordered),
        "shipped_quantity": float(parse_quantity(_cell(record, "shipped_quantity"))),
        "in_preparation_quantity": float(parse_quantity(_cell(record, "in_preparation_quantity"))),
        "remaining_to_deliver": float(order.remaining_to_deliver),
        "unit": _enum_value(Unit, _cell(record, "unit"), Unit.PIECE),
        "creation_date": creation_date.isoformat(),
        "delivery_date": delivery_date.isoformat(),
        "confirmations": [
            {"quantity": float(c.quantity), "date": c.date.isoformat()}
            for c in order.confirmations
        ],
        "version": 0,
    }


def parse_order_csv(
    source: Union[str, Path, bytes],
    today: Optional[date] = None,
) -> OrderCSVParseResult:
    """
    Parse an order CSV.

    Args:
        source: File path or raw bytes (UTF-8, ';' separated, header row)
        today: Fallback creation date for rows without one

    Returns:
        OrderCSVParseResult with insertable rows and per-row errors

    Raises:
        OrderCSVParseError: If the file cannot be read or lacks required columns
    """
    today = today or date.today()

    try:
        if isinstance(source, bytes):
            df = pd.read_csv(StringIO(source.decode("utf-8-sig")), sep=";", dtype=str)
        else:
            df = pd.read_csv(source, sep=";", dtype=str, encoding="utf-8-sig")
    except Exception as e:
        logger.error("order_csv_read_failed", error=str(e))
        raise OrderCSVParseError(f"Could not read CSV: {e}") from e

    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise OrderCSVParseError(
            f"Missing required columns: {', '.join(missing)}",
            details={"missing": missing, "found": list(df.columns)}
        )

    df = df.dropna(how="all")

    result = OrderCSVParseResult(total_rows=len(df))

    # Header is line 1
    for line, record in enumerate(df.to_dict(orient="records"), start=2):
        try:
            result.rows.append(_parse_row(record, today))
        except AppError as e:
            result.errors.append(OrderCSVErrorRecord(
                row=line,
                field="confirmations",
                error=e.message,
            ))
        except ValueError as e:
            field_name, _, reason = str(e).partition(": ")
            result.errors.append(OrderCSVErrorRecord(
                row=line,
                field=field_name,
                error=reason or str(e),
            ))

    logger.info(
        "order_csv_parsed",
        total_rows=result.total_rows,
        parsed=len(result.rows),
        errors=len(result.errors)
    )

    return result
