"""
Order schemas and the confirmation ledger.

An order carries an append-only list of partial confirmations.
Everything derived from that list (total confirmed, fully confirmed,
latest confirmation date) is computed here from the ledger itself;
only remaining_to_deliver is stored, and it is rewritten on every append.
"""

from pydantic import Field, field_validator
from typing import Optional
from enum import Enum
import datetime
from datetime import date
from decimal import Decimal

from models.base import BaseSchema, TimestampMixin, PaginatedResponse
from exceptions import InvalidQuantityError, OverconfirmationError

# Quantities are written to the store as JSON numbers (floats)
QUANTITY_MAX_DIGITS = 12
QUANTITY_DECIMAL_PLACES = 3
QUANTITY_STEP = Decimal("0.001")


class Unit(str, Enum):
    """Unit the ordered quantity is expressed in."""
    PIECE = "PCE"
    KILOGRAM = "KG"
    LITER = "L"
    METER = "M"


class ProductFamily(str, Enum):
    """APS product families."""
    BULK_NIV2 = "APS BulkNiv2"
    FINISHED_PRODUCT = "APS Finished Product"
    LASER_BOX = "APS Laser Box"
    PACKAGING_LABEL = "APS Packaging Label"
    COPIER_BOX = "APS Copier Box"
    CARTRIDGE_LABEL = "APS Cartridge Label"
    AIRBAG_INSERT_INLAY = "APS Airbag/Insert/Inlay"
    PACKAGING_OTHER = "APS Packaging Other"


class CoverageGroup(str, Enum):
    """Coverage group: finished product or manufacturing order."""
    PF = "PF"
    OF = "OF"


class OrderType(str, Enum):
    """Order type code."""
    ZIG = "ZIG"
    STD = "STD"


class ConfirmationStatus(str, Enum):
    """List filter: orders with or without any confirmation entry."""
    CONFIRMED = "confirmed"
    UNCONFIRMED = "unconfirmed"


# ===================
# LEDGER ENTRIES
# ===================

class Confirmation(BaseSchema):
    """One partial confirmation. Never edited once recorded."""

    quantity: Decimal = Field(
        ...,
        gt=0,
        max_digits=QUANTITY_MAX_DIGITS,
        decimal_places=QUANTITY_DECIMAL_PLACES,
        description="Confirmed quantity"
    )
    date: datetime.date = Field(..., description="Date the confirmation was recorded")


# ===================
# ORDER ENTITY
# ===================

class Order(BaseSchema, TimestampMixin):
    """A customer order and its confirmation ledger."""

    id: str = Field(..., description="Order UUID")

    # Classification, carried through unchanged
    technology: str = Field(..., description="Technology code, also the article number")
    product_family: ProductFamily = Field(default=ProductFamily.BULK_NIV2)
    coverage_group: CoverageGroup = Field(default=CoverageGroup.PF)
    order_type: OrderType = Field(default=OrderType.ZIG)
    client_delivered_id: Optional[str] = Field(None, description="Delivered-to client id")
    final_client: str = Field(..., description="Final client name")

    # Quantities
    ordered_quantity: Decimal = Field(
        ...,
        gt=0,
        max_digits=QUANTITY_MAX_DIGITS,
        decimal_places=QUANTITY_DECIMAL_PLACES,
        description="Committed quantity"
    )
    shipped_quantity: Decimal = Field(default=Decimal("0"), ge=0)
    in_preparation_quantity: Decimal = Field(default=Decimal("0"), ge=0)
    remaining_to_deliver: Decimal = Field(..., description="ordered_quantity minus confirmed total")
    unit: Unit = Field(default=Unit.PIECE)

    # Dates
    creation_date: date = Field(..., description="Date the order was created")
    delivery_date: date = Field(..., description="Promised delivery date")

    confirmations: list[Confirmation] = Field(default_factory=list)
    version: int = Field(default=0, ge=0, description="Write counter for conditional updates")


def total_confirmed(order: Order) -> Decimal:
    """Sum of all confirmed quantities."""
    return sum((c.quantity for c in order.confirmations), Decimal("0"))


def remaining_quantity(order: Order) -> Decimal:
    """Quantity that can still be confirmed, recomputed from the ledger."""
    return order.ordered_quantity - total_confirmed(order)


def is_fully_confirmed(order: Order) -> bool:
    """True once the confirmed total reaches the ordered quantity."""
    return total_confirmed(order) >= order.ordered_quantity


def has_confirmation(order: Order) -> bool:
    """True if at least one confirmation was recorded (reporting definition)."""
    return len(order.confirmations) > 0


def latest_confirmation_date(order: Order) -> Optional[date]:
    """Most recent confirmation date, regardless of entry order."""
    if not order.confirmations:
        return None
    return max(c.date for c in order.confirmations)


def append_confirmation(order: Order, quantity: Decimal, confirmation_date: date) -> Order:
    """
    Record a partial confirmation against an order.

    Returns a new Order with the confirmation appended and
    remaining_to_deliver recomputed. The given order is left untouched,
    so a rejected confirmation never changes anything.

    Args:
        order: Current order state
        quantity: Quantity to confirm (> 0)
        confirmation_date: Date of the confirmation, past or future allowed

    Returns:
        Updated Order

    Raises:
        InvalidQuantityError: If quantity is not positive or has more than
            QUANTITY_DECIMAL_PLACES decimals
        OverconfirmationError: If quantity exceeds what remains to confirm
    """
    quantity = Decimal(str(quantity))
    if quantity <= 0:
        raise InvalidQuantityError("quantity", quantity)

    remaining = remaining_quantity(order)
    if quantity > remaining:
        raise OverconfirmationError(requested=quantity, max_quantity=remaining)

    if quantity != quantity.quantize(QUANTITY_STEP):
        raise InvalidQuantityError(
            "quantity",
            quantity,
            reason=f"must have at most {QUANTITY_DECIMAL_PLACES} decimal places"
        )

    confirmations = [
        *order.confirmations,
        Confirmation(quantity=quantity, date=confirmation_date),
    ]

    return order.model_copy(update={
        "confirmations": confirmations,
        "remaining_to_deliver": remaining - quantity,
    })


# ===================
# REQUEST SCHEMAS
# ===================

class OrderCreate(BaseSchema):
    """
    Create a new order.

    Required: technology, final_client, ordered_quantity, delivery_date
    Optional: everything else; confirmed=True records the full quantity as confirmed today
    """

    technology: str = Field(..., min_length=1, max_length=100)
    product_family: ProductFamily = Field(default=ProductFamily.BULK_NIV2)
    coverage_group: CoverageGroup = Field(default=CoverageGroup.PF)
    order_type: OrderType = Field(default=OrderType.ZIG)
    client_delivered_id: Optional[str] = Field(None, max_length=50)
    final_client: str = Field(..., min_length=1, max_length=200)
    ordered_quantity: Decimal = Field(
        ...,
        gt=0,
        max_digits=QUANTITY_MAX_DIGITS,
        decimal_places=QUANTITY_DECIMAL_PLACES
    )
    unit: Unit = Field(default=Unit.PIECE)
    delivery_date: date = Field(..., description="Promised delivery date")
    confirmed: bool = Field(default=False, description="Order is already fully confirmed")

    @field_validator("delivery_date")
    @classmethod
    def not_past_date(cls, v: date) -> date:
        """Delivery date cannot be in the past."""
        if v < date.today():
            raise ValueError("Delivery date cannot be in the past")
        return v


class OrderUpdate(BaseSchema):
    """
    Administrative edit of an order.

    All fields optional - only provided fields are updated.
    The ordered quantity and the confirmation ledger are not editable.
    """

    technology: Optional[str] = Field(None, min_length=1, max_length=100)
    product_family: Optional[ProductFamily] = None
    coverage_group: Optional[CoverageGroup] = None
    order_type: Optional[OrderType] = None
    client_delivered_id: Optional[str] = Field(None, max_length=50)
    final_client: Optional[str] = Field(None, min_length=1, max_length=200)
    shipped_quantity: Optional[Decimal] = Field(None, ge=0, decimal_places=QUANTITY_DECIMAL_PLACES)
    in_preparation_quantity: Optional[Decimal] = Field(None, ge=0, decimal_places=QUANTITY_DECIMAL_PLACES)
    unit: Optional[Unit] = None
    delivery_date: Optional[date] = None


class ConfirmationCreate(BaseSchema):
    """Confirm part (or all) of an order."""

    quantity: Decimal = Field(
        ...,
        gt=0,
        max_digits=QUANTITY_MAX_DIGITS,
        decimal_places=QUANTITY_DECIMAL_PLACES,
        description="Quantity to confirm"
    )
    confirmation_date: date = Field(..., description="Date of the confirmation")


# ===================
# RESPONSE SCHEMAS
# ===================

class OrderResponse(Order):
    """Order with its derived ledger figures."""

    total_confirmed: Decimal = Field(default=Decimal("0"))
    is_fully_confirmed: bool = False
    latest_confirmation_date: Optional[date] = None

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            **order.model_dump(),
            total_confirmed=total_confirmed(order),
            is_fully_confirmed=is_fully_confirmed(order),
            latest_confirmation_date=latest_confirmation_date(order),
        )


class OrderListResponse(PaginatedResponse):
    """List of orders with pagination."""

    data: list[OrderResponse]
