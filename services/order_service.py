"""
Order service: persistence of orders in Supabase.

Orders live in a single "orders" table; the confirmation ledger is a
jsonb array column on the same row so an append and the recomputed
remaining_to_deliver are written by one UPDATE.
"""

from typing import Optional
from decimal import Decimal
from datetime import date, timedelta
import structlog

from config import get_supabase_client, ORDERS_TABLE
from models.order import (
    Order,
    OrderCreate,
    OrderUpdate,
    Confirmation,
    ConfirmationStatus,
    latest_confirmation_date,
)
from exceptions import OrderNotFoundError, DatabaseError

logger = structlog.get_logger(__name__)

# PostgREST refuses unfiltered deletes
_NIL_UUID = "00000000-0000-0000-0000-000000000000"


class OrderService:
    """
    Order store.

    Handles CRUD, listing and the reads the reminder scanner needs.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = ORDERS_TABLE

    # ===================
    # ROW MAPPING
    # ===================

    @staticmethod
    def _row_to_order(row: dict) -> Order:
        """Convert a table row into an Order."""
        return Order(
            id=row["id"],
            technology=row["technology"],
            product_family=row.get("product_family") or "APS BulkNiv2",
            coverage_group=row.get("coverage_group") or "PF",
            order_type=row.get("order_type") or "ZIG",
            client_delivered_id=row.get("client_delivered_id"),
            final_client=row["final_client"],
            ordered_quantity=Decimal(str(row["ordered_quantity"])),
            shipped_quantity=Decimal(str(row.get("shipped_quantity") or 0)),
            in_preparation_quantity=Decimal(str(row.get("in_preparation_quantity") or 0)),
            remaining_to_deliver=Decimal(str(row["remaining_to_deliver"])),
            unit=row.get("unit") or "PCE",
            creation_date=row["creation_date"],
            delivery_date=row["delivery_date"],
            confirmations=[
                Confirmation(quantity=Decimal(str(c["quantity"])), date=c["date"])
                for c in (row.get("confirmations") or [])
            ],
            version=row.get("version") or 0,
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    @staticmethod
    def _confirmations_to_rows(confirmations: list[Confirmation]) -> list[dict]:
        return [
            {"quantity": float(c.quantity), "date": c.date.isoformat()}
            for c in confirmations
        ]

    # ===================
    # READ OPERATIONS
    # ===================

    def get_all(
        self,
        page: int = 1,
        page_size: int = 50,
        search: Optional[str] = None,
        status: Optional[ConfirmationStatus] = None,
    ) -> tuple[list[Order], int]:
        """
        Get orders with optional search and confirmation filter.

        Args:
            page: Page number (1-indexed)
            page_size: Items per page
            search: Case-insensitive match on final client, technology or client id
            status: confirmed = at least one confirmation, unconfirmed = none

        Returns:
            Tuple of (orders list, total count)
        """
        logger.info(
            "getting_orders",
            page=page,
            page_size=page_size,
            search=search,
            status=status
        )

        try:
            query = self.db.table(self.table).select("*", count="exact")

            if search:
                pattern = f"%{search}%"
                query = query.or_(
                    f"final_client.ilike.{pattern},"
                    f"technology.ilike.{pattern},"
                    f"client_delivered_id.ilike.{pattern}"
                )
            if status == ConfirmationStatus.CONFIRMED:
                query = query.neq("confirmations", "[]")
            elif status == ConfirmationStatus.UNCONFIRMED:
                query = query.eq("confirmations", "[]")

            offset = (page - 1) * page_size
            query = query.order("creation_date", desc=True)
            query = query.range(offset, offset + page_size - 1)

            result = query.execute()

            orders = [self._row_to_order(row) for row in result.data]
            total = result.count or 0

            logger.info("orders_retrieved", count=len(orders), total=total)

            return orders, total

        except Exception as e:
            logger.error("get_orders_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_by_id(self, order_id: str) -> Order:
        """
        Get a single order by ID.

        Raises:
            OrderNotFoundError: If order doesn't exist
        """
        logger.debug("getting_order", order_id=order_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", order_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_order_failed", order_id=order_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise OrderNotFoundError(order_id)

        return self._row_to_order(result.data[0])

    def find_by_delivery_window(self, start: date, end: date) -> list[Order]:
        """
        Orders whose delivery date falls in [start, end], both inclusive.

        Used by the reminder scanner.
        """
        logger.debug(
            "finding_orders_by_delivery_window",
            start=start.isoformat(),
            end=end.isoformat()
        )

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .gte("delivery_date", start.isoformat())
                .lte("delivery_date", end.isoformat())
                .order("delivery_date")
                .execute()
            )
            return [self._row_to_order(row) for row in result.data]

        except Exception as e:
            logger.error("find_by_delivery_window_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def get_recently_confirmed(self, days: int, today: Optional[date] = None) -> list[Order]:
        """
        Orders whose latest confirmation is at most `days` days old.

        Sorted by latest confirmation date, newest first.
        """
        today = today or date.today()
        cutoff = today - timedelta(days=days)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .neq("confirmations", "[]")
                .execute()
            )
        except Exception as e:
            logger.error("get_recently_confirmed_failed", error=str(e))
            raise DatabaseError("select", str(e))

        orders = []
        for row in result.data:
            order = self._row_to_order(row)
            latest = latest_confirmation_date(order)
            if latest is not None and cutoff <= latest <= today:
                orders.append(order)

        orders.sort(key=latest_confirmation_date, reverse=True)
        return orders

    def get_created_between(self, start: date, end: date) -> list[Order]:
        """Orders created in [start, end], for the KPI dashboard."""
        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .gte("creation_date", start.isoformat())
                .lte("creation_date", end.isoformat())
                .order("creation_date")
                .execute()
            )
            return [self._row_to_order(row) for row in result.data]

        except Exception as e:
            logger.error("get_created_between_failed", error=str(e))
            raise DatabaseError("select", str(e))

    def count_all(self) -> int:
        """Count all orders."""
        try:
            result = self.db.table(self.table).select("id", count="exact").execute()
            return result.count or 0
        except Exception as e:
            logger.error("count_orders_failed", error=str(e))
            raise DatabaseError("count", str(e))

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: OrderCreate) -> Order:
        """
        Create a new order.

        An order created with confirmed=True gets one confirmation
        for the full quantity, dated today.
        """
        logger.info("creating_order", technology=data.technology, final_client=data.final_client)

        today = date.today()
        confirmations = []
        if data.confirmed:
            confirmations.append(Confirmation(quantity=data.ordered_quantity, date=today))
        confirmed_total = sum((c.quantity for c in confirmations), Decimal("0"))

        row = {
            "technology": data.technology,
            "product_family": data.product_family.value,
            "coverage_group": data.coverage_group.value,
            "order_type": data.order_type.value,
            "client_delivered_id": data.client_delivered_id,
            "final_client": data.final_client,
            "ordered_quantity": float(data.ordered_quantity),
            "shipped_quantity": 0,
            "in_preparation_quantity": 0,
            "remaining_to_deliver": float(data.ordered_quantity - confirmed_total),
            "unit": data.unit.value,
            "creation_date": today.isoformat(),
            "delivery_date": data.delivery_date.isoformat(),
            "confirmations": self._confirmations_to_rows(confirmations),
            "version": 0,
        }

        try:
            result = self.db.table(self.table).insert(row).execute()
        except Exception as e:
            logger.error("create_order_failed", error=str(e))
            raise DatabaseError("insert", str(e))

        order = self._row_to_order(result.data[0])
        logger.info("order_created", order_id=order.id, confirmed=data.confirmed)
        return order

    def insert_many(self, rows: list[dict]) -> int:
        """Bulk insert raw order rows (seeding). Returns inserted count."""
        if not rows:
            return 0
        try:
            result = self.db.table(self.table).insert(rows).execute()
            return len(result.data)
        except Exception as e:
            logger.error("insert_orders_failed", count=len(rows), error=str(e))
            raise DatabaseError("insert", str(e))

    def update(self, order_id: str, data: OrderUpdate) -> Order:
        """
        Administrative edit. Never touches the ledger or the ordered quantity.

        Raises:
            OrderNotFoundError: If order doesn't exist
        """
        logger.info("updating_order", order_id=order_id)

        existing = self.get_by_id(order_id)

        update_data = {}
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            if isinstance(value, Decimal):
                value = float(value)
            elif isinstance(value, date):
                value = value.isoformat()
            elif hasattr(value, "value"):
                value = value.value
            update_data[field] = value

        if not update_data:
            return existing

        try:
            result = (
                self.db.table(self.table)
                .update(update_data)
                .eq("id", order_id)
                .execute()
            )
        except Exception as e:
            logger.error("update_order_failed", order_id=order_id, error=str(e))
            raise DatabaseError("update", str(e))

        if not result.data:
            raise OrderNotFoundError(order_id)

        logger.info("order_updated", order_id=order_id, fields=list(update_data.keys()))
        return self._row_to_order(result.data[0])

    def save(self, order: Order, expected_version: int) -> Optional[Order]:
        """
        Write the ledger of an order if nobody else wrote it since we read it.

        The confirmations, remaining_to_deliver and version are written in
        one conditional UPDATE (id and version must both match).

        Returns:
            The stored order, or None if the version no longer matches
        """
        row = {
            "confirmations": self._confirmations_to_rows(order.confirmations),
            "remaining_to_deliver": float(order.remaining_to_deliver),
            "version": expected_version + 1,
        }

        try:
            result = (
                self.db.table(self.table)
                .update(row)
                .eq("id", order.id)
                .eq("version", expected_version)
                .execute()
            )
        except Exception as e:
            logger.error("save_order_failed", order_id=order.id, error=str(e))
            raise DatabaseError("update", str(e))

        if not result.data:
            logger.warning(
                "order_version_conflict",
                order_id=order.id,
                expected_version=expected_version
            )
            return None

        return self._row_to_order(result.data[0])

    def delete(self, order_id: str) -> bool:
        """
        Delete an order.

        Raises:
            OrderNotFoundError: If order doesn't exist
        """
        logger.info("deleting_order", order_id=order_id)

        self.get_by_id(order_id)

        try:
            self.db.table(self.table).delete().eq("id", order_id).execute()
        except Exception as e:
            logger.error("delete_order_failed", order_id=order_id, error=str(e))
            raise DatabaseError("delete", str(e))

        logger.info("order_deleted", order_id=order_id)
        return True

    def delete_all(self) -> int:
        """Remove every order (re-seeding). Returns deleted count."""
        try:
            result = self.db.table(self.table).delete().neq("id", _NIL_UUID).execute()
            deleted = len(result.data or [])
            logger.info("orders_deleted_all", count=deleted)
            return deleted
        except Exception as e:
            logger.error("delete_all_orders_failed", error=str(e))
            raise DatabaseError("delete", str(e))


# Singleton instance
_order_service: Optional[OrderService] = None


def get_order_service() -> OrderService:
    """Get or create OrderService instance."""
    global _order_service
    if _order_service is None:
        _order_service = OrderService()
    return _order_service
