"""Table Occupancy Coordinator.

The only writer of ``Table.status`` and ``Table.active_order_id``. Keeps a
table's occupancy in step with the orders placed against it:

- occupied  <=> exactly one non-terminal order linked
- any other status <=> no non-terminal order linked

Staff-facing methods check the ``tables`` capability and run their own unit
of work. The ``_occupy``/``_release`` helpers are for OrderService, which
calls them inside its own transaction after checking ``orders``.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from floorops.core.config import settings
from floorops.core.errors import ConflictError, InvalidTransitionError, NotFoundError
from floorops.core.rbac import Capability, require_capability
from floorops.db.session import atomic
from floorops.models.restaurant import Order, Table, TableStatus

logger = logging.getLogger(__name__)

# Valid table state transitions
TABLE_STATE_TRANSITIONS = {
    TableStatus.AVAILABLE.value: [TableStatus.OCCUPIED.value, TableStatus.RESERVED.value],
    TableStatus.OCCUPIED.value: [TableStatus.CLEANING.value, TableStatus.AVAILABLE.value],
    TableStatus.RESERVED.value: [TableStatus.OCCUPIED.value, TableStatus.AVAILABLE.value],
    TableStatus.CLEANING.value: [TableStatus.AVAILABLE.value],
}


def validate_state_transition(current_state: str, new_state: str) -> bool:
    """Check if a table state transition is valid."""
    return new_state in TABLE_STATE_TRANSITIONS.get(current_state, [])


class TableService:
    """Table records and their occupancy state."""

    def __init__(self, db: Session):
        self.db = db

    # ===== READS =====

    def get_table(self, table_id: int) -> Table:
        table = self.db.get(Table, table_id)
        if table is None:
            raise NotFoundError("Table", table_id)
        return table

    def get_by_number(self, number: int) -> Optional[Table]:
        return self.db.scalars(select(Table).where(Table.number == number)).first()

    def list_tables(self, status: Optional[str] = None, area: Optional[str] = None) -> List[Table]:
        stmt = select(Table).order_by(Table.number)
        if status:
            stmt = stmt.where(Table.status == status)
        if area:
            stmt = stmt.where(Table.area == area)
        return list(self.db.scalars(stmt))

    def table_stats(self, actor) -> Dict[str, Any]:
        """Counts per status and the occupancy rate."""
        require_capability(actor, Capability.REPORTS)
        rows = self.db.execute(select(Table.status, func.count(Table.id)).group_by(Table.status)).all()
        counts = {status.value: 0 for status in TableStatus}
        for status, count in rows:
            counts[status] = count
        total = sum(counts.values())
        return {
            "total": total,
            "by_status": counts,
            "occupancy_rate": round(counts[TableStatus.OCCUPIED.value] / total, 4) if total else 0.0,
        }

    # ===== RECORDS =====

    def create_table(self, actor, number: int, capacity: int = 4, area: Optional[str] = None) -> Table:
        require_capability(actor, Capability.TABLES)
        table = Table(number=number, capacity=capacity, area=area, status=TableStatus.AVAILABLE.value)
        if self.get_by_number(number) is not None:
            raise ConflictError(f"Table number {number} already exists", number=number)

        with atomic(self.db):
            self.db.add(table)

        logger.info(f"Table {table.id} (number {number}) created by profile {actor.id}")
        return table

    def delete_table(self, actor, table_id: int) -> None:
        require_capability(actor, Capability.TABLES)
        with atomic(self.db):
            table = self._get_for_update(table_id)
            referencing = self.db.scalar(select(func.count(Order.id)).where(Order.table_id == table_id))
            if referencing:
                raise ConflictError(
                    f"Table {table.number} is referenced by {referencing} order(s) and cannot be deleted",
                    table_id=table_id,
                )
            self.db.delete(table)

        logger.info(f"Table {table_id} deleted by profile {actor.id}")

    # ===== STAFF TRANSITIONS =====

    def reserve(self, actor, table_id: int, expected_version: Optional[int] = None) -> Table:
        require_capability(actor, Capability.TABLES)
        with atomic(self.db):
            table = self._get_for_update(table_id)
            table.check_version(expected_version)
            self._require_status(table, TableStatus.AVAILABLE, TableStatus.RESERVED)
            self._set_status(table, TableStatus.RESERVED)
        logger.info(f"Table {table.number} reserved by profile {actor.id}")
        return table

    def cancel_reservation(self, actor, table_id: int, expected_version: Optional[int] = None) -> Table:
        require_capability(actor, Capability.TABLES)
        with atomic(self.db):
            table = self._get_for_update(table_id)
            table.check_version(expected_version)
            self._require_status(table, TableStatus.RESERVED, TableStatus.AVAILABLE)
            self._set_status(table, TableStatus.AVAILABLE)
        logger.info(f"Reservation on table {table.number} cancelled by profile {actor.id}")
        return table

    def occupy(self, actor, table_id: int, order_id: int, expected_version: Optional[int] = None) -> Table:
        """Seat an existing open order at an available table."""
        require_capability(actor, Capability.TABLES)
        with atomic(self.db):
            table = self._get_for_update(table_id)
            table.check_version(expected_version)
            order = self.db.get(Order, order_id)
            if order is None:
                raise NotFoundError("Order", order_id)
            if order.is_terminal:
                raise ConflictError(f"Order {order.order_number} is already {order.status}", order_id=order_id)
            if order.table_id is not None and order.table_id != table_id:
                raise ConflictError(
                    f"Order {order.order_number} is already seated at table {order.table_id}",
                    order_id=order_id,
                )
            self._occupy(table, order)
        logger.info(f"Table {table.number} occupied by order {order_id} (profile {actor.id})")
        return table

    def release(self, actor, table_id: int, expected_version: Optional[int] = None) -> Table:
        """Clear a stale active-order link.

        Tables are released automatically when their order is delivered or
        cancelled. Releasing by hand is only allowed once the linked order
        is no longer open; an open order must be closed through OrderService.
        """
        require_capability(actor, Capability.TABLES)
        with atomic(self.db):
            table = self._get_for_update(table_id)
            table.check_version(expected_version)
            if table.active_order_id is not None:
                order = self.db.get(Order, table.active_order_id)
                if order is not None and not order.is_terminal:
                    raise ConflictError(
                        f"Table {table.number} has open order {order.order_number}; deliver or cancel it first",
                        table_id=table_id,
                        order_id=order.id,
                    )
            self._release(table)
        logger.info(f"Table {table.number} released by profile {actor.id}")
        return table

    def finish_cleaning(self, actor, table_id: int, expected_version: Optional[int] = None) -> Table:
        require_capability(actor, Capability.TABLES)
        with atomic(self.db):
            table = self._get_for_update(table_id)
            table.check_version(expected_version)
            self._require_status(table, TableStatus.CLEANING, TableStatus.AVAILABLE)
            self._set_status(table, TableStatus.AVAILABLE)
        logger.info(f"Table {table.number} cleaned and available (profile {actor.id})")
        return table

    # ===== ORDER-DRIVEN TRANSITIONS (caller owns the transaction) =====

    def _occupy(self, table: Table, order: Order, check_in: bool = False) -> None:
        if table.status == TableStatus.OCCUPIED.value:
            raise ConflictError(
                f"Table {table.number} is already occupied by order {table.active_order_id}",
                table_id=table.id,
                active_order_id=table.active_order_id,
            )
        allowed = {TableStatus.AVAILABLE.value}
        if check_in:
            allowed.add(TableStatus.RESERVED.value)
        if table.status not in allowed:
            raise ConflictError(
                f"Table {table.number} is {table.status}, not available",
                table_id=table.id,
                status=table.status,
            )
        table.active_order_id = order.id
        order.table_id = table.id
        self._set_status(table, TableStatus.OCCUPIED)

    def _release(self, table: Table) -> None:
        if table.active_order_id is None:
            raise InvalidTransitionError(
                "Table",
                table.status,
                settings.table_release_policy,
                message=f"Table {table.number} has no active order to release",
            )
        table.active_order_id = None
        self._set_status(table, TableStatus(settings.table_release_policy))

    def _get_for_update(self, table_id: int) -> Table:
        table = self.db.scalars(select(Table).where(Table.id == table_id).with_for_update()).first()
        if table is None:
            raise NotFoundError("Table", table_id)
        return table

    @staticmethod
    def _require_status(table: Table, expected: TableStatus, target: TableStatus) -> None:
        if table.status != expected.value:
            raise InvalidTransitionError("Table", table.status, target.value)

    @staticmethod
    def _set_status(table: Table, target: TableStatus) -> None:
        if not validate_state_transition(table.status, target.value):
            raise InvalidTransitionError("Table", table.status, target.value)
        logger.debug(f"Table {table.number}: {table.status} -> {target.value}")
        table.status = target.value
