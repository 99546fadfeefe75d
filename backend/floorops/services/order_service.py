"""Order Lifecycle Manager.

Owns orders and their lines, keeps ``total_amount`` equal to the sum of the
lines, and drives the status machine:

    pending -> preparing -> ready -> delivered
    any non-terminal -> cancelled

Side effects run in the same unit of work as the status change:
- creating an order for a table occupies the table
- pending -> preparing deducts recipe ingredients (``auto_deduct_stock``)
- delivered/cancelled releases the table per ``table_release_policy``

If any side effect fails, the whole operation is rolled back.
"""

import json
import logging
import secrets
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from floorops.core.config import settings
from floorops.core.errors import (
    ConflictError,
    EmptyOrderError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailed,
)
from floorops.core.rbac import Capability, require_capability
from floorops.db.base import utcnow
from floorops.db.session import atomic
from floorops.models.restaurant import (
    TERMINAL_ORDER_STATUSES,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    TableStatus,
)
from floorops.services.stock_service import StockService
from floorops.services.table_service import TableService

logger = logging.getLogger(__name__)

ORDER_STATUS_TRANSITIONS = {
    OrderStatus.PENDING.value: [OrderStatus.PREPARING.value, OrderStatus.CANCELLED.value],
    OrderStatus.PREPARING.value: [OrderStatus.READY.value, OrderStatus.CANCELLED.value],
    OrderStatus.READY.value: [OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value],
    OrderStatus.DELIVERED.value: [],
    OrderStatus.CANCELLED.value: [],
}

# Forward path used when a table is closed with its order still in the kitchen
_FORWARD_PATH = [
    OrderStatus.PREPARING.value,
    OrderStatus.READY.value,
    OrderStatus.DELIVERED.value,
]

_STATUS_TIMESTAMPS = {
    OrderStatus.PREPARING.value: "started_at",
    OrderStatus.READY.value: "ready_at",
    OrderStatus.DELIVERED.value: "delivered_at",
    OrderStatus.CANCELLED.value: "cancelled_at",
}

CENT = Decimal("0.01")
MAX_ORDER_NUMBER_ATTEMPTS = 5


def compute_total(lines: Iterable[OrderItem]) -> Decimal:
    """Sum quantity x unit_price over all lines, rounding only the final sum."""
    total = sum((Decimal(line.unit_price) * line.quantity for line in lines), Decimal("0"))
    return total.quantize(CENT)


def _options_key(options: Optional[Dict[str, Any]]) -> str:
    return json.dumps(options or {}, sort_keys=True, default=str)


class OrderService:
    """Service for orders and their line items."""

    def __init__(self, db: Session):
        self.db = db
        self.tables = TableService(db)
        self.stock = StockService(db)

    # ===== READS =====

    def get_order(self, order_id: int) -> Order:
        order = self.db.get(Order, order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def list_orders(
        self,
        status: Optional[str] = None,
        table_id: Optional[int] = None,
        active_only: bool = False,
        limit: int = 100,
    ) -> List[Order]:
        stmt = select(Order).order_by(Order.created_at.desc(), Order.id.desc()).limit(limit)
        if status:
            stmt = stmt.where(Order.status == status)
        if table_id is not None:
            stmt = stmt.where(Order.table_id == table_id)
        if active_only:
            stmt = stmt.where(Order.status.not_in(TERMINAL_ORDER_STATUSES))
        return list(self.db.scalars(stmt))

    # ===== CREATE =====

    def create_order(
        self,
        actor,
        items: List[Dict[str, Any]],
        table_id: Optional[int] = None,
        notes: Optional[str] = None,
        check_in: bool = False,
    ) -> Order:
        """Create a pending order and, for dine-in, occupy its table.

        ``items`` is a list of ``{"menu_item_id", "quantity", "options", "notes"}``.
        Lines with the same menu item, options and notes are merged.
        ``check_in`` lets the order seat a guest at a reserved table.
        """
        require_capability(actor, Capability.ORDERS)
        if not items:
            raise EmptyOrderError("An order needs at least one item")

        with atomic(self.db):
            table = None
            if table_id is not None:
                table = self.tables._get_for_update(table_id)
                allowed = {TableStatus.AVAILABLE.value}
                if check_in:
                    allowed.add(TableStatus.RESERVED.value)
                if table.status not in allowed:
                    raise ConflictError(
                        f"Table {table.number} is {table.status}, not available",
                        table_id=table_id,
                        status=table.status,
                    )

            order = Order(
                order_number=self._generate_order_number(),
                table_id=table.id if table is not None else None,
                waiter_id=actor.id,
                status=OrderStatus.PENDING.value,
                notes=notes,
            )
            for line in self._build_lines(items):
                order.items.append(line)
            order.total_amount = compute_total(order.items)
            self.db.add(order)
            self.db.flush()

            if table is not None:
                self.tables._occupy(table, order, check_in=check_in)

        logger.info(
            f"Order {order.order_number} created by profile {actor.id}: "
            f"{len(order.items)} line(s), total {order.total_amount}"
            + (f", table {table.number}" if table is not None else "")
        )
        return order

    # ===== STATUS =====

    def advance_status(
        self,
        actor,
        order_id: int,
        target: str,
        expected_version: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> Order:
        require_capability(actor, Capability.ORDERS)
        target = self._coerce_status(target)

        with atomic(self.db):
            order = self._get_for_update(order_id)
            order.check_version(expected_version)
            previous = order.status
            self._apply_transition(order, target, actor, reason)

        logger.info(f"Order {order.order_number}: {previous} -> {target} (profile {actor.id})")
        return order

    def cancel_order(
        self,
        actor,
        order_id: int,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        return self.advance_status(actor, order_id, OrderStatus.CANCELLED.value, expected_version, reason)

    def close_table(self, actor, table_id: int) -> Order:
        """Deliver the table's open order and release the table in one unit of work."""
        require_capability(actor, Capability.ORDERS)
        with atomic(self.db):
            table = self.tables._get_for_update(table_id)
            if table.active_order_id is None:
                raise InvalidTransitionError(
                    "Table",
                    table.status,
                    settings.table_release_policy,
                    message=f"Table {table.number} has no open order to close",
                )
            order = self._get_for_update(table.active_order_id)
            start = _FORWARD_PATH.index(order.status) + 1 if order.status in _FORWARD_PATH else 0
            for step in _FORWARD_PATH[start:]:
                self._apply_transition(order, step, actor)

        logger.info(f"Table {table.number} closed: order {order.order_number} delivered (profile {actor.id})")
        return order

    # ===== LINE ITEMS =====

    def add_item(
        self,
        actor,
        order_id: int,
        menu_item_id: int,
        quantity: int = 1,
        options: Optional[Dict[str, Any]] = None,
        notes: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Order:
        require_capability(actor, Capability.ORDERS)
        with atomic(self.db):
            order = self._get_editable(order_id, expected_version)
            (line,) = self._build_lines(
                [{"menu_item_id": menu_item_id, "quantity": quantity, "options": options, "notes": notes}]
            )
            existing = self._find_line(order.items, line.menu_item_id, line.options, line.notes)
            if existing is not None:
                existing.quantity += line.quantity
                existing.total_price = Decimal(existing.unit_price) * existing.quantity
            else:
                order.items.append(line)
            self._touch(order)

        logger.info(f"Order {order.order_number}: added {quantity} x menu item {menu_item_id}")
        return order

    def remove_item(self, actor, order_id: int, item_id: int, expected_version: Optional[int] = None) -> Order:
        require_capability(actor, Capability.ORDERS)
        with atomic(self.db):
            order = self._get_editable(order_id, expected_version)
            line = self._line_of(order, item_id)
            if len(order.items) == 1:
                raise EmptyOrderError(
                    f"Cannot remove the last item of order {order.order_number}; cancel the order instead",
                    order_id=order_id,
                )
            order.items.remove(line)
            self._touch(order)

        logger.info(f"Order {order.order_number}: removed line {item_id}")
        return order

    def update_quantity(
        self,
        actor,
        order_id: int,
        item_id: int,
        quantity: int,
        expected_version: Optional[int] = None,
    ) -> Order:
        require_capability(actor, Capability.ORDERS)
        if quantity < 1:
            raise ValidationFailed("Quantity must be at least 1; remove the item instead", field="quantity")
        with atomic(self.db):
            order = self._get_editable(order_id, expected_version)
            line = self._line_of(order, item_id)
            line.quantity = quantity
            line.total_price = Decimal(line.unit_price) * quantity
            self._touch(order)

        logger.info(f"Order {order.order_number}: line {item_id} quantity set to {quantity}")
        return order

    # ===== INTERNAL =====

    def _apply_transition(self, order: Order, target: str, actor, reason: Optional[str] = None) -> None:
        current = order.status
        if target not in ORDER_STATUS_TRANSITIONS.get(current, []):
            raise InvalidTransitionError("Order", current, target)

        if (
            target == OrderStatus.PREPARING.value
            and settings.auto_deduct_stock
            and not order.stock_deducted
        ):
            self.stock.consume_for_order(order, created_by=actor.id)

        if target in TERMINAL_ORDER_STATUSES and order.table_id is not None:
            table = self.tables._get_for_update(order.table_id)
            if table.active_order_id == order.id:
                self.tables._release(table)
            else:
                logger.warning(
                    f"Order {order.order_number} closed but table {table.number} "
                    f"links order {table.active_order_id}; table left as is"
                )

        order.status = target
        setattr(order, _STATUS_TIMESTAMPS[target], utcnow())
        if target == OrderStatus.CANCELLED.value:
            order.cancel_reason = reason

    def _build_lines(self, items: List[Dict[str, Any]]) -> List[OrderItem]:
        merged: Dict[Tuple[int, str, str], OrderItem] = {}
        for raw in items:
            quantity = raw.get("quantity", 1)
            if quantity is None or quantity < 1:
                raise ValidationFailed("Quantity must be at least 1", field="quantity")
            menu_item_id = raw["menu_item_id"]
            menu_item = self.db.get(MenuItem, menu_item_id)
            if menu_item is None:
                raise NotFoundError("MenuItem", menu_item_id)
            if not menu_item.is_available:
                raise ValidationFailed(f"'{menu_item.name}' is not available", menu_item_id=menu_item_id)

            options = raw.get("options") or None
            notes = raw.get("notes") or None
            key = (menu_item_id, _options_key(options), notes or "")
            if key in merged:
                line = merged[key]
                line.quantity += quantity
                line.total_price = Decimal(line.unit_price) * line.quantity
                continue
            unit_price = Decimal(menu_item.price)
            merged[key] = OrderItem(
                menu_item_id=menu_item_id,
                name=menu_item.name,
                quantity=quantity,
                unit_price=unit_price,
                total_price=unit_price * quantity,
                options=options,
                notes=notes,
            )
        return list(merged.values())

    @staticmethod
    def _find_line(lines, menu_item_id: int, options, notes) -> Optional[OrderItem]:
        key = _options_key(options)
        for line in lines:
            if (
                line.menu_item_id == menu_item_id
                and _options_key(line.options) == key
                and (line.notes or None) == (notes or None)
            ):
                return line
        return None

    @staticmethod
    def _line_of(order: Order, item_id: int) -> OrderItem:
        for line in order.items:
            if line.id == item_id:
                return line
        raise NotFoundError("OrderItem", item_id)

    def _get_editable(self, order_id: int, expected_version: Optional[int]) -> Order:
        order = self._get_for_update(order_id)
        order.check_version(expected_version)
        if order.status != OrderStatus.PENDING.value:
            raise ConflictError(
                f"Order {order.order_number} is {order.status}; items can only change while pending",
                order_id=order_id,
                status=order.status,
            )
        return order

    def _touch(self, order: Order) -> None:
        order.total_amount = compute_total(order.items)
        order.updated_at = utcnow()

    def _get_for_update(self, order_id: int) -> Order:
        order = self.db.scalars(select(Order).where(Order.id == order_id).with_for_update()).first()
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def _generate_order_number(self) -> str:
        stamp = utcnow().strftime("%y%m%d")
        for _ in range(MAX_ORDER_NUMBER_ATTEMPTS):
            candidate = f"{settings.order_number_prefix}-{stamp}-{secrets.token_hex(3).upper()}"
            clash = self.db.scalar(select(Order.id).where(Order.order_number == candidate))
            if clash is None:
                return candidate
        raise ConflictError("Could not allocate a unique order number")

    @staticmethod
    def _coerce_status(target: str) -> str:
        try:
            return OrderStatus(target).value
        except ValueError:
            raise ValidationFailed(f"Unknown order status '{target}'", field="status")
