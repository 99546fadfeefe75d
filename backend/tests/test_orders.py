"""Tests for order lifecycle: creation, totals, status machine, table and stock side effects."""

import re
from decimal import Decimal

import pytest

from floorops.core.config import settings
from floorops.core.errors import (
    ConflictError,
    EmptyOrderError,
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailed,
)
from floorops.models.restaurant import Order, Table
from floorops.models.stock import StockItem, StockMovement
from floorops.services.order_service import OrderService, compute_total
from floorops.services.stock_service import StockService
from floorops.services.table_service import TableService


def _line(item, quantity=1, **extra):
    return {"menu_item_id": item.id, "quantity": quantity, **extra}


@pytest.fixture
def svc(db_session):
    return OrderService(db_session)


# ============== Creation ==============

class TestCreateOrder:

    def test_dine_in_order_occupies_table(self, svc, db_session, waiter, tables, menu):
        order = svc.create_order(waiter, [_line(menu["burger"], 2)], table_id=tables[5].id)
        assert order.status == "pending"
        assert order.total_amount == Decimal("20.00")
        assert order.waiter_id == waiter.id
        table = db_session.get(Table, tables[5].id)
        assert table.status == "occupied"
        assert table.active_order_id == order.id

    def test_takeaway_order_has_no_table(self, svc, waiter, menu):
        order = svc.create_order(waiter, [_line(menu["beer"])])
        assert order.table_id is None

    def test_order_number_format_and_uniqueness(self, svc, waiter, menu):
        numbers = {svc.create_order(waiter, [_line(menu["beer"])]).order_number for _ in range(5)}
        assert len(numbers) == 5
        for number in numbers:
            assert re.fullmatch(rf"{settings.order_number_prefix}-\d{{6}}-[0-9A-F]{{6}}", number)

    def test_empty_cart_rejected(self, svc, waiter):
        with pytest.raises(EmptyOrderError):
            svc.create_order(waiter, [])

    def test_zero_quantity_rejected(self, svc, waiter, menu):
        with pytest.raises(ValidationFailed):
            svc.create_order(waiter, [_line(menu["burger"], 0)])

    def test_unknown_menu_item(self, svc, waiter):
        with pytest.raises(NotFoundError):
            svc.create_order(waiter, [{"menu_item_id": 999, "quantity": 1}])

    def test_unavailable_menu_item(self, svc, waiter, menu):
        with pytest.raises(ValidationFailed):
            svc.create_order(waiter, [_line(menu["special"])])

    def test_occupied_table_conflicts(self, svc, db_session, waiter, tables, menu):
        first = svc.create_order(waiter, [_line(menu["burger"])], table_id=tables[1].id)
        with pytest.raises(ConflictError):
            svc.create_order(waiter, [_line(menu["beer"])], table_id=tables[1].id)
        db_session.expire_all()
        assert db_session.get(Table, tables[1].id).active_order_id == first.id
        assert db_session.query(Order).count() == 1

    def test_reserved_table_needs_check_in(self, svc, db_session, waiter, tables, menu):
        TableService(db_session).reserve(waiter, tables[2].id)
        with pytest.raises(ConflictError):
            svc.create_order(waiter, [_line(menu["burger"])], table_id=tables[2].id)
        order = svc.create_order(waiter, [_line(menu["burger"])], table_id=tables[2].id, check_in=True)
        assert db_session.get(Table, tables[2].id).active_order_id == order.id

    def test_unknown_table(self, svc, waiter, menu):
        with pytest.raises(NotFoundError):
            svc.create_order(waiter, [_line(menu["burger"])], table_id=999)

    def test_identical_lines_are_merged(self, svc, waiter, menu):
        order = svc.create_order(waiter, [
            _line(menu["burger"], 1, options={"cook": "medium"}),
            _line(menu["burger"], 2, options={"cook": "medium"}),
            _line(menu["burger"], 1, options={"cook": "well"}),
        ])
        assert sorted(line.quantity for line in order.items) == [1, 3]
        assert order.total_amount == Decimal("40.00")

    def test_cashier_cannot_create_orders(self, svc, db_session, make_profile, menu):
        cashier = make_profile("cashier")
        with pytest.raises(PermissionDeniedError):
            svc.create_order(cashier, [_line(menu["burger"])])
        assert db_session.query(Order).count() == 0

    def test_unit_price_captured_at_order_time(self, svc, db_session, waiter, menu):
        order = svc.create_order(waiter, [_line(menu["burger"])])
        menu["burger"].price = Decimal("99.00")
        db_session.commit()
        order = svc.add_item(waiter, order.id, menu["beer"].id)
        burger_line = next(line for line in order.items if line.menu_item_id == menu["burger"].id)
        assert burger_line.unit_price == Decimal("10.00")
        assert order.total_amount == Decimal("14.50")


# ============== Totals ==============

class TestTotals:

    def test_compute_total_rounds_only_the_sum(self):
        class Line:
            def __init__(self, quantity, unit_price):
                self.quantity = quantity
                self.unit_price = Decimal(unit_price)

        assert compute_total([Line(3, "0.10"), Line(1, "0.20")]) == Decimal("0.50")

    def test_total_tracks_every_mutation(self, svc, waiter, menu):
        order = svc.create_order(waiter, [_line(menu["burger"], 2)])
        assert order.total_amount == Decimal("20.00")

        order = svc.add_item(waiter, order.id, menu["beer"].id, quantity=3)
        assert order.total_amount == Decimal("33.50")

        beer_line = next(line for line in order.items if line.menu_item_id == menu["beer"].id)
        order = svc.update_quantity(waiter, order.id, beer_line.id, 1)
        assert order.total_amount == Decimal("24.50")

        order = svc.remove_item(waiter, order.id, beer_line.id)
        assert order.total_amount == Decimal("20.00")
        assert order.total_amount == sum(line.quantity * line.unit_price for line in order.items)

    def test_add_identical_item_bumps_quantity(self, svc, waiter, menu):
        order = svc.create_order(waiter, [_line(menu["beer"])])
        order = svc.add_item(waiter, order.id, menu["beer"].id, quantity=2)
        assert [line.quantity for line in order.items] == [3]

    def test_removing_last_item_rejected(self, svc, waiter, menu):
        order = svc.create_order(waiter, [_line(menu["burger"])])
        with pytest.raises(EmptyOrderError):
            svc.remove_item(waiter, order.id, order.items[0].id)

    def test_update_quantity_below_one_rejected(self, svc, waiter, menu):
        order = svc.create_order(waiter, [_line(menu["burger"])])
        with pytest.raises(ValidationFailed):
            svc.update_quantity(waiter, order.id, order.items[0].id, 0)

    def test_remove_unknown_line(self, svc, waiter, menu):
        order = svc.create_order(waiter, [_line(menu["burger"]), _line(menu["beer"])])
        with pytest.raises(NotFoundError):
            svc.remove_item(waiter, order.id, 12345)

    def test_items_frozen_after_pending(self, svc, waiter, kitchen, menu):
        order = svc.create_order(waiter, [_line(menu["burger"])])
        svc.advance_status(kitchen, order.id, "preparing")
        with pytest.raises(ConflictError):
            svc.add_item(waiter, order.id, menu["beer"].id)


# ============== Status machine ==============

ALL_STATUSES = ["pending", "preparing", "ready", "delivered", "cancelled"]
LEGAL = {
    ("pending", "preparing"),
    ("preparing", "ready"),
    ("ready", "delivered"),
    ("pending", "cancelled"),
    ("preparing", "cancelled"),
    ("ready", "cancelled"),
}
PATH_TO = {
    "pending": [],
    "preparing": ["preparing"],
    "ready": ["preparing", "ready"],
    "delivered": ["preparing", "ready", "delivered"],
    "cancelled": ["cancelled"],
}


class TestStatusMachine:

    @pytest.mark.parametrize("current", ALL_STATUSES)
    @pytest.mark.parametrize("target", ALL_STATUSES)
    def test_only_legal_edges_succeed(self, svc, waiter, menu, current, target):
        order = svc.create_order(waiter, [_line(menu["burger"])])
        for step in PATH_TO[current]:
            svc.advance_status(waiter, order.id, step)

        if (current, target) in LEGAL:
            assert svc.advance_status(waiter, order.id, target).status == target
        else:
            with pytest.raises(InvalidTransitionError):
                svc.advance_status(waiter, order.id, target)
            assert svc.get_order(order.id).status == current

    def test_unknown_status_rejected(self, svc, waiter, menu):
        order = svc.create_order(waiter, [_line(menu["burger"])])
        with pytest.raises(ValidationFailed):
            svc.advance_status(waiter, order.id, "eaten")

    def test_timestamps_recorded(self, svc, waiter, menu):
        order = svc.create_order(waiter, [_line(menu["burger"])])
        for step in ["preparing", "ready", "delivered"]:
            order = svc.advance_status(waiter, order.id, step)
        assert order.started_at and order.ready_at and order.delivered_at
        assert order.cancelled_at is None

    def test_cancel_reason_kept(self, svc, waiter, menu):
        order = svc.create_order(waiter, [_line(menu["burger"])])
        order = svc.cancel_order(waiter, order.id, reason="Guest left")
        assert order.status == "cancelled"
        assert order.cancel_reason == "Guest left"

    def test_stale_version_conflicts(self, svc, waiter, kitchen, menu):
        order = svc.create_order(waiter, [_line(menu["burger"])])
        seen = order.version
        svc.advance_status(kitchen, order.id, "preparing", expected_version=seen)
        with pytest.raises(ConflictError):
            svc.advance_status(waiter, order.id, "cancelled", expected_version=seen)
        assert svc.get_order(order.id).status == "preparing"

    def test_kitchen_can_advance(self, svc, waiter, kitchen, menu):
        order = svc.create_order(waiter, [_line(menu["burger"])])
        assert svc.advance_status(kitchen, order.id, "preparing").status == "preparing"


# ============== Table side effects ==============

class TestTableRelease:

    @pytest.mark.parametrize("final", ["delivered", "cancelled"])
    def test_terminal_status_releases_to_cleaning(self, svc, db_session, waiter, tables, menu, final):
        order = svc.create_order(waiter, [_line(menu["burger"])], table_id=tables[3].id)
        for step in PATH_TO[final]:
            svc.advance_status(waiter, order.id, step)
        table = db_session.get(Table, tables[3].id)
        assert table.status == "cleaning"
        assert table.active_order_id is None

    def test_release_policy_available(self, svc, db_session, waiter, tables, menu, release_to_available):
        order = svc.create_order(waiter, [_line(menu["burger"])], table_id=tables[3].id)
        svc.cancel_order(waiter, order.id)
        assert db_session.get(Table, tables[3].id).status == "available"

    def test_table_reusable_after_cleaning(self, svc, db_session, waiter, tables, menu):
        order = svc.create_order(waiter, [_line(menu["burger"])], table_id=tables[3].id)
        svc.cancel_order(waiter, order.id)
        with pytest.raises(ConflictError):
            svc.create_order(waiter, [_line(menu["burger"])], table_id=tables[3].id)
        TableService(db_session).finish_cleaning(waiter, tables[3].id)
        second = svc.create_order(waiter, [_line(menu["burger"])], table_id=tables[3].id)
        assert db_session.get(Table, tables[3].id).active_order_id == second.id

    def test_close_table_walks_order_to_delivered(self, svc, db_session, waiter, tables, menu):
        order = svc.create_order(waiter, [_line(menu["burger"])], table_id=tables[4].id)
        svc.advance_status(waiter, order.id, "preparing")
        closed = svc.close_table(waiter, tables[4].id)
        assert closed.id == order.id
        assert closed.status == "delivered"
        assert db_session.get(Table, tables[4].id).status == "cleaning"

    def test_close_table_without_order(self, svc, waiter, tables):
        with pytest.raises(InvalidTransitionError):
            svc.close_table(waiter, tables[4].id)

    def test_list_active_orders(self, svc, waiter, tables, menu):
        open_order = svc.create_order(waiter, [_line(menu["burger"])], table_id=tables[1].id)
        closed = svc.create_order(waiter, [_line(menu["beer"])])
        svc.cancel_order(waiter, closed.id)
        assert [o.id for o in svc.list_orders(active_only=True)] == [open_order.id]
        assert [o.id for o in svc.list_orders(table_id=tables[1].id)] == [open_order.id]
        assert [o.id for o in svc.list_orders(status="cancelled")] == [closed.id]


# ============== Stock deduction ==============

@pytest.fixture
def burger_recipe(db_session, manager, menu, stock_item):
    """One burger consumes 2 buns (5 on hand)."""
    StockService(db_session).set_recipe(manager, menu["burger"].id, [{"stock_item_id": stock_item.id, "quantity": 2}])
    return stock_item


class TestStockDeduction:

    def test_preparing_deducts_recipe(self, svc, db_session, waiter, menu, burger_recipe):
        order = svc.create_order(waiter, [_line(menu["burger"], 2), _line(menu["beer"])])
        order = svc.advance_status(waiter, order.id, "preparing")
        assert order.stock_deducted is True
        assert db_session.get(StockItem, burger_recipe.id).current_stock == Decimal("1")
        movement = db_session.query(StockMovement).filter_by(reason="order").one()
        assert movement.qty_delta == Decimal("-4")
        assert movement.ref_type == "order"
        assert movement.ref_id == order.id

    def test_insufficient_stock_aborts_whole_advance(self, svc, db_session, waiter, tables, menu, burger_recipe):
        order = svc.create_order(waiter, [_line(menu["burger"], 3)], table_id=tables[2].id)
        with pytest.raises(InsufficientStockError):
            svc.advance_status(waiter, order.id, "preparing")
        db_session.expire_all()
        assert svc.get_order(order.id).status == "pending"
        assert db_session.get(StockItem, burger_recipe.id).current_stock == Decimal("5")
        assert db_session.get(Table, tables[2].id).status == "occupied"

    def test_cancel_does_not_refund(self, svc, db_session, waiter, menu, burger_recipe):
        order = svc.create_order(waiter, [_line(menu["burger"])])
        svc.advance_status(waiter, order.id, "preparing")
        svc.cancel_order(waiter, order.id)
        assert db_session.get(StockItem, burger_recipe.id).current_stock == Decimal("3")

    def test_auto_deduct_disabled(self, svc, db_session, waiter, menu, burger_recipe, monkeypatch):
        monkeypatch.setattr(settings, "auto_deduct_stock", False)
        order = svc.create_order(waiter, [_line(menu["burger"])])
        order = svc.advance_status(waiter, order.id, "preparing")
        assert order.stock_deducted is False
        assert db_session.get(StockItem, burger_recipe.id).current_stock == Decimal("5")

    def test_menu_item_without_recipe_consumes_nothing(self, svc, db_session, waiter, menu, stock_item):
        order = svc.create_order(waiter, [_line(menu["beer"], 4)])
        svc.advance_status(waiter, order.id, "preparing")
        assert db_session.query(StockMovement).count() == 0
