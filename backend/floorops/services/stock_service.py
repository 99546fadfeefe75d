"""Stock Ledger - owns stock items, applies restock/consumption deltas and
classifies depletion risk.

Every change to ``current_stock`` goes through this service and writes one
``StockMovement`` row, so the ledger always explains the current level.

Classification thresholds are fixed:
- critical: current_stock <= min_stock
- low:      current_stock <= 30% of max_stock
- medium:   current_stock <= 70% of max_stock
- good:     anything above

Recipe deduction (``consume_for_order``) runs inside the caller's unit of
work; it checks every ingredient before touching any of them.
"""

import logging
import math
from collections import OrderedDict
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from floorops.core.errors import InsufficientStockError, NotFoundError, ValidationFailed
from floorops.core.rbac import Capability, require_capability
from floorops.db.base import local_today, utcnow
from floorops.db.session import atomic
from floorops.models.restaurant import MenuItem, Order
from floorops.models.stock import (
    MovementReason,
    RecipeLine,
    StockCategory,
    StockItem,
    StockMovement,
    StockStatus,
)

logger = logging.getLogger(__name__)

LOW_RATIO = Decimal("0.30")
MEDIUM_RATIO = Decimal("0.70")

# Scale of the Numeric columns quantities and money are stored in
QUANTITY_PLACES = 3
MONEY_PLACES = 2

UPDATABLE_FIELDS = {
    "name",
    "category",
    "min_stock",
    "max_stock",
    "unit",
    "cost_per_unit",
    "supplier",
    "expiry_date",
    "consumption_rate",
}

Number = Union[Decimal, int, float, str]


def _to_decimal(key: str, value: Number, places: int = QUANTITY_PLACES) -> Decimal:
    """Parse a number, refusing anything the column would silently round."""
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
        if not number.is_finite():
            raise InvalidOperation(value)
        exact = number == number.quantize(Decimal(1).scaleb(-places))
    except ArithmeticError as e:
        raise ValidationFailed(f"{key} must be a number, got {value!r}", field=key) from e
    if not exact:
        raise ValidationFailed(f"{key} allows at most {places} decimal places, got {value!r}", field=key)
    return number


def _required_text(key: str, value: Optional[str]) -> str:
    if value is None or not str(value).strip():
        raise ValidationFailed(f"Stock item {key} is required", field=key)
    return str(value).strip()


def classify(item: StockItem) -> StockStatus:
    """Classify a stock item's depletion risk."""
    current = Decimal(item.current_stock)
    if current <= Decimal(item.min_stock):
        return StockStatus.CRITICAL
    max_stock = Decimal(item.max_stock)
    if current <= max_stock * LOW_RATIO:
        return StockStatus.LOW
    if current <= max_stock * MEDIUM_RATIO:
        return StockStatus.MEDIUM
    return StockStatus.GOOD


def days_until_empty(item: StockItem) -> Union[int, float]:
    """Whole days left at the current consumption rate; ``math.inf`` when nothing is used."""
    rate = Decimal(item.consumption_rate or 0)
    if rate == 0:
        return math.inf
    return math.floor(Decimal(item.current_stock) / rate)


def days_until_expiry(item: StockItem, today: Optional[date] = None) -> Optional[int]:
    """Days until the expiry date. Negative means already expired, None means no expiry."""
    if item.expiry_date is None:
        return None
    today = today or local_today()
    return (item.expiry_date - today).days


class StockService:
    """Service for stock item records and their movements."""

    def __init__(self, db: Session):
        self.db = db

    # ===== READS =====

    def get_item(self, item_id: int) -> StockItem:
        item = self.db.get(StockItem, item_id)
        if item is None:
            raise NotFoundError("StockItem", item_id)
        return item

    def list_items(self, category: Optional[str] = None) -> List[StockItem]:
        stmt = select(StockItem).order_by(StockItem.name)
        if category:
            stmt = stmt.where(StockItem.category == category)
        return list(self.db.scalars(stmt))

    def movements(self, item_id: int, limit: int = 100) -> List[StockMovement]:
        self.get_item(item_id)
        stmt = (
            select(StockMovement)
            .where(StockMovement.stock_item_id == item_id)
            .order_by(StockMovement.ts.desc(), StockMovement.id.desc())
            .limit(limit)
        )
        return list(self.db.scalars(stmt))

    def stock_report(self, today: Optional[date] = None) -> List[Dict[str, Any]]:
        """Every item with classification, runway, expiry and stock value."""
        report = []
        for item in self.list_items():
            runway = days_until_empty(item)
            report.append({
                "id": item.id,
                "name": item.name,
                "category": item.category,
                "unit": item.unit,
                "current_stock": item.current_stock,
                "min_stock": item.min_stock,
                "max_stock": item.max_stock,
                "status": classify(item).value,
                "days_until_empty": None if runway == math.inf else runway,
                "days_until_expiry": days_until_expiry(item, today),
                "value": (Decimal(item.current_stock) * Decimal(item.cost_per_unit)).quantize(Decimal("0.01")),
            })
        return report

    # ===== ITEM RECORDS =====

    def create_item(
        self,
        actor,
        name: str,
        max_stock: Number,
        min_stock: Number = 0,
        current_stock: Number = 0,
        unit: str = "pcs",
        category: str = StockCategory.FOOD.value,
        cost_per_unit: Number = 0,
        supplier: Optional[str] = None,
        expiry_date: Optional[date] = None,
        consumption_rate: Number = 0,
    ) -> StockItem:
        require_capability(actor, Capability.STOCK)
        name = _required_text("name", name)
        unit = _required_text("unit", unit)
        category = self._validate_category(category)
        min_value = _to_decimal("min_stock", min_stock)
        max_value = _to_decimal("max_stock", max_stock)
        self._validate_thresholds(min_value, max_value)

        with atomic(self.db):
            item = StockItem(
                name=name,
                category=category,
                current_stock=_to_decimal("current_stock", current_stock),
                min_stock=min_value,
                max_stock=max_value,
                unit=unit,
                cost_per_unit=_to_decimal("cost_per_unit", cost_per_unit, MONEY_PLACES),
                supplier=supplier,
                expiry_date=expiry_date,
                consumption_rate=_to_decimal("consumption_rate", consumption_rate),
            )
            if item.current_stock > 0:
                item.last_restocked = utcnow()
            self.db.add(item)
            self.db.flush()
            if item.current_stock > 0:
                self._record(item, Decimal(item.current_stock), MovementReason.RESTOCK,
                             created_by=actor.id, notes="Opening balance")

        logger.info(f"Stock item {item.id} '{item.name}' created by profile {actor.id}")
        return item

    def update_item(self, actor, item_id: int, expected_version: Optional[int] = None, **changes) -> StockItem:
        """Update thresholds, supplier, expiry or rate. ``current_stock`` is not editable here."""
        require_capability(actor, Capability.STOCK)
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationFailed(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        with atomic(self.db):
            item = self._get_for_update(item_id)
            item.check_version(expected_version)
            for key in ("name", "unit"):
                if key in changes:
                    changes[key] = _required_text(key, changes[key])
            if "category" in changes:
                changes["category"] = self._validate_category(changes["category"])
            for key in ("min_stock", "max_stock", "consumption_rate"):
                if key in changes:
                    changes[key] = _to_decimal(key, changes[key])
            if "cost_per_unit" in changes:
                changes["cost_per_unit"] = _to_decimal("cost_per_unit", changes["cost_per_unit"], MONEY_PLACES)
            self._validate_thresholds(
                changes.get("min_stock", Decimal(item.min_stock)),
                changes.get("max_stock", Decimal(item.max_stock)),
            )
            for key, value in changes.items():
                setattr(item, key, value)

        logger.info(f"Stock item {item_id} updated by profile {actor.id}: {sorted(changes)}")
        return item

    # ===== DELTAS =====

    def restock(
        self,
        actor,
        item_id: int,
        quantity: Number,
        expected_version: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> StockItem:
        """Add stock. Overshooting max_stock is allowed."""
        require_capability(actor, Capability.STOCK)
        qty = _to_decimal("quantity", quantity)
        if qty <= 0:
            raise ValidationFailed("Restock quantity must be positive", field="quantity")

        with atomic(self.db):
            item = self._get_for_update(item_id)
            item.check_version(expected_version)
            item.current_stock = Decimal(item.current_stock) + qty
            item.last_restocked = utcnow()
            self._record(item, qty, MovementReason.RESTOCK, created_by=actor.id, notes=notes)

        if Decimal(item.current_stock) > Decimal(item.max_stock):
            logger.info(f"Stock item {item_id} restocked above max ({item.current_stock} > {item.max_stock})")
        logger.info(f"Restocked item {item_id} by {qty} {item.unit} (profile {actor.id})")
        return item

    def consume(
        self,
        actor,
        item_id: int,
        quantity: Number,
        expected_version: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> StockItem:
        """Remove stock. Never drives current_stock below zero."""
        require_capability(actor, Capability.STOCK)
        qty = _to_decimal("quantity", quantity)
        if qty <= 0:
            raise ValidationFailed("Consumption quantity must be positive", field="quantity")

        with atomic(self.db):
            item = self._get_for_update(item_id)
            item.check_version(expected_version)
            self._deduct(item, qty, MovementReason.CONSUMPTION, created_by=actor.id, notes=notes)

        logger.info(f"Consumed {qty} {item.unit} of item {item_id} (profile {actor.id})")
        return item

    # ===== RECIPES =====

    def get_recipe(self, menu_item_id: int) -> List[RecipeLine]:
        stmt = select(RecipeLine).where(RecipeLine.menu_item_id == menu_item_id).order_by(RecipeLine.id)
        return list(self.db.scalars(stmt))

    def set_recipe(self, actor, menu_item_id: int, lines: List[Dict[str, Any]]) -> List[RecipeLine]:
        """Replace a menu item's bill of materials.

        ``lines`` is a list of ``{"stock_item_id": int, "quantity": number}``;
        an empty list clears the recipe.
        """
        require_capability(actor, Capability.STOCK)
        seen = set()
        for line in lines:
            if line["stock_item_id"] in seen:
                raise ValidationFailed(
                    f"Stock item {line['stock_item_id']} listed twice in recipe",
                    field="stock_item_id",
                )
            seen.add(line["stock_item_id"])

        with atomic(self.db):
            menu_item = self.db.get(MenuItem, menu_item_id)
            if menu_item is None:
                raise NotFoundError("MenuItem", menu_item_id)
            for line in lines:
                self.get_item(line["stock_item_id"])
            menu_item.recipe_lines.clear()
            self.db.flush()
            for line in lines:
                menu_item.recipe_lines.append(
                    RecipeLine(
                        stock_item_id=line["stock_item_id"],
                        quantity=_to_decimal("quantity", line["quantity"]),
                    )
                )

        logger.info(f"Recipe for menu item {menu_item_id} set to {len(lines)} line(s) by profile {actor.id}")
        return self.get_recipe(menu_item_id)

    def consume_for_order(self, order: Order, created_by: Optional[int] = None) -> Dict[int, Decimal]:
        """Deduct recipe ingredients for every line of an order.

        Runs inside the caller's unit of work and does not commit. All
        requirements are checked before the first deduction, so an
        ``InsufficientStockError`` leaves every item untouched.
        """
        needed: "OrderedDict[int, Decimal]" = OrderedDict()
        for line in order.items:
            for recipe_line in self.get_recipe(line.menu_item_id):
                qty = Decimal(recipe_line.quantity) * line.quantity
                needed[recipe_line.stock_item_id] = needed.get(recipe_line.stock_item_id, Decimal("0")) + qty

        # Rows are always locked in id order
        items = {stock_id: self._get_for_update(stock_id) for stock_id in sorted(needed)}
        for stock_id, qty in needed.items():
            item = items[stock_id]
            if qty > Decimal(item.current_stock):
                raise InsufficientStockError(item.name, item.id, item.current_stock, qty, item.unit)

        for stock_id, qty in needed.items():
            self._deduct(items[stock_id], qty, MovementReason.ORDER,
                         ref_type="order", ref_id=order.id, created_by=created_by)
        order.stock_deducted = True

        if needed:
            logger.info(f"Deducted {len(needed)} ingredient(s) for order {order.order_number}")
        return dict(needed)

    # ===== INTERNAL =====

    def _get_for_update(self, item_id: int) -> StockItem:
        item = self.db.scalars(
            select(StockItem).where(StockItem.id == item_id).with_for_update()
        ).first()
        if item is None:
            raise NotFoundError("StockItem", item_id)
        return item

    def _deduct(self, item: StockItem, qty: Decimal, reason: MovementReason, **movement) -> None:
        current = Decimal(item.current_stock)
        if qty > current:
            raise InsufficientStockError(item.name, item.id, current, qty, item.unit)
        item.current_stock = current - qty
        self._record(item, -qty, reason, **movement)

    def _record(
        self,
        item: StockItem,
        delta: Decimal,
        reason: MovementReason,
        ref_type: Optional[str] = None,
        ref_id: Optional[int] = None,
        created_by: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> StockMovement:
        movement = StockMovement(
            stock_item_id=item.id,
            qty_delta=delta,
            reason=reason.value,
            ref_type=ref_type,
            ref_id=ref_id,
            created_by=created_by,
            notes=notes,
        )
        self.db.add(movement)
        return movement

    @staticmethod
    def _validate_category(category: str) -> str:
        try:
            return StockCategory(category).value
        except ValueError:
            raise ValidationFailed(f"Unknown stock category '{category}'", field="category")

    @staticmethod
    def _validate_thresholds(min_stock: Decimal, max_stock: Decimal) -> None:
        if min_stock < 0:
            raise ValidationFailed("min_stock cannot be negative", field="min_stock")
        if min_stock >= max_stock:
            raise ValidationFailed("min_stock must be lower than max_stock", field="min_stock")
