"""Stock models: StockItem, StockMovement ledger and RecipeLine bill of materials."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from floorops.db.base import Base, TimestampMixin, VersionMixin, utcnow
from floorops.models.validators import non_negative, positive


class StockCategory(str, Enum):
    FOOD = "food"
    BEVERAGE = "beverage"
    PACKAGING = "packaging"
    CLEANING = "cleaning"


class StockStatus(str, Enum):
    """Depletion classification of a stock item."""

    CRITICAL = "critical"
    LOW = "low"
    MEDIUM = "medium"
    GOOD = "good"


class MovementReason(str, Enum):
    """Reasons for stock movements."""

    RESTOCK = "restock"  # Goods received
    CONSUMPTION = "consumption"  # Manual usage, waste
    ORDER = "order"  # Recipe deduction when an order is fired


class StockItem(Base, TimestampMixin, VersionMixin):
    """Inventory unit with thresholds and a consumption rate."""

    __tablename__ = "stock_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(30), default=StockCategory.FOOD.value, nullable=False)
    current_stock: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"), nullable=False)
    min_stock: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"), nullable=False)
    max_stock: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), default="pcs", nullable=False)
    cost_per_unit: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    supplier: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    consumption_rate: Mapped[Decimal] = mapped_column(
        Numeric(12, 3), default=Decimal("0"), nullable=False
    )  # units per day
    last_restocked: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @validates("current_stock", "min_stock", "cost_per_unit", "consumption_rate")
    def _validate_non_negative(self, key, value):
        return non_negative(key, value)

    @validates("max_stock")
    def _validate_max(self, key, value):
        return positive(key, value)


class StockMovement(Base):
    """Ledger of all stock changes."""

    __tablename__ = "stock_movements"

    id: Mapped[int] = mapped_column(primary_key=True)
    ts: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)
    stock_item_id: Mapped[int] = mapped_column(
        ForeignKey("stock_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    qty_delta: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    reason: Mapped[str] = mapped_column(String(30), nullable=False)
    ref_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)  # order
    ref_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("staff_profiles.id", ondelete="SET NULL"), nullable=True
    )


class RecipeLine(Base):
    """How much of a stock item one portion of a menu item consumes."""

    __tablename__ = "recipe_lines"
    __table_args__ = (
        UniqueConstraint("menu_item_id", "stock_item_id", name="uq_recipe_menu_stock"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    menu_item_id: Mapped[int] = mapped_column(
        ForeignKey("menu_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    stock_item_id: Mapped[int] = mapped_column(
        ForeignKey("stock_items.id", ondelete="CASCADE"), nullable=False
    )
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)

    menu_item: Mapped["MenuItem"] = relationship("MenuItem", back_populates="recipe_lines")
    stock_item: Mapped["StockItem"] = relationship("StockItem")

    @validates("quantity")
    def _validate_quantity(self, key, value):
        return positive(key, value)
