"""Restaurant floor models - tables, menu items, orders."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from floorops.db.base import Base, TimestampMixin, VersionMixin, utcnow
from floorops.models.validators import non_negative, positive, validate_dict


class TableStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    CLEANING = "cleaning"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


TERMINAL_ORDER_STATUSES = frozenset({OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value})


class Table(Base, TimestampMixin, VersionMixin):
    """Restaurant table for seating.

    ``status`` and ``active_order_id`` are written only by TableService.
    ``active_order_id`` is the index from table to its one non-terminal order;
    the Order row owns the reference back through ``table_id``.
    """

    __tablename__ = "tables"

    id: Mapped[int] = mapped_column(primary_key=True)
    number: Mapped[int] = mapped_column(Integer, unique=True, index=True, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, default=4, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=TableStatus.AVAILABLE.value, nullable=False, index=True
    )
    area: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)  # Main Floor, Bar, Patio
    # Plain integer, not a FK, to keep the table<->order reference one-directional
    active_order_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @validates("number", "capacity")
    def _validate_positive(self, key, value):
        return positive(key, value)


class MenuItem(Base, TimestampMixin):
    """Sellable menu item. Price here is the current price, not what past orders paid."""

    __tablename__ = "menu_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    preparation_time: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # minutes

    recipe_lines: Mapped[List["RecipeLine"]] = relationship(
        "RecipeLine", back_populates="menu_item", cascade="all, delete-orphan"
    )

    @validates("price")
    def _validate_price(self, key, value):
        return non_negative(key, value)

    @validates("preparation_time")
    def _validate_prep_time(self, key, value):
        return non_negative(key, value)


class Order(Base, VersionMixin):
    """Staff-submitted order, optionally tied to a table."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_number: Mapped[str] = mapped_column(String(40), unique=True, index=True, nullable=False)
    table_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("tables.id"), nullable=True, index=True
    )
    waiter_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("staff_profiles.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20), default=OrderStatus.PENDING.value, nullable=False, index=True
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0.00"), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    stock_deducted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    ready_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    cancel_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_ORDER_STATUSES

    @validates("total_amount")
    def _validate_total(self, key, value):
        return non_negative(key, value)


class OrderItem(Base):
    """One line of an order. ``unit_price`` is captured when the line is added."""

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    menu_item_id: Mapped[int] = mapped_column(ForeignKey("menu_items.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    options: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)  # selected modifiers
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    order: Mapped["Order"] = relationship("Order", back_populates="items")

    @validates("quantity")
    def _validate_quantity(self, key, value):
        return positive(key, value)

    @validates("unit_price", "total_price")
    def _validate_prices(self, key, value):
        return non_negative(key, value)

    @validates("options")
    def _validate_options(self, key, value):
        return validate_dict(key, value)
