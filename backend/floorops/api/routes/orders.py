"""Order routes."""

from typing import List, Optional

from fastapi import APIRouter, Query, status

from floorops.api.deps import CurrentProfile
from floorops.db.session import DbSession
from floorops.schemas.order import (
    OrderCreate,
    OrderLineAdd,
    OrderLineQuantity,
    OrderResponse,
    OrderStatusUpdate,
)
from floorops.services.order_service import OrderService

router = APIRouter()


@router.get("/", response_model=List[OrderResponse])
def list_orders(
    db: DbSession,
    profile: CurrentProfile,
    status: Optional[str] = None,
    table_id: Optional[int] = None,
    active_only: bool = False,
    limit: int = Query(100, ge=1, le=500),
):
    """List orders, newest first."""
    return OrderService(db).list_orders(status=status, table_id=table_id, active_only=active_only, limit=limit)


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(db: DbSession, profile: CurrentProfile, order_id: int):
    return OrderService(db).get_order(order_id)


@router.post("/", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(db: DbSession, profile: CurrentProfile, body: OrderCreate):
    """Submit a cart. A table, when given, must be available (or reserved with check_in)."""
    return OrderService(db).create_order(
        profile,
        items=[line.model_dump() for line in body.items],
        table_id=body.table_id,
        notes=body.notes,
        check_in=body.check_in,
    )


@router.post("/{order_id}/status", response_model=OrderResponse)
def advance_status(db: DbSession, profile: CurrentProfile, order_id: int, body: OrderStatusUpdate):
    return OrderService(db).advance_status(
        profile, order_id, body.status, expected_version=body.expected_version, reason=body.reason
    )


@router.post("/{order_id}/items", response_model=OrderResponse)
def add_item(db: DbSession, profile: CurrentProfile, order_id: int, body: OrderLineAdd):
    return OrderService(db).add_item(
        profile,
        order_id,
        menu_item_id=body.menu_item_id,
        quantity=body.quantity,
        options=body.options,
        notes=body.notes,
        expected_version=body.expected_version,
    )


@router.patch("/{order_id}/items/{item_id}", response_model=OrderResponse)
def update_quantity(
    db: DbSession, profile: CurrentProfile, order_id: int, item_id: int, body: OrderLineQuantity
):
    return OrderService(db).update_quantity(
        profile, order_id, item_id, body.quantity, expected_version=body.expected_version
    )


@router.delete("/{order_id}/items/{item_id}", response_model=OrderResponse)
def remove_item(
    db: DbSession,
    profile: CurrentProfile,
    order_id: int,
    item_id: int,
    expected_version: Optional[int] = None,
):
    return OrderService(db).remove_item(profile, order_id, item_id, expected_version=expected_version)
