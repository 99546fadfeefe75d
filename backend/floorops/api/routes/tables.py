"""Table routes."""

from typing import List, Optional

from fastapi import APIRouter, status

from floorops.api.deps import CurrentProfile
from floorops.db.session import DbSession
from floorops.schemas.order import OrderResponse
from floorops.schemas.table import (
    TableCreate,
    TableOccupyRequest,
    TableResponse,
    TableStatsResponse,
)
from floorops.services.order_service import OrderService
from floorops.services.table_service import TableService

router = APIRouter()


@router.get("/", response_model=List[TableResponse])
def list_tables(
    db: DbSession,
    profile: CurrentProfile,
    status: Optional[str] = None,
    area: Optional[str] = None,
):
    """List all tables."""
    return TableService(db).list_tables(status=status, area=area)


@router.get("/summary/stats", response_model=TableStatsResponse)
def get_table_stats(db: DbSession, profile: CurrentProfile):
    """Get table statistics."""
    return TableService(db).table_stats(profile)


@router.get("/{table_id}", response_model=TableResponse)
def get_table(db: DbSession, profile: CurrentProfile, table_id: int):
    return TableService(db).get_table(table_id)


@router.post("/", response_model=TableResponse, status_code=status.HTTP_201_CREATED)
def create_table(db: DbSession, profile: CurrentProfile, body: TableCreate):
    return TableService(db).create_table(profile, number=body.number, capacity=body.capacity, area=body.area)


@router.delete("/{table_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_table(db: DbSession, profile: CurrentProfile, table_id: int):
    TableService(db).delete_table(profile, table_id)


@router.post("/{table_id}/reserve", response_model=TableResponse)
def reserve_table(db: DbSession, profile: CurrentProfile, table_id: int, expected_version: Optional[int] = None):
    return TableService(db).reserve(profile, table_id, expected_version=expected_version)


@router.post("/{table_id}/cancel-reservation", response_model=TableResponse)
def cancel_reservation(db: DbSession, profile: CurrentProfile, table_id: int, expected_version: Optional[int] = None):
    return TableService(db).cancel_reservation(profile, table_id, expected_version=expected_version)


@router.post("/{table_id}/occupy", response_model=TableResponse)
def occupy_table(db: DbSession, profile: CurrentProfile, table_id: int, body: TableOccupyRequest):
    """Seat an open order at this table."""
    return TableService(db).occupy(profile, table_id, body.order_id, expected_version=body.expected_version)


@router.post("/{table_id}/release", response_model=TableResponse)
def release_table(db: DbSession, profile: CurrentProfile, table_id: int, expected_version: Optional[int] = None):
    return TableService(db).release(profile, table_id, expected_version=expected_version)


@router.post("/{table_id}/finish-cleaning", response_model=TableResponse)
def finish_cleaning(db: DbSession, profile: CurrentProfile, table_id: int, expected_version: Optional[int] = None):
    return TableService(db).finish_cleaning(profile, table_id, expected_version=expected_version)


@router.post("/{table_id}/close", response_model=OrderResponse)
def close_table(db: DbSession, profile: CurrentProfile, table_id: int):
    """Deliver the table's open order and release the table."""
    return OrderService(db).close_table(profile, table_id)
