"""Stock routes."""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Query, status

from floorops.api.deps import CurrentProfile
from floorops.db.session import DbSession
from floorops.models.stock import StockItem
from floorops.schemas.stock import (
    RecipeLineResponse,
    RecipeSet,
    StockItemCreate,
    StockItemResponse,
    StockItemUpdate,
    StockMovementResponse,
    StockQuantityRequest,
    StockReportRow,
)
from floorops.services.stock_service import StockService, classify

router = APIRouter()


def _item_response(item: StockItem) -> StockItemResponse:
    response = StockItemResponse.model_validate(item)
    response.status = classify(item).value
    return response


@router.get("/", response_model=List[StockItemResponse])
def list_stock(db: DbSession, profile: CurrentProfile, category: Optional[str] = None):
    """List stock items with their classification."""
    return [_item_response(item) for item in StockService(db).list_items(category=category)]


@router.get("/report", response_model=List[StockReportRow])
def stock_report(db: DbSession, profile: CurrentProfile, today: Optional[date] = None):
    """Classification, runway, expiry and value for every item."""
    return StockService(db).stock_report(today=today)


@router.get("/{item_id}", response_model=StockItemResponse)
def get_stock_item(db: DbSession, profile: CurrentProfile, item_id: int):
    return _item_response(StockService(db).get_item(item_id))


@router.post("/", response_model=StockItemResponse, status_code=status.HTTP_201_CREATED)
def add_stock_item(db: DbSession, profile: CurrentProfile, body: StockItemCreate):
    return _item_response(StockService(db).create_item(profile, **body.model_dump()))


@router.patch("/{item_id}", response_model=StockItemResponse)
def update_stock_item(db: DbSession, profile: CurrentProfile, item_id: int, body: StockItemUpdate):
    changes = body.model_dump(exclude_unset=True)
    expected_version = changes.pop("expected_version", None)
    return _item_response(
        StockService(db).update_item(profile, item_id, expected_version=expected_version, **changes)
    )


@router.post("/{item_id}/restock", response_model=StockItemResponse)
def restock_item(db: DbSession, profile: CurrentProfile, item_id: int, body: StockQuantityRequest):
    item = StockService(db).restock(
        profile, item_id, body.quantity, expected_version=body.expected_version, notes=body.notes
    )
    return _item_response(item)


@router.post("/{item_id}/consume", response_model=StockItemResponse)
def consume_stock(db: DbSession, profile: CurrentProfile, item_id: int, body: StockQuantityRequest):
    item = StockService(db).consume(
        profile, item_id, body.quantity, expected_version=body.expected_version, notes=body.notes
    )
    return _item_response(item)


@router.get("/{item_id}/movements", response_model=List[StockMovementResponse])
def get_stock_movements(
    db: DbSession,
    profile: CurrentProfile,
    item_id: int,
    limit: int = Query(100, ge=1, le=500),
):
    return StockService(db).movements(item_id, limit=limit)


@router.get("/recipes/{menu_item_id}", response_model=List[RecipeLineResponse])
def get_recipe(db: DbSession, profile: CurrentProfile, menu_item_id: int):
    return StockService(db).get_recipe(menu_item_id)


@router.put("/recipes/{menu_item_id}", response_model=List[RecipeLineResponse])
def set_recipe(db: DbSession, profile: CurrentProfile, menu_item_id: int, body: RecipeSet):
    """Replace the ingredients one portion of a menu item consumes."""
    return StockService(db).set_recipe(profile, menu_item_id, [line.model_dump() for line in body.lines])
