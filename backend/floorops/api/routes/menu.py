"""Menu routes."""

from typing import List, Optional

from fastapi import APIRouter, status

from floorops.api.deps import CurrentProfile
from floorops.db.session import DbSession
from floorops.schemas.menu import MenuItemAvailability, MenuItemCreate, MenuItemResponse
from floorops.services.menu_service import MenuService

router = APIRouter()


@router.get("/", response_model=List[MenuItemResponse])
def list_menu_items(
    db: DbSession,
    profile: CurrentProfile,
    available_only: bool = False,
    category: Optional[str] = None,
):
    return MenuService(db).list_menu_items(available_only=available_only, category=category)


@router.get("/{menu_item_id}", response_model=MenuItemResponse)
def get_menu_item(db: DbSession, profile: CurrentProfile, menu_item_id: int):
    return MenuService(db).get_menu_item(menu_item_id)


@router.post("/", response_model=MenuItemResponse, status_code=status.HTTP_201_CREATED)
def create_menu_item(db: DbSession, profile: CurrentProfile, body: MenuItemCreate):
    return MenuService(db).create_menu_item(profile, **body.model_dump())


@router.put("/{menu_item_id}/availability", response_model=MenuItemResponse)
def set_availability(db: DbSession, profile: CurrentProfile, menu_item_id: int, body: MenuItemAvailability):
    """Mark a menu item (un)available for new orders."""
    return MenuService(db).set_availability(profile, menu_item_id, body.is_available)
