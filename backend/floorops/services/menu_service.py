"""Menu catalog. Read-mostly; writes need the ``settings`` capability."""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from floorops.core.errors import NotFoundError, ValidationFailed
from floorops.core.rbac import Capability, require_capability
from floorops.db.session import atomic
from floorops.models.restaurant import MenuItem

logger = logging.getLogger(__name__)


class MenuService:
    def __init__(self, db: Session):
        self.db = db

    def get_menu_item(self, menu_item_id: int) -> MenuItem:
        item = self.db.get(MenuItem, menu_item_id)
        if item is None:
            raise NotFoundError("MenuItem", menu_item_id)
        return item

    def list_menu_items(self, available_only: bool = False, category: Optional[str] = None) -> List[MenuItem]:
        stmt = select(MenuItem).order_by(MenuItem.category, MenuItem.name)
        if available_only:
            stmt = stmt.where(MenuItem.is_available.is_(True))
        if category:
            stmt = stmt.where(MenuItem.category == category)
        return list(self.db.scalars(stmt))

    def create_menu_item(
        self,
        actor,
        name: str,
        price,
        category: Optional[str] = None,
        preparation_time: Optional[int] = None,
        is_available: bool = True,
    ) -> MenuItem:
        require_capability(actor, Capability.SETTINGS)
        if not name or not name.strip():
            raise ValidationFailed("Menu item name is required", field="name")
        with atomic(self.db):
            item = MenuItem(
                name=name.strip(),
                price=Decimal(str(price)).quantize(Decimal("0.01")),
                category=category,
                preparation_time=preparation_time,
                is_available=is_available,
            )
            self.db.add(item)
        logger.info(f"Menu item {item.id} '{item.name}' created by profile {actor.id}")
        return item

    def set_availability(self, actor, menu_item_id: int, is_available: bool) -> MenuItem:
        """Toggle whether the item can be added to new orders. Existing orders keep their lines."""
        require_capability(actor, Capability.SETTINGS)
        with atomic(self.db):
            item = self.get_menu_item(menu_item_id)
            item.is_available = is_available
        logger.info(f"Menu item {menu_item_id} availability set to {is_available} by profile {actor.id}")
        return item
