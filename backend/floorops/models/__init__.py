"""SQLAlchemy models."""

from floorops.models.user import StaffProfile
from floorops.models.restaurant import (
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    Table,
    TableStatus,
    TERMINAL_ORDER_STATUSES,
)
from floorops.models.stock import (
    MovementReason,
    RecipeLine,
    StockCategory,
    StockItem,
    StockMovement,
    StockStatus,
)
from floorops.models.notification import (
    Notification,
    NotificationCategory,
    NotificationPriority,
    NotificationType,
)

__all__ = [
    "StaffProfile",
    "MenuItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Table",
    "TableStatus",
    "TERMINAL_ORDER_STATUSES",
    "MovementReason",
    "RecipeLine",
    "StockCategory",
    "StockItem",
    "StockMovement",
    "StockStatus",
    "Notification",
    "NotificationCategory",
    "NotificationPriority",
    "NotificationType",
]
