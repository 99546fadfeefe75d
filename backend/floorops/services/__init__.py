# Services module

from floorops.services.alert_service import AlertService
from floorops.services.menu_service import MenuService
from floorops.services.order_service import OrderService
from floorops.services.staff_service import StaffService
from floorops.services.stock_service import StockService, classify, days_until_empty, days_until_expiry
from floorops.services.table_service import TableService

__all__ = [
    "AlertService",
    "MenuService",
    "OrderService",
    "StaffService",
    "StockService",
    "TableService",
    "classify",
    "days_until_empty",
    "days_until_expiry",
]
