"""API routes."""

from fastapi import APIRouter

from floorops.api.routes import menu, notifications, orders, settings, staff, stock, tables

api_router = APIRouter()

api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(tables.router, prefix="/tables", tags=["tables"])
api_router.include_router(stock.router, prefix="/stock", tags=["stock"])
api_router.include_router(menu.router, prefix="/menu", tags=["menu"])
api_router.include_router(staff.router, prefix="/staff", tags=["staff"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(settings.router, prefix="/settings", tags=["settings"])
