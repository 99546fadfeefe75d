"""Effective runtime settings (non-secret)."""

from fastapi import APIRouter

from floorops.api.deps import CurrentProfile
from floorops.core.config import settings
from floorops.core.rbac import Capability, require_capability

router = APIRouter()


@router.get("/")
def get_settings(profile: CurrentProfile):
    """Floor operation settings currently in effect."""
    require_capability(profile, Capability.SETTINGS)
    return {
        "table_release_policy": settings.table_release_policy,
        "order_sla_minutes": settings.order_sla_minutes,
        "expiry_warning_days": settings.expiry_warning_days,
        "auto_deduct_stock": settings.auto_deduct_stock,
        "order_number_prefix": settings.order_number_prefix,
        "timezone": settings.timezone,
        "debug": settings.debug,
        "log_level": settings.log_level,
    }
