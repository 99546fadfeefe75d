"""
RBAC Policy Enforcement

Maps a staff profile and a named capability to an allow/deny decision.

Roles:
- master: implicitly holds every capability
- admin: full access by default
- manager: orders, tables, stock, reports
- waiter: orders, tables
- kitchen: orders
- cashier: payments, reports

Non-master profiles are granted exactly what their ``permissions`` map says;
anything absent from the map, or any capability name we do not know, is
denied. Evaluation never raises and never touches the store.
"""

import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from floorops.core.errors import PermissionDeniedError, ValidationFailed

logger = logging.getLogger(__name__)


class StaffRole(str, Enum):
    """Staff roles for RBAC."""

    MASTER = "master"
    ADMIN = "admin"
    MANAGER = "manager"
    WAITER = "waiter"
    KITCHEN = "kitchen"
    CASHIER = "cashier"


class Capability(str, Enum):
    """Capabilities gating each category of mutating action."""

    ORDERS = "orders"
    TABLES = "tables"
    STOCK = "stock"
    USERS = "users"
    REPORTS = "reports"
    SETTINGS = "settings"
    PAYMENTS = "payments"


ADMIN_ROLES = frozenset({StaffRole.ADMIN, StaffRole.MASTER})


# Default permission map applied when a profile is created without one
DEFAULT_ROLE_PERMISSIONS: Dict[StaffRole, Dict[str, bool]] = {
    StaffRole.MASTER: {},
    StaffRole.ADMIN: {c.value: True for c in Capability},
    StaffRole.MANAGER: {
        Capability.ORDERS.value: True,
        Capability.TABLES.value: True,
        Capability.STOCK.value: True,
        Capability.REPORTS.value: True,
    },
    StaffRole.WAITER: {
        Capability.ORDERS.value: True,
        Capability.TABLES.value: True,
    },
    StaffRole.KITCHEN: {
        Capability.ORDERS.value: True,
    },
    StaffRole.CASHIER: {
        Capability.PAYMENTS.value: True,
        Capability.REPORTS.value: True,
    },
}


def _role_of(profile: Any) -> Optional[StaffRole]:
    role = getattr(profile, "role", None)
    if isinstance(role, StaffRole):
        return role
    try:
        return StaffRole(role)
    except ValueError:
        return None


def _coerce_capability(capability: Union[Capability, str]) -> Optional[Capability]:
    if isinstance(capability, Capability):
        return capability
    try:
        return Capability(capability)
    except ValueError:
        return None


def is_master(profile: Any) -> bool:
    return profile is not None and _role_of(profile) == StaffRole.MASTER


def is_admin(profile: Any) -> bool:
    """True for admin and master profiles."""
    return profile is not None and _role_of(profile) in ADMIN_ROLES


def has_permission(profile: Any, capability: Union[Capability, str]) -> bool:
    """Check whether a profile holds a capability.

    Master holds everything regardless of its map. Everyone else needs an
    explicit ``True`` for a known capability; unknown names are denied.
    """
    if profile is None:
        return False
    if is_master(profile):
        return True
    cap = _coerce_capability(capability)
    if cap is None:
        return False
    permissions = getattr(profile, "permissions", None) or {}
    return permissions.get(cap.value) is True


def require_capability(profile: Any, capability: Union[Capability, str]) -> None:
    """Gate a mutating call. Raises PermissionDeniedError and performs nothing."""
    cap_name = capability.value if isinstance(capability, Capability) else str(capability)
    if profile is None:
        raise PermissionDeniedError("Authentication required", capability=cap_name)
    if not getattr(profile, "is_active", True):
        logger.warning(f"Inactive profile {getattr(profile, 'id', '?')} attempted '{cap_name}' action")
        raise PermissionDeniedError("Profile is inactive", capability=cap_name)
    if not has_permission(profile, capability):
        logger.warning(
            f"Permission denied: profile {getattr(profile, 'id', '?')} "
            f"(role={getattr(_role_of(profile), 'value', None)}) lacks '{cap_name}'"
        )
        raise PermissionDeniedError(f"Missing capability '{cap_name}'", capability=cap_name)


def default_permissions(role: Union[StaffRole, str]) -> Dict[str, bool]:
    """Return a fresh copy of the default permission map for a role."""
    return dict(DEFAULT_ROLE_PERMISSIONS.get(StaffRole(role), {}))


def normalize_permissions(permissions: Optional[Mapping[str, Any]]) -> Dict[str, bool]:
    """Validate a capability map before storing it.

    Every key must name a known capability and every value must be a bool.
    """
    if permissions is None:
        return {}
    normalized: Dict[str, bool] = {}
    for key, value in permissions.items():
        cap = _coerce_capability(key)
        if cap is None:
            raise ValidationFailed(f"Unknown capability '{key}'", capability=str(key))
        if not isinstance(value, bool):
            raise ValidationFailed(f"Capability '{key}' must be true or false", capability=str(key))
        normalized[cap.value] = value
    return normalized
