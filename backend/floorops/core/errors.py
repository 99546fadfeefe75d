"""Typed failures raised by the floor operations services.

Every failure carries a stable ``code`` and an HTTP ``status_code``; the API
layer turns them into ``{"error": code, "detail": message}`` responses.
"""

from typing import Any, Dict, Optional


class FloorOpsError(Exception):
    """Base class for all domain failures."""

    code = "ERROR"
    status_code = 400

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context: Dict[str, Any] = context
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.code, "detail": self.message}
        if self.context:
            body["context"] = self.context
        return body


class ValidationFailed(FloorOpsError):
    """Malformed input: empty item list, non-positive quantity, bad thresholds."""

    code = "VALIDATION"
    status_code = 400


class EmptyOrderError(ValidationFailed):
    """An order must always keep at least one line."""

    code = "EMPTY_ORDER"


class ConflictError(FloorOpsError):
    """A precondition on shared state is violated."""

    code = "CONFLICT"
    status_code = 409


class NotFoundError(FloorOpsError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found", entity=entity, id=entity_id)


class InvalidTransitionError(FloorOpsError):
    """Requested status change is not an edge of the state machine."""

    code = "INVALID_TRANSITION"
    status_code = 409

    def __init__(self, entity: str, current: str, target: str, message: Optional[str] = None):
        self.current = current
        self.target = target
        super().__init__(
            message or f"{entity} cannot move from '{current}' to '{target}'",
            entity=entity,
            current=current,
            target=target,
        )


class InsufficientStockError(FloorOpsError):
    """Raised when a consumption would drive stock below zero."""

    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(self, item_name: str, item_id: int, available, needed, unit: str):
        self.item_name = item_name
        self.item_id = item_id
        self.available = available
        self.needed = needed
        self.unit = unit
        super().__init__(
            f"Insufficient stock for '{item_name}': need {needed} {unit}, have {available} {unit}",
            item_id=item_id,
            available=str(available),
            needed=str(needed),
        )


class PermissionDeniedError(FloorOpsError):
    code = "PERMISSION_DENIED"
    status_code = 403


class PersistenceFailure(FloorOpsError):
    """The store could not complete the write. Never swallowed."""

    code = "PERSISTENCE_FAILURE"
    status_code = 503
