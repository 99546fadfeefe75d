"""Model-level validation utilities for data integrity.

Reusable validators that enforce business rules at the ORM level, so invalid
quantities and amounts never reach the store regardless of which service
writes them.
"""

from decimal import Decimal

from floorops.core.errors import ValidationFailed


def _as_decimal(value) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def non_negative(key: str, value):
    """Validate that a numeric value is >= 0."""
    if value is not None and _as_decimal(value) < 0:
        raise ValidationFailed(f"{key} cannot be negative, got {value}", field=key)
    return value


def positive(key: str, value):
    """Validate that a numeric value is > 0."""
    if value is not None and _as_decimal(value) <= 0:
        raise ValidationFailed(f"{key} must be positive, got {value}", field=key)
    return value


def validate_dict(key: str, value):
    """Validate that a JSON column value is a dict (or None)."""
    if value is not None and not isinstance(value, dict):
        raise ValidationFailed(f"{key} must be a dict, got {type(value).__name__}", field=key)
    return value
