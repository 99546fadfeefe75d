"""SQLAlchemy declarative base and common utilities."""

from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from floorops.core.config import settings
from floorops.core.errors import ConflictError


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def local_today(now: Optional[datetime] = None) -> date:
    """Calendar date in the restaurant's timezone at *now* (default: the current instant)."""
    instant = as_naive_utc(now) or utcnow()
    return instant.replace(tzinfo=timezone.utc).astimezone(ZoneInfo(settings.timezone)).date()


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


class VersionMixin:
    """Optimistic locking helpers for models mapped with ``version_id_col``.

    The model declares its own ``version`` column and
    ``__mapper_args__ = {"version_id_col": version}``; SQLAlchemy then bumps
    the counter on every UPDATE and raises ``StaleDataError`` when the row
    changed underneath the session.  Callers that read a row earlier and
    write it back later can also pass the version they saw to
    ``check_version()``.
    """

    def check_version(self, expected: Optional[int]) -> None:
        """Raise ConflictError if *expected* doesn't match current version."""
        if expected is not None and expected != self.version:
            raise ConflictError(
                f"Version conflict: expected {expected}, current {self.version}",
                expected=expected,
                current=self.version,
            )
