"""Database session management."""

import logging
from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Annotated

from fastapi import Depends
from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from floorops.core.config import settings
from floorops.core.errors import ConflictError, PersistenceFailure

logger = logging.getLogger(__name__)

# Create engine - handle SQLite specially for check_same_thread
connect_args = {}
pool_config = {}

if settings.database_url.startswith("sqlite"):
    connect_args = {"check_same_thread": False}
    pool_config = {
        "pool_pre_ping": True,
    }
else:
    # PostgreSQL/MySQL connection pooling configuration
    pool_config = {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }

engine = create_engine(
    settings.database_url,
    connect_args=connect_args,
    **pool_config,
)


def enable_sqlite_foreign_keys(target_engine) -> None:
    """Turn on foreign key enforcement for every new SQLite connection."""

    @event.listens_for(target_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


if settings.database_url.startswith("sqlite"):
    enable_sqlite_foreign_keys(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Get database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Run one unit of work: commit on success, roll back on any failure.

    Multi-entity sequences (order + table, status + table release + stock)
    run inside a single ``atomic`` block so they land together or not at all.
    Store errors surface as ``PersistenceFailure``; unique-key violations and
    rows changed by a concurrent writer as ``ConflictError``.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Integrity violation, unit of work rolled back: {e.orig}")
        raise ConflictError(f"Write violates a uniqueness or reference constraint: {e.orig}") from e
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"Concurrent update detected, unit of work rolled back: {e}")
        raise ConflictError("The record was changed by another writer; reload and retry") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Store write failed, unit of work rolled back: {e}")
        raise PersistenceFailure(f"The store could not complete the write: {e}") from e
    except Exception:
        db.rollback()
        raise


# Type alias for dependency injection
DbSession = Annotated[Session, Depends(get_db)]
