"""Pytest configuration and fixtures."""

import os

# Keep the application's own engine in memory; tests bind their own below
os.environ.setdefault("DATABASE_URL", "sqlite://")

from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from floorops.core.config import settings
from floorops.core.rbac import StaffRole, default_permissions
from floorops.core.security import create_profile_token
from floorops.db.base import Base
from floorops.db.session import enable_sqlite_foreign_keys, get_db
from floorops.main import app
# Import all models to ensure they're registered with Base.metadata
from floorops.models import MenuItem, StaffProfile, StockItem, Table

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def release_to_available(monkeypatch):
    """Release tables straight to available instead of via cleaning."""
    monkeypatch.setattr(settings, "table_release_policy", "available")


@pytest.fixture
def make_profile(db_session: Session):
    """Factory for staff profiles. Role defaults apply unless ``permissions`` is given."""
    counter = {"n": 0}

    def _make(role: str = "waiter", permissions=None, is_active: bool = True) -> StaffProfile:
        counter["n"] += 1
        role = StaffRole(role)
        profile = StaffProfile(
            email=f"{role.value}{counter['n']}@floor.test",
            full_name=f"{role.value.title()} {counter['n']}",
            role=role,
            permissions=default_permissions(role) if permissions is None else permissions,
            is_active=is_active,
        )
        db_session.add(profile)
        db_session.commit()
        db_session.refresh(profile)
        return profile

    return _make


@pytest.fixture
def master(make_profile) -> StaffProfile:
    return make_profile("master")


@pytest.fixture
def admin(make_profile) -> StaffProfile:
    return make_profile("admin")


@pytest.fixture
def manager(make_profile) -> StaffProfile:
    return make_profile("manager")


@pytest.fixture
def waiter(make_profile) -> StaffProfile:
    return make_profile("waiter")


@pytest.fixture
def kitchen(make_profile) -> StaffProfile:
    return make_profile("kitchen")


def auth_headers_for(profile: StaffProfile) -> dict:
    """Bearer headers acting as ``profile``."""
    role = profile.role.value if isinstance(profile.role, StaffRole) else profile.role
    return {"Authorization": f"Bearer {create_profile_token(profile.id, role)}"}


@pytest.fixture
def headers_for():
    return auth_headers_for


@pytest.fixture
def admin_headers(admin) -> dict:
    return auth_headers_for(admin)


@pytest.fixture
def waiter_headers(waiter) -> dict:
    return auth_headers_for(waiter)


@pytest.fixture
def menu(db_session: Session) -> dict:
    """A small menu: two available dishes and one that is off."""
    burger = MenuItem(name="Classic Burger", price=Decimal("10.00"), category="Food", preparation_time=15)
    beer = MenuItem(name="House Beer", price=Decimal("4.50"), category="Drinks", preparation_time=2)
    special = MenuItem(name="Seasonal Special", price=Decimal("20.00"), category="Specials", is_available=False)
    db_session.add_all([burger, beer, special])
    db_session.commit()
    return {"burger": burger, "beer": beer, "special": special}


@pytest.fixture
def tables(db_session: Session) -> dict:
    """Tables numbered 1-5, keyed by number."""
    created = {n: Table(number=n, capacity=4, area="Main Floor") for n in range(1, 6)}
    db_session.add_all(created.values())
    db_session.commit()
    return created


@pytest.fixture
def stock_item(db_session: Session) -> StockItem:
    """Stock item at 5 units with min 10, max 50, used at 2 per day."""
    item = StockItem(
        name="Burger Buns",
        category="food",
        current_stock=Decimal("5"),
        min_stock=Decimal("10"),
        max_stock=Decimal("50"),
        unit="pcs",
        cost_per_unit=Decimal("0.40"),
        consumption_rate=Decimal("2"),
    )
    db_session.add(item)
    db_session.commit()
    return item
