"""Pytest configuration and fixtures."""

import os
from decimal import Decimal
from typing import Generator

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stocktake.database import Base, get_db
from stocktake.main import app
# Import all models to ensure they're registered with Base.metadata
from stocktake.models import *  # noqa: F401,F403
from stocktake.models.product import Location, Product
from stocktake.models.stock import SerialAsset, StockBalance
from stocktake.models.user import User
from stocktake.utils.events import get_event_bus

TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db(db_engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _isolated_event_bus():
    yield
    get_event_bus().clear()


# ── users ─────────────────────────────────────────────────────────────────────

def _user(db: Session, email: str, role: str) -> User:
    user = User(email=email, full_name=email.split("@")[0].title(), role=role, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin_user(db: Session) -> User:
    return _user(db, "admin@stocktake.test", "admin")


@pytest.fixture
def supervisor_user(db: Session) -> User:
    return _user(db, "supervisor@stocktake.test", "supervisor")


@pytest.fixture
def counter_user(db: Session) -> User:
    return _user(db, "counter@stocktake.test", "counter")


@pytest.fixture
def viewer_user(db: Session) -> User:
    return _user(db, "viewer@stocktake.test", "viewer")


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return {"X-User-Id": str(admin_user.id)}


@pytest.fixture
def supervisor_headers(supervisor_user: User) -> dict:
    return {"X-User-Id": str(supervisor_user.id)}


@pytest.fixture
def counter_headers(counter_user: User) -> dict:
    return {"X-User-Id": str(counter_user.id)}


@pytest.fixture
def viewer_headers(viewer_user: User) -> dict:
    return {"X-User-Id": str(viewer_user.id)}


# ── catalog & live stock ──────────────────────────────────────────────────────

@pytest.fixture
def location_a(db: Session) -> Location:
    loc = Location(code="A", name="Aisle A")
    db.add(loc)
    db.commit()
    db.refresh(loc)
    return loc


@pytest.fixture
def location_b(db: Session) -> Location:
    loc = Location(code="B", name="Aisle B")
    db.add(loc)
    db.commit()
    db.refresh(loc)
    return loc


@pytest.fixture
def product(db: Session) -> Product:
    p = Product(sku="BOLT-10", name="Hex bolt M10", has_serial_control=False, unit_cost=Decimal("2.5000"))
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


@pytest.fixture
def serial_product(db: Session) -> Product:
    p = Product(sku="DRILL-X", name="Cordless drill", has_serial_control=True, unit_cost=Decimal("120.0000"))
    db.add(p)
    db.commit()
    db.refresh(p)
    return p


@pytest.fixture
def live_stock(db: Session, product: Product, serial_product: Product, location_a: Location, location_b: Location) -> dict:
    """10 bolts at A; SN-42 present at A, SN-43 present at B, SN-99 recorded at A but not present."""
    db.add(StockBalance(product_id=product.id, location_id=location_a.id, on_hand_qty=Decimal("10")))
    db.add_all([
        SerialAsset(serial_number="SN-42", product_id=serial_product.id, location_id=location_a.id, is_present=True),
        SerialAsset(serial_number="SN-43", product_id=serial_product.id, location_id=location_b.id, is_present=True),
        SerialAsset(serial_number="SN-99", product_id=serial_product.id, location_id=location_a.id, is_present=False),
    ])
    db.commit()
    return {
        "product": product,
        "serial_product": serial_product,
        "location_a": location_a,
        "location_b": location_b,
    }
