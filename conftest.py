"""Pytest configuration and fixtures for the parking service tests."""
import os

# in-memory database shared by the app and the tests; set before any import
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from shared.core.database import Base, ParkingSessionLocal, parking_engine
from parking_service.app.main import app
from parking_service.app.crud.parking import inventory_crud
from parking_service.app.crud.parking.slot_allocator import allocate_booking
from parking_service.app.schemas.parking.booking_schemas import BookingCreate
from parking_service.app.schemas.parking.organization_schemas import OrganizationCreate
from parking_service.app.schemas.parking.parking_lot_schemas import ParkingLotCreate

NOW = datetime(2026, 3, 2, 12, 0, 0)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def db():
    """Fresh schema and a session for direct crud calls."""
    Base.metadata.drop_all(bind=parking_engine)
    Base.metadata.create_all(bind=parking_engine)
    session = ParkingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    """Create a test client for the FastAPI app."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def make_org(db):
    def _make_org(name="Acme Campus", rate="20", member_free=True):
        return inventory_crud.register_organization(db, OrganizationCreate(
            org_name=name,
            visitor_hourly_rate=Decimal(rate),
            member_parking_free=member_free
        ))
    return _make_org


@pytest.fixture
def make_lot(db):
    def _make_lot(org, total_slots, priority_order=1, name=None):
        return inventory_crud.create_parking_lot(db, ParkingLotCreate(
            organization_id=org.id,
            lot_name=name or f"Lot {priority_order}",
            total_slots=total_slots,
            priority_order=priority_order
        ))
    return _make_lot


@pytest.fixture
def book(db):
    def _book(org, start=None, hours=2, vehicle="KA01AB1234", user_id=1,
              is_member=False, auto_confirm=True):
        start = start or NOW - timedelta(hours=1)
        return allocate_booking(db, BookingCreate(
            organization_id=org.id,
            user_id=user_id,
            vehicle_number=vehicle,
            booking_start_time=start,
            booking_end_time=start + timedelta(hours=hours),
            is_member=is_member,
            auto_confirm=auto_confirm
        ))
    return _book
