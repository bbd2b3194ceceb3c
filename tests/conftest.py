import os

# Set testing environment variable before the app is imported
os.environ["TESTING"] = "1"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from carebook.main import app
from carebook.api.deps import get_booking_store, get_payment_gateway, get_user_store
from carebook.core.database import create_session_factory, init_db
from carebook.core.security import UserRole, create_access_token
from carebook.services.payment_gateway import SimulatedGateway
from carebook.storage.factory import Stores
from carebook.storage.memory import InMemoryBookingStore, InMemoryUserStore
from carebook.storage.sql import SqlBookingStore, SqlUserStore

PATIENT_ID = "patient-p"
OTHER_PATIENT_ID = "patient-q"
DOCTOR_ID = "doctor-d"
OTHER_DOCTOR_ID = "doctor-e"

def auth_headers(subject_id: str, role: UserRole) -> dict:
    token = create_access_token(subject_id, role)
    return {"Authorization": f"Bearer {token}"}

def appointment_payload(**overrides) -> dict:
    payload = {
        "doctorId": DOCTOR_ID,
        "appointmentDate": "2026-11-02T10:00:00",
        "appointmentType": "in-person",
        "consultationFee": 150.00,
    }
    payload.update(overrides)
    return payload

@pytest.fixture
def stores():
    return Stores(users=InMemoryUserStore(), bookings=InMemoryBookingStore())

@pytest.fixture
def gateway():
    return SimulatedGateway()

@pytest.fixture
def client(stores, gateway):
    app.dependency_overrides[get_user_store] = lambda: stores.users
    app.dependency_overrides[get_booking_store] = lambda: stores.bookings
    app.dependency_overrides[get_payment_gateway] = lambda: gateway

    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client

    app.dependency_overrides.clear()

@pytest.fixture
def sql_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()

@pytest.fixture(params=["memory", "sql"])
def any_stores(request, sql_session_factory):
    """Both storage backends, for tests of the shared contract."""
    if request.param == "memory":
        return Stores(users=InMemoryUserStore(), bookings=InMemoryBookingStore())
    return Stores(users=SqlUserStore(sql_session_factory), bookings=SqlBookingStore(sql_session_factory))

@pytest.fixture
def patient_headers():
    return auth_headers(PATIENT_ID, UserRole.PATIENT)

@pytest.fixture
def other_patient_headers():
    return auth_headers(OTHER_PATIENT_ID, UserRole.PATIENT)

@pytest.fixture
def doctor_headers():
    return auth_headers(DOCTOR_ID, UserRole.DOCTOR)

@pytest.fixture
def other_doctor_headers():
    return auth_headers(OTHER_DOCTOR_ID, UserRole.DOCTOR)
