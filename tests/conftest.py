"""Shared test fixtures for the Dawini API tests."""

import os
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Generator

# Settings are read at import time, so they must be in place before dawini loads
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ.pop("JWT_AUDIENCE", None)
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from dawini.database import Base, get_db  # noqa: E402
from dawini.main import app  # noqa: E402
from dawini.models import Doctor, Pharmacy, User  # noqa: E402
from dawini.rate_limiter import booking_rate_limiter  # noqa: E402

TEST_SECRET = "test-secret"

engine = create_engine(
    "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_token(external_uid: str, user_type: str = "patient", **claims) -> str:
    """Bearer token as the accounts service would issue it."""
    payload = {
        "sub": external_uid,
        "user_type": user_type,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        **claims,
    }
    return jwt.encode(payload, TEST_SECRET, algorithm="HS256")


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {make_token(user.external_uid, user.user_type)}"}


def upcoming(weekday: int, weeks_ahead: int = 1) -> date:
    """A date on the given weekday (0=Monday) at least a week from today."""
    today = date.today()
    days = (weekday - today.weekday()) % 7 + 7 * weeks_ahead
    return today + timedelta(days=days)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Fresh in-memory database per test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> Generator[TestClient, None, None]:
    """Test client bound to the test database, without rate limiting."""

    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[booking_rate_limiter] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    def _make_user(external_uid: str, user_type: str = "patient", full_name: str = None) -> User:
        user = User(
            external_uid=external_uid,
            user_type=user_type,
            full_name=full_name or external_uid,
            email=f"{external_uid}@example.dz",
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def patient(make_user) -> User:
    return make_user("patient-1", "patient", "Amina Benali")


@pytest.fixture
def other_patient(make_user) -> User:
    return make_user("patient-2", "patient", "Yacine Haddad")


@pytest.fixture
def admin(make_user) -> User:
    return make_user("admin-1", "admin", "Admin")


@pytest.fixture
def make_doctor(db: Session, make_user) -> Callable[..., Doctor]:
    def _make_doctor(external_uid: str, n_ordre: str, **fields) -> Doctor:
        user = make_user(external_uid, "doctor", fields.get("full_name"))
        values = {
            "full_name": "Dr. " + external_uid,
            "specialization": "Cardiologie",
            "wilaya": "Alger",
            "commune": "Hydra",
            "consultation_duration": 30,
            "consultation_fee": 2000.0,
            "is_verified": True,
            "is_available": True,
        }
        values.update(fields)
        doctor = Doctor(user_id=user.id, n_ordre=n_ordre, **values)
        db.add(doctor)
        db.commit()
        db.refresh(doctor)
        return doctor

    return _make_doctor


@pytest.fixture
def doctor(make_doctor) -> Doctor:
    """Verified doctor working weekdays 08:00-17:00 with 30 minute slots."""
    return make_doctor("doctor-1", "ORD-001", full_name="Dr. Karim Mansouri")


@pytest.fixture
def other_doctor(make_doctor) -> Doctor:
    return make_doctor(
        "doctor-2", "ORD-002", full_name="Dr. Leila Saadi", specialization="Pédiatrie"
    )


@pytest.fixture
def pharmacy(db: Session, make_user) -> Pharmacy:
    """Verified pharmacy open weekdays 08:00-20:00."""
    user = make_user("pharmacist-1", "pharmacist", "Samir Kaci")
    pharmacy = Pharmacy(
        user_id=user.id,
        pharmacy_name="Pharmacie El Chifa",
        license_number="LIC-100",
        wilaya="Alger",
        commune="Hydra",
        is_verified=True,
    )
    db.add(pharmacy)
    db.commit()
    db.refresh(pharmacy)
    return pharmacy


@pytest.fixture
def session_factory(db: Session) -> sessionmaker:
    """Session factory bound to the test database, for code that opens its own sessions."""
    return TestingSessionLocal
