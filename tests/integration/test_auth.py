"""Tests for bearer token handling and the liveness endpoints."""

from datetime import datetime, timedelta, timezone

from conftest import TEST_SECRET, make_token
from jose import jwt

from dawini.models import User


class TestBearerAuth:
    def test_missing_header(self, client):
        assert client.get("/appointments").status_code == 401

    def test_malformed_token(self, client):
        response = client.get("/appointments", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_wrong_signature(self, client):
        token = jwt.encode({"sub": "x", "user_type": "patient"}, "other-secret", algorithm="HS256")
        response = client.get("/appointments", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_expired_token(self, client):
        token = jwt.encode(
            {"sub": "x", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            TEST_SECRET,
            algorithm="HS256",
        )
        response = client.get("/appointments", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.headers["X-Token-Expired"] == "true"

    def test_unknown_user_type(self, client):
        token = make_token("someone", "nurse")
        response = client.get("/appointments", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_first_request_registers_user(self, client, db):
        token = make_token("new-patient", "patient", name="Sara Meziane", email="sara@example.dz")

        response = client.get("/appointments", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        user = db.query(User).filter(User.external_uid == "new-patient").one()
        assert user.full_name == "Sara Meziane"
        assert user.user_type == "patient"

    def test_inactive_user(self, client, db, patient):
        patient.is_active = False
        db.commit()

        response = client.get("/appointments", headers={"Authorization": f"Bearer {make_token('patient-1')}"})

        assert response.status_code == 401


class TestHealth:
    def test_root(self, client):
        assert client.get("/").json()["message"] == "Dawini API"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}
