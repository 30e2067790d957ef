"""Tests for /doctors and /pharmacies endpoints."""

from datetime import datetime

import pytest
from conftest import auth_headers, upcoming

DOCTOR_PAYLOAD = {
    "nOrdre": "ORD-777",
    "fullName": "Dr. Nadia Belkacem",
    "specialization": "Dermatologie",
    "biography": "<b>15 ans</b> d'expérience",
    "languages": ["fr", "ar"],
    "services": {"videoConsultation": True},
    "wilaya": "Oran",
    "commune": "Bir El Djir",
    "phone": "0550 12 34 56",
    "consultationDuration": 20,
    "consultationFee": 2500,
}


@pytest.fixture
def doctor_user(make_user):
    return make_user("doctor-new", "doctor", "Nadia Belkacem")


class TestDoctorDirectory:
    """Tests for GET /doctors."""

    def test_lists_verified_only(self, client, doctor, make_doctor):
        make_doctor("doctor-x", "ORD-X", is_verified=False)

        data = client.get("/doctors").json()

        assert data["total"] == 1
        assert data["doctors"][0]["id"] == doctor.id

    def test_specialization_substring_case_insensitive(self, client, doctor, other_doctor):
        data = client.get("/doctors", params={"specialization": "pédia"}).json()
        assert [d["id"] for d in data["doctors"]] == [other_doctor.id]

    def test_service_filter(self, client, make_doctor, doctor):
        night = make_doctor("doctor-n", "ORD-N", night_service=True)

        data = client.get("/doctors", params={"service": "nightService"}).json()

        assert [d["id"] for d in data["doctors"]] == [night.id]

    def test_available_filter(self, client, make_doctor, doctor):
        make_doctor("doctor-off", "ORD-OFF", is_available=False)
        data = client.get("/doctors", params={"available": True}).json()
        assert data["total"] == 1

    def test_sort_by_fee_desc(self, client, make_doctor):
        make_doctor("doctor-a", "ORD-A", consultation_fee=1500.0)
        make_doctor("doctor-b", "ORD-B", consultation_fee=3000.0)

        data = client.get("/doctors", params={"sortBy": "consultationFee", "sortOrder": "desc"}).json()

        assert [d["consultationFee"] for d in data["doctors"]] == [3000.0, 1500.0]

    def test_pagination(self, client, make_doctor):
        for i in range(3):
            make_doctor(f"doctor-{i}", f"ORD-{i}")

        data = client.get("/doctors", params={"page": 2, "limit": 2}).json()

        assert data["total"] == 3
        assert data["pages"] == 2
        assert len(data["doctors"]) == 1

    def test_limit_bounds(self, client):
        assert client.get("/doctors", params={"limit": 51}).status_code == 422
        assert client.get("/doctors", params={"page": 0}).status_code == 422

    def test_get_doctor(self, client, doctor):
        data = client.get(f"/doctors/{doctor.id}").json()
        assert data["nOrdre"] == "ORD-001"
        assert data["workingHours"]["monday"] == {"start": "08:00", "end": "17:00", "isOpen": True}

    def test_get_missing_doctor(self, client):
        assert client.get("/doctors/999").status_code == 404


class TestDoctorProfile:
    """Tests for creating and updating doctor profiles."""

    def test_create_own_profile(self, client, doctor_user):
        response = client.post("/doctors", json=DOCTOR_PAYLOAD, headers=auth_headers(doctor_user))

        assert response.status_code == 201
        data = response.json()
        assert data["userId"] == doctor_user.id
        assert data["isVerified"] is False
        assert data["phone"] == "+213550123456"
        assert data["biography"] == "&lt;b&gt;15 ans&lt;/b&gt; d&#x27;expérience"
        assert data["services"] == {"nightService": False, "homeVisit": False, "videoConsultation": True}

    def test_one_profile_per_user(self, client, doctor_user):
        client.post("/doctors", json=DOCTOR_PAYLOAD, headers=auth_headers(doctor_user))
        response = client.post(
            "/doctors", json={**DOCTOR_PAYLOAD, "nOrdre": "ORD-778"}, headers=auth_headers(doctor_user)
        )
        assert response.status_code == 409

    def test_duplicate_order_number(self, client, doctor, doctor_user):
        response = client.post(
            "/doctors", json={**DOCTOR_PAYLOAD, "nOrdre": "ORD-001"}, headers=auth_headers(doctor_user)
        )
        assert response.status_code == 409

    def test_patient_cannot_create(self, client, patient):
        response = client.post("/doctors", json=DOCTOR_PAYLOAD, headers=auth_headers(patient))
        assert response.status_code == 403

    def test_invalid_schedule_rejected(self, client, doctor_user):
        payload = {
            **DOCTOR_PAYLOAD,
            "workingHours": {"monday": {"start": "18:00", "end": "08:00", "isOpen": True}},
        }
        response = client.post("/doctors", json=payload, headers=auth_headers(doctor_user))
        assert response.status_code == 422

    def test_update_schedule_replaces_week(self, client, doctor):
        response = client.put(
            f"/doctors/{doctor.id}/profile",
            json={"workingHours": {"saturday": {"start": "09:00", "end": "12:00", "isWorking": True}}},
            headers=auth_headers(doctor.user),
        )

        assert response.status_code == 200
        hours = response.json()["workingHours"]
        assert hours["saturday"] == {"start": "09:00", "end": "12:00", "isOpen": True}
        assert hours["monday"]["isOpen"] is False

        saturday = upcoming(5).isoformat()
        slots = client.get(
            f"/appointments/doctor/{doctor.id}/availability", params={"date": saturday}
        ).json()["availableTimeSlots"]
        assert slots == ["09:00", "09:30", "10:00", "10:30", "11:00", "11:30"]

    def test_update_duration_changes_slots(self, client, doctor):
        client.put(
            f"/doctors/{doctor.id}/profile",
            json={"consultationDuration": 60},
            headers=auth_headers(doctor.user),
        )

        monday = upcoming(0).isoformat()
        slots = client.get(
            f"/appointments/doctor/{doctor.id}/availability", params={"date": monday}
        ).json()["availableTimeSlots"]
        assert slots[:3] == ["08:00", "09:00", "10:00"]
        assert len(slots) == 9

    def test_cannot_update_someone_elses_profile(self, client, doctor, other_doctor):
        response = client.put(
            f"/doctors/{doctor.id}/profile",
            json={"consultationFee": 1},
            headers=auth_headers(other_doctor.user),
        )
        assert response.status_code == 403

    def test_admin_verification(self, client, admin, make_doctor):
        pending = make_doctor("doctor-p", "ORD-P", is_verified=False)

        response = client.patch(
            f"/doctors/{pending.id}/verification", json={"isVerified": True}, headers=auth_headers(admin)
        )

        assert response.json()["isVerified"] is True
        assert client.get("/doctors").json()["total"] == 1

    def test_non_admin_cannot_verify(self, client, doctor):
        response = client.patch(
            f"/doctors/{doctor.id}/verification",
            json={"isVerified": False},
            headers=auth_headers(doctor.user),
        )
        assert response.status_code == 403


class TestPharmacies:
    """Tests for /pharmacies endpoints."""

    def test_create_own_pharmacy(self, client, make_user):
        pharmacist = make_user("pharmacist-new", "pharmacist")

        response = client.post(
            "/pharmacies",
            json={"pharmacyName": "Pharmacie du Centre", "licenseNumber": "LIC-200", "nightService": True},
            headers=auth_headers(pharmacist),
        )

        assert response.status_code == 201
        assert response.json()["operatingHours"]["monday"]["end"] == "20:00"

    def test_duplicate_license(self, client, pharmacy, make_user):
        pharmacist = make_user("pharmacist-new", "pharmacist")
        response = client.post(
            "/pharmacies",
            json={"pharmacyName": "Pharmacie Bis", "licenseNumber": "LIC-100"},
            headers=auth_headers(pharmacist),
        )
        assert response.status_code == 409

    def test_search_filters(self, client, pharmacy):
        assert client.get("/pharmacies", params={"wilaya": "alger"}).json()["total"] == 1
        assert client.get("/pharmacies", params={"wilaya": "Oran"}).json()["total"] == 0
        assert client.get("/pharmacies", params={"nightService": True}).json()["total"] == 0

    def test_is_open_at(self, client, pharmacy):
        monday = upcoming(0)
        url = f"/pharmacies/{pharmacy.id}/open"

        morning = client.get(url, params={"at": f"{monday.isoformat()}T09:00:00"}).json()
        closing = client.get(url, params={"at": f"{monday.isoformat()}T20:00:00"}).json()
        sunday = client.get(url, params={"at": f"{upcoming(6).isoformat()}T10:00:00"}).json()

        assert morning["open"] is True
        assert morning["hours"] == {"start": "08:00", "end": "20:00", "isOpen": True}
        assert closing["open"] is False
        assert sunday["open"] is False
        assert sunday["hours"] is None

    def test_is_open_at_converts_offsets(self, client, pharmacy):
        # 07:30 UTC is 08:30 in Algiers
        monday = upcoming(0).isoformat()
        data = client.get(f"/pharmacies/{pharmacy.id}/open", params={"at": f"{monday}T07:30:00+00:00"}).json()
        assert data["open"] is True

    def test_open_now_filter_is_consistent(self, client, pharmacy):
        listed = client.get("/pharmacies", params={"openNow": True}).json()["total"]
        open_now = client.get(f"/pharmacies/{pharmacy.id}/open").json()["open"]
        assert listed == (1 if open_now else 0)

    def test_update_hours(self, client, pharmacy):
        response = client.put(
            f"/pharmacies/{pharmacy.id}/profile",
            json={"operatingHours": {"sunday": {"start": "00:00", "end": "23:59", "isOpen": True}}},
            headers=auth_headers(pharmacy.user),
        )
        assert response.json()["operatingHours"]["sunday"]["isOpen"] is True

        sunday = datetime.combine(upcoming(6), datetime.min.time()).replace(hour=13)
        data = client.get(f"/pharmacies/{pharmacy.id}/open", params={"at": sunday.isoformat()}).json()
        assert data["open"] is True

    def test_admin_unverifies_pharmacy(self, client, admin, pharmacy):
        response = client.patch(
            f"/pharmacies/{pharmacy.id}/verification", json={"isVerified": False}, headers=auth_headers(admin)
        )

        assert response.json()["isVerified"] is False
        assert client.get("/pharmacies").json()["total"] == 0

    def test_get_missing_pharmacy(self, client):
        assert client.get("/pharmacies/999").status_code == 404
