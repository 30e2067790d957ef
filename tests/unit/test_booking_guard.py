"""Tests for the booking guard against the appointments ledger."""

from datetime import date, time

import pytest
from sqlalchemy.exc import IntegrityError

from dawini.domain.scheduling import AvailabilityService, RejectionReason
from dawini.models import Appointment

MONDAY = date(2025, 3, 10)
SATURDAY = date(2025, 3, 15)


def book(db, doctor, patient, day=MONDAY, at=time(10, 0), status="confirmed"):
    appointment = Appointment(
        doctor_id=doctor.id,
        patient_id=patient.id,
        appointment_date=day,
        appointment_time=at,
        status=status,
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


class TestEvaluateBooking:
    """Checks run in order and the first failure wins."""

    def test_admits_free_slot(self, db, doctor, patient):
        decision = AvailabilityService(db).evaluate_booking(doctor.id, patient.id, MONDAY, time(10, 0))
        assert decision.admitted

    def test_unknown_doctor(self, db, patient):
        decision = AvailabilityService(db).evaluate_booking(999, patient.id, MONDAY, time(10, 0))
        assert decision.reason == RejectionReason.PROVIDER_NOT_FOUND

    def test_unavailable_doctor_before_schedule(self, db, doctor, patient):
        doctor.is_available = False
        db.commit()

        decision = AvailabilityService(db).evaluate_booking(doctor.id, patient.id, SATURDAY, time(10, 0))
        assert decision.reason == RejectionReason.PROVIDER_UNAVAILABLE

    def test_unverified_doctor(self, db, make_doctor, patient):
        unverified = make_doctor("doctor-9", "ORD-009", is_verified=False)
        decision = AvailabilityService(db).evaluate_booking(unverified.id, patient.id, MONDAY, time(10, 0))
        assert decision.reason == RejectionReason.PROVIDER_UNAVAILABLE

    def test_closed_day(self, db, doctor, patient):
        decision = AvailabilityService(db).evaluate_booking(doctor.id, patient.id, SATURDAY, time(10, 0))
        assert decision.reason == RejectionReason.CLOSED_DAY

    def test_outside_hours(self, db, doctor, patient):
        decision = AvailabilityService(db).evaluate_booking(doctor.id, patient.id, MONDAY, time(17, 0))
        assert decision.reason == RejectionReason.OUTSIDE_HOURS

    def test_slot_taken(self, db, doctor, patient, other_patient):
        book(db, doctor, other_patient)
        decision = AvailabilityService(db).evaluate_booking(doctor.id, patient.id, MONDAY, time(10, 0))
        assert decision.reason == RejectionReason.SLOT_TAKEN

    def test_slot_taken_wins_over_requester_conflict(self, db, doctor, patient):
        book(db, doctor, patient)
        decision = AvailabilityService(db).evaluate_booking(doctor.id, patient.id, MONDAY, time(10, 0))
        assert decision.reason == RejectionReason.SLOT_TAKEN

    def test_requester_conflict_across_doctors(self, db, doctor, other_doctor, patient):
        book(db, doctor, patient, MONDAY, time(10, 0))
        decision = AvailabilityService(db).evaluate_booking(
            other_doctor.id, patient.id, MONDAY, time(10, 0)
        )
        assert decision.reason == RejectionReason.REQUESTER_CONFLICT
        assert decision.status_code == 409

    def test_cancelled_booking_frees_slot(self, db, doctor, patient, other_patient):
        book(db, doctor, other_patient, status="cancelled")
        decision = AvailabilityService(db).evaluate_booking(doctor.id, patient.id, MONDAY, time(10, 0))
        assert decision.admitted

    def test_reschedule_ignores_booking_being_moved(self, db, doctor, patient):
        appointment = book(db, doctor, patient)
        decision = AvailabilityService(db).evaluate_booking(
            doctor.id, patient.id, MONDAY, time(10, 0), exclude_appointment_id=appointment.id
        )
        assert decision.admitted

    def test_reschedule_skips_availability_flag(self, db, doctor, patient):
        appointment = book(db, doctor, patient)
        doctor.is_available = False
        db.commit()

        decision = AvailabilityService(db).evaluate_booking(
            doctor.id,
            patient.id,
            MONDAY,
            time(11, 0),
            exclude_appointment_id=appointment.id,
            require_available=False,
        )
        assert decision.admitted


class TestFreeSlots:
    def test_booking_removed_from_free_slots(self, db, doctor, patient):
        book(db, doctor, patient, at=time(9, 0))
        slots = AvailabilityService(db).get_free_slots(doctor, MONDAY)

        assert slots[:4] == [time(8, 0), time(8, 30), time(9, 30), time(10, 0)]
        assert time(9, 0) not in slots

    def test_closed_day(self, db, doctor):
        assert AvailabilityService(db).get_free_slots(doctor, SATURDAY) == []


class TestLedgerConstraints:
    """The storage layer rejects double bookings that skip the guard."""

    def test_second_live_booking_for_doctor_slot(self, db, doctor, patient, other_patient):
        book(db, doctor, patient)
        with pytest.raises(IntegrityError):
            book(db, doctor, other_patient)
        db.rollback()

    def test_second_live_booking_for_patient_slot(self, db, doctor, other_doctor, patient):
        book(db, doctor, patient)
        with pytest.raises(IntegrityError):
            book(db, other_doctor, patient)
        db.rollback()

    def test_cancelled_rows_do_not_count(self, db, doctor, patient, other_patient):
        book(db, doctor, patient, status="cancelled")
        book(db, doctor, other_patient)
        book(db, doctor, patient, at=time(11, 0), status="cancelled")
        book(db, doctor, patient, at=time(11, 0), status="cancelled")
