"""Tests for the pure availability functions."""

from datetime import date, time

from dawini.domain.scheduling import (
    BookingDecision,
    DayWindow,
    RejectionReason,
    check_schedule,
    compute_free_slots,
    get_day_window,
)
from dawini.models import default_working_hours

MONDAY = date(2025, 3, 10)
SATURDAY = date(2025, 3, 15)


class TestGetDayWindow:
    """Tests for get_day_window()."""

    def test_open_day(self):
        window = get_day_window(default_working_hours(), MONDAY)
        assert window == DayWindow(time(8, 0), time(17, 0))

    def test_closed_day(self):
        assert get_day_window(default_working_hours(), SATURDAY) is None

    def test_missing_day_is_closed(self):
        assert get_day_window({"tuesday": {"start": "08:00", "end": "12:00", "isOpen": True}}, MONDAY) is None

    def test_accepts_is_working_key(self):
        schedule = {"monday": {"start": "09:00", "end": "12:00", "isWorking": True}}
        assert get_day_window(schedule, MONDAY) == DayWindow(time(9, 0), time(12, 0))

    def test_open_day_without_times_is_closed(self):
        assert get_day_window({"monday": {"isOpen": True}}, MONDAY) is None

    def test_no_schedule(self):
        assert get_day_window(None, MONDAY) is None


class TestComputeFreeSlots:
    """Tests for compute_free_slots()."""

    def test_booking_removes_exactly_its_slot(self):
        window = get_day_window(default_working_hours(), MONDAY)
        slots = compute_free_slots(window, [time(9, 0)], 30)

        assert slots[:4] == [time(8, 0), time(8, 30), time(9, 30), time(10, 0)]
        assert time(9, 0) not in slots
        assert len(slots) == 17
        assert slots[-1] == time(16, 30)

    def test_closed_day_has_no_slots(self):
        assert compute_free_slots(None, [], 30) == []

    def test_slots_follow_consultation_duration(self):
        slots = compute_free_slots(DayWindow(time(8, 0), time(10, 0)), [], 45)
        assert slots == [time(8, 0), time(8, 45), time(9, 30)]

    def test_booking_off_the_grid_hides_nothing(self):
        slots = compute_free_slots(DayWindow(time(8, 0), time(9, 0)), [time(8, 15)], 30)
        assert slots == [time(8, 0), time(8, 30)]


class TestCheckSchedule:
    """Tests for the schedule part of the booking guard."""

    def test_closed_day(self):
        decision = check_schedule(default_working_hours(), SATURDAY, time(10, 0))
        assert decision == BookingDecision.reject(RejectionReason.CLOSED_DAY)
        assert decision.status_code == 400

    def test_end_of_interval_is_outside(self):
        decision = check_schedule(default_working_hours(), MONDAY, time(17, 0))
        assert decision.reason == RejectionReason.OUTSIDE_HOURS

    def test_before_start_is_outside(self):
        decision = check_schedule(default_working_hours(), MONDAY, time(7, 59))
        assert decision.reason == RejectionReason.OUTSIDE_HOURS

    def test_start_of_interval_is_inside(self):
        assert check_schedule(default_working_hours(), MONDAY, time(8, 0)).admitted


class TestBookingDecision:
    def test_detail_carries_code_and_message(self):
        decision = BookingDecision.reject(RejectionReason.SLOT_TAKEN)
        assert decision.to_detail() == {
            "code": "slot_taken",
            "message": "This time slot is already booked",
        }
        assert decision.status_code == 409

    def test_not_found_maps_to_404(self):
        assert BookingDecision.reject(RejectionReason.PROVIDER_NOT_FOUND).status_code == 404
