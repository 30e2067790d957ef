"""Tests for time parsing and slot stepping."""

from datetime import date, datetime, time, timezone

import pytest

from dawini.domain.scheduling.time_calculator import (
    add_minutes,
    format_time_of_day,
    iter_slot_starts,
    localize,
    parse_time_of_day,
    utc_now,
    weekday_name,
)


class TestParseTimeOfDay:
    """Tests for parse_time_of_day()."""

    @pytest.mark.parametrize(
        "raw, expected",
        [("08:00", time(8, 0)), ("8:30", time(8, 30)), ("23:59", time(23, 59)), (" 09:15 ", time(9, 15))],
    )
    def test_accepts_hh_mm(self, raw, expected):
        assert parse_time_of_day(raw) == expected

    @pytest.mark.parametrize("raw", ["24:00", "12:60", "noon", "", "9h30", None, 930])
    def test_rejects_malformed(self, raw):
        with pytest.raises(ValueError, match="HH:MM"):
            parse_time_of_day(raw)

    def test_time_values_pass_through_without_seconds(self):
        assert parse_time_of_day(time(10, 0, 45)) == time(10, 0)


class TestSlotArithmetic:
    """Tests for add_minutes() and iter_slot_starts()."""

    def test_add_minutes_within_day(self):
        assert add_minutes(time(9, 45), 30) == time(10, 15)

    def test_add_minutes_past_midnight_is_none(self):
        assert add_minutes(time(23, 45), 30) is None

    def test_end_is_exclusive(self):
        slots = iter_slot_starts(time(8, 0), time(9, 30), 30)
        assert slots == [time(8, 0), time(8, 30), time(9, 0)]

    def test_uneven_step_stops_before_end(self):
        slots = iter_slot_starts(time(8, 0), time(9, 0), 45)
        assert slots == [time(8, 0), time(8, 45)]

    def test_late_window_does_not_wrap(self):
        slots = iter_slot_starts(time(23, 0), time(23, 59), 30)
        assert slots == [time(23, 0), time(23, 30)]

    def test_empty_window(self):
        assert iter_slot_starts(time(8, 0), time(8, 0), 30) == []

    def test_non_positive_step_rejected(self):
        with pytest.raises(ValueError):
            iter_slot_starts(time(8, 0), time(9, 0), 0)


class TestCalendarHelpers:
    def test_weekday_name(self):
        assert weekday_name(date(2025, 3, 10)) == "monday"
        assert weekday_name(date(2025, 3, 16)) == "sunday"

    def test_format_time_of_day(self):
        assert format_time_of_day(time(7, 5)) == "07:05"
        assert format_time_of_day(None) is None

    def test_localize_uses_configured_zone(self):
        moment = localize(date(2025, 3, 10), time(10, 0))
        assert moment.tzinfo is not None
        assert moment.utcoffset().total_seconds() == 3600  # Africa/Algiers, no DST

    def test_utc_now_is_naive_utc(self):
        before = datetime.now(timezone.utc).replace(tzinfo=None)
        moment = utc_now()

        assert moment.tzinfo is None
        assert 0 <= (moment - before).total_seconds() < 5
