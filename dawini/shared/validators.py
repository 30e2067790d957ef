"""Shared validation utilities"""

import re
from datetime import date
from typing import Optional

from ..domain.scheduling.time_calculator import parse_time_of_day
from ..models import WEEKDAYS


def validate_dz_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize an Algerian phone number to E.164 format.

    Accepts local numbers (0550123456, 021 23 45 67) and international
    ones (+213550123456, 00213550123456).

    Returns:
        Normalized phone number (+213XXXXXXXXX or +213XXXXXXXX for landlines)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    digits = re.sub(r"\D", "", phone)

    if digits.startswith("00213"):
        digits = digits[5:]
    elif digits.startswith("213"):
        digits = digits[3:]
    elif digits.startswith("0"):
        digits = digits[1:]
    else:
        raise ValueError("Phone number must be an Algerian number")

    # Mobiles have 9 digits after the country code, landlines 8
    if len(digits) not in (8, 9):
        raise ValueError("Phone number must have 9 or 10 digits in local format")

    return f"+213{digits}"


def validate_iso_date(value: str) -> date:
    """Parse a YYYY-MM-DD date, raising ValueError with a user-facing message"""
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValueError("Invalid date format. Expected YYYY-MM-DD") from None


def normalize_week_schedule(schedule: Optional[dict]) -> Optional[dict]:
    """
    Validate a weekly schedule and return it in canonical form.

    Input maps weekday names to {start, end, isOpen}; the legacy key
    `isWorking` is accepted for `isOpen`. Open days need both times and
    start <= end. Missing days are stored as closed.
    """
    if schedule is None:
        return None

    unknown = set(schedule) - set(WEEKDAYS)
    if unknown:
        raise ValueError(f"Unknown weekday(s): {', '.join(sorted(unknown))}")

    normalized = {}
    for day in WEEKDAYS:
        entry = schedule.get(day) or {}
        if hasattr(entry, "model_dump"):
            entry = entry.model_dump(by_alias=True)
        is_open = bool(entry.get("isOpen", entry.get("isWorking", False)))
        start = entry.get("start")
        end = entry.get("end")

        if is_open:
            if not start or not end:
                raise ValueError(f"{day}: open days need both start and end")
            start_t = parse_time_of_day(start)
            end_t = parse_time_of_day(end)
            if start_t > end_t:
                raise ValueError(f"{day}: start must not be after end")
            start, end = start_t.strftime("%H:%M"), end_t.strftime("%H:%M")
        else:
            start = parse_time_of_day(start).strftime("%H:%M") if start else None
            end = parse_time_of_day(end).strftime("%H:%M") if end else None

        normalized[day] = {"start": start, "end": end, "isOpen": is_open}

    return normalized
