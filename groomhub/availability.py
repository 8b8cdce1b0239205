"""Booking time slots for a single day."""
from __future__ import annotations

from datetime import datetime, time
from typing import Iterable

# Bookable start times: every half hour from 08:00 through 17:30.
TIME_SLOTS: list[str] = [f"{hour:02d}:{minute:02d}" for hour in range(8, 18) for minute in (0, 30)]

INACTIVE_STATUSES = ("canceled",)


def parse_time(value: str) -> time:
    """Parse ``HH:MM`` (or ``HH:MM:SS``) into a ``time``."""
    value = (value or "").strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(value, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"invalid time: {value!r}")


def booked_times(appointments: Iterable) -> list[str]:
    """Start times (``HH:MM``) of appointments that still hold their slot."""
    return [
        appointment.start_time.strftime("%H:%M")
        for appointment in appointments
        if appointment.status not in INACTIVE_STATUSES and appointment.start_time is not None
    ]


def available_time_slots(booked: Iterable[str]) -> list[str]:
    taken = set(booked)
    return [slot for slot in TIME_SLOTS if slot not in taken]
