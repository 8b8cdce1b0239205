"""Shared request validation helpers.

Each helper raises ``ValueError`` with a message that is safe to
return to the client.
"""
from __future__ import annotations

import re
from datetime import date, datetime

from .formatting import to_cents, unformat_phone_number

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def clean_str(value) -> str | None:
    """Strip a string value; empty strings become None."""
    if value is None:
        return None
    return str(value).strip() or None


def validate_email(email: str | None, required: bool = False) -> str | None:
    email = str(email or "").strip().lower()
    if not email:
        if required:
            raise ValueError("email is required")
        return None
    if not EMAIL_PATTERN.match(email):
        raise ValueError("Invalid email format")
    return email


def validate_phone(phone: str | None, required: bool = False) -> str | None:
    """Normalize a US phone number to its digits."""
    digits = unformat_phone_number(phone)
    if digits.startswith("1") and len(digits) == 11:
        digits = digits[1:]
    if not digits:
        if required:
            raise ValueError("phone is required")
        return None
    if len(digits) != 10:
        raise ValueError("Phone number must be 10 digits")
    return digits


def parse_date(value: str | None, field_name: str = "date") -> date:
    if not value:
        raise ValueError(f"{field_name} is required")
    try:
        return datetime.strptime(str(value).strip()[:10], "%Y-%m-%d").date()
    except ValueError as exc:
        raise ValueError(f"{field_name} must be in YYYY-MM-DD format") from exc


def parse_datetime(value: str | None, field_name: str) -> datetime:
    """Parse an ISO 8601 timestamp into a naive wall-clock datetime."""
    if not value:
        raise ValueError(f"{field_name} is required")
    try:
        moment = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(f"{field_name} must be an ISO 8601 datetime") from exc
    return moment.replace(tzinfo=None)


def parse_money(value, field_name: str, default: int | None = None) -> int | None:
    """Dollar amount -> cents. Returns ``default`` when the value is absent."""
    if value is None or value == "":
        return default
    try:
        return to_cents(value)
    except ValueError as exc:
        raise ValueError(f"{field_name} must be a non-negative amount") from exc


def parse_int(value, field_name: str, minimum: int | None = None, default: int | None = None) -> int | None:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field_name} must be an integer") from exc
    if minimum is not None and number < minimum:
        raise ValueError(f"{field_name} must be at least {minimum}")
    return number


def parse_float(value, field_name: str, minimum: float | None = None, default: float | None = None) -> float | None:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field_name} must be a number") from exc
    if minimum is not None and number < minimum:
        raise ValueError(f"{field_name} must be at least {minimum}")
    return number


def parse_bool(value, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def validate_pin(pin) -> str:
    pin = str(pin or "").strip()
    if not re.fullmatch(r"\d{4,6}", pin):
        raise ValueError("pin must be 4 to 6 digits")
    return pin
