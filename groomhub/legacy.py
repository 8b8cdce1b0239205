"""Translate legacy single-tenant payloads into the multi-tenant shape.

Older clients still send ``client_id``, a single ``name`` for customers,
``scheduled_date`` timestamps and comma-joined ``service_type`` strings.
Normalization only fills keys that are missing: a new-shape key that is
already present always wins.
"""
from __future__ import annotations

from datetime import datetime
from typing import Callable, Mapping

LEGACY_STATUSES = {
    "cancelled": "canceled",
    "in-progress": "in_progress",
    "no-show": "no_show",
}


def normalize_status(status: str | None) -> str | None:
    if status is None:
        return None
    status = str(status).strip().lower()
    return LEGACY_STATUSES.get(status, status)


def split_full_name(name: str) -> tuple[str, str]:
    parts = (name or "").strip().split(None, 1)
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[1]


def _copy_missing(data: dict, legacy_key: str, new_key: str) -> None:
    if legacy_key in data and new_key not in data:
        data[new_key] = data[legacy_key]
    data.pop(legacy_key, None)


def normalize_customer_payload(payload: Mapping[str, object]) -> dict[str, object]:
    data = dict(payload)
    name = data.pop("name", None)
    if isinstance(name, str) and "first_name" not in data:
        first, last = split_full_name(name)
        data["first_name"] = first
        data.setdefault("last_name", last)
    return data


def normalize_pet_payload(payload: Mapping[str, object]) -> dict[str, object]:
    data = dict(payload)
    _copy_missing(data, "client_id", "customer_id")
    return data


def normalize_appointment_payload(
    payload: Mapping[str, object],
    find_service_id: Callable[[str], int | None] | None = None,
) -> dict[str, object]:
    """Normalize an appointment payload.

    ``find_service_id`` maps a service name to its id. It is used to
    resolve the first entry of a legacy ``service_type`` list.
    """
    data = dict(payload)
    _copy_missing(data, "client_id", "customer_id")
    _copy_missing(data, "price", "total_price")

    scheduled = data.pop("scheduled_date", None)
    if scheduled and ("appointment_date" not in data or "start_time" not in data):
        try:
            moment = datetime.fromisoformat(str(scheduled).replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValueError("scheduled_date must be an ISO 8601 datetime") from exc
        data.setdefault("appointment_date", moment.date().isoformat())
        data.setdefault("start_time", moment.strftime("%H:%M"))

    service_type = data.pop("service_type", None)
    if isinstance(service_type, str) and service_type.strip():
        names = [name.strip() for name in service_type.split(",") if name.strip()]
        data.setdefault("service_summary", ", ".join(names))
        if "service_id" not in data and find_service_id is not None:
            for name in names:
                service_id = find_service_id(name)
                if service_id is not None:
                    data["service_id"] = service_id
                    break

    if "status" in data and isinstance(data["status"], str):
        data["status"] = normalize_status(data["status"])

    return data
