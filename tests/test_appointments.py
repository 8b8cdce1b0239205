"""Tests for appointment scheduling, status changes and availability."""
from __future__ import annotations

from groomhub.extensions import db
from groomhub.models import Pet


def _book(client, headers, customer_with_pet, **overrides):
    payload = {
        "customer_id": customer_with_pet["customer_id"],
        "pet_id": customer_with_pet["pet_id"],
        "appointment_date": "2026-03-16",
        "start_time": "10:00",
    }
    payload.update(overrides)
    return client.post("/appointments", json=payload, headers=headers)


def test_create_appointment_defaults_from_service(client, auth_headers, customer_with_pet, service) -> None:
    response = _book(client, auth_headers, customer_with_pet, service_id=service["service_id"])

    assert response.status_code == 201
    appointment = response.get_json()["appointment"]
    assert appointment["end_time"] == "11:30"
    assert appointment["total_price_cents"] == 6500
    assert appointment["status"] == "scheduled"
    assert appointment["service_summary"] == "Full Groom"
    assert appointment["pet"]["name"] == "Luna"


def test_create_appointment_without_service_defaults_to_an_hour(client, auth_headers, customer_with_pet) -> None:
    response = _book(client, auth_headers, customer_with_pet, total_price="40")

    appointment = response.get_json()["appointment"]
    assert appointment["end_time"] == "11:00"
    assert appointment["total_price_cents"] == 4000


def test_create_appointment_from_legacy_payload(client, auth_headers, customer_with_pet, service) -> None:
    response = client.post(
        "/appointments",
        json={
            "client_id": customer_with_pet["customer_id"],
            "pet_id": customer_with_pet["pet_id"],
            "scheduled_date": "2026-03-17T14:30:00",
            "service_type": "full groom",
            "price": 70,
            "status": "cancelled",
        },
        headers=auth_headers,
    )

    assert response.status_code == 201
    appointment = response.get_json()["appointment"]
    assert appointment["appointment_date"] == "2026-03-17"
    assert appointment["start_time"] == "14:30"
    assert appointment["service_id"] == service["service_id"]
    assert appointment["total_price_cents"] == 7000
    assert appointment["status"] == "canceled"


def test_pet_must_belong_to_customer(app, client, business, auth_headers, customer_with_pet) -> None:
    other = client.post("/customers", json={"first_name": "James", "phone": "2125559876"}, headers=auth_headers)
    response = _book(client, auth_headers, customer_with_pet, customer_id=other.get_json()["customer"]["id"])

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_payload"


def test_create_appointment_validation(client, auth_headers, customer_with_pet) -> None:
    assert _book(client, auth_headers, customer_with_pet, appointment_date="03/16/2026").status_code == 400
    assert _book(client, auth_headers, customer_with_pet, start_time="ten").status_code == 400
    assert _book(client, auth_headers, customer_with_pet, end_time="09:00").status_code == 400
    assert _book(client, auth_headers, customer_with_pet, status="lost").status_code == 400
    assert _book(client, auth_headers, customer_with_pet, pet_id=999).status_code == 404


def test_list_appointments_filters_and_order(client, auth_headers, customer_with_pet) -> None:
    _book(client, auth_headers, customer_with_pet, start_time="14:00")
    _book(client, auth_headers, customer_with_pet, start_time="09:00")
    _book(client, auth_headers, customer_with_pet, appointment_date="2026-03-17", status="confirmed")

    day = client.get("/appointments?date=2026-03-16", headers=auth_headers).get_json()["appointments"]
    confirmed = client.get("/appointments?status=confirmed", headers=auth_headers).get_json()["appointments"]
    everything = client.get("/appointments", headers=auth_headers).get_json()["appointments"]

    assert [a["start_time"] for a in day] == ["09:00", "14:00"]
    assert [a["appointment_date"] for a in confirmed] == ["2026-03-17"]
    assert [a["appointment_date"] for a in everything] == ["2026-03-16", "2026-03-16", "2026-03-17"]
    assert client.get("/appointments?status=lost", headers=auth_headers).status_code == 400


def test_reschedule_keeps_duration(client, auth_headers, customer_with_pet, service) -> None:
    appointment_id = _book(client, auth_headers, customer_with_pet, service_id=service["service_id"]).get_json()[
        "appointment"
    ]["id"]

    response = client.put(f"/appointments/{appointment_id}", json={"start_time": "13:00"}, headers=auth_headers)

    assert response.status_code == 200
    assert response.get_json()["appointment"]["start_time"] == "13:00"
    assert response.get_json()["appointment"]["end_time"] == "14:30"


def test_completing_appointment_stamps_pet(app, client, auth_headers, customer_with_pet) -> None:
    appointment_id = _book(client, auth_headers, customer_with_pet).get_json()["appointment"]["id"]

    response = client.put(f"/appointments/{appointment_id}/status", json={"status": "completed"}, headers=auth_headers)

    assert response.status_code == 200
    assert response.get_json()["appointment"]["status"] == "completed"
    with app.app_context():
        pet = db.session.get(Pet, customer_with_pet["pet_id"])
        assert pet.last_grooming_date.isoformat() == "2026-03-16"


def test_status_cannot_leave_final_states(client, auth_headers, customer_with_pet) -> None:
    appointment_id = _book(client, auth_headers, customer_with_pet).get_json()["appointment"]["id"]
    url = f"/appointments/{appointment_id}/status"

    assert client.put(url, json={"status": "in-progress"}, headers=auth_headers).status_code == 200
    response = client.put(url, json={"status": "cancelled"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.get_json()["message"] == "Appointment cancelled."

    response = client.put(url, json={"status": "scheduled"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_status"
    assert client.put(url, json={"status": "bogus"}, headers=auth_headers).status_code == 400
    assert client.put(url, json={"status": 5}, headers=auth_headers).status_code == 400


def test_edit_cannot_reopen_final_appointment(client, auth_headers, customer_with_pet) -> None:
    appointment_id = _book(client, auth_headers, customer_with_pet).get_json()["appointment"]["id"]
    client.put(f"/appointments/{appointment_id}/status", json={"status": "canceled"}, headers=auth_headers)

    response = client.put(f"/appointments/{appointment_id}", json={"status": "scheduled"}, headers=auth_headers)

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_status"
    appointment = client.get(f"/appointments/{appointment_id}", headers=auth_headers).get_json()["appointment"]
    assert appointment["status"] == "canceled"
    assert client.put(f"/appointments/{appointment_id}", json={"notes": "No call"}, headers=auth_headers).status_code == 200


def test_edit_to_completed_stamps_last_grooming_date(app, client, auth_headers, customer_with_pet) -> None:
    appointment_id = _book(client, auth_headers, customer_with_pet).get_json()["appointment"]["id"]

    response = client.put(f"/appointments/{appointment_id}", json={"status": "completed"}, headers=auth_headers)

    assert response.status_code == 200
    with app.app_context():
        pet = db.session.get(Pet, customer_with_pet["pet_id"])
        assert pet.last_grooming_date.isoformat() == "2026-03-16"


def test_availability_excludes_active_bookings(client, auth_headers, customer_with_pet) -> None:
    _book(client, auth_headers, customer_with_pet, start_time="09:00")
    _book(client, auth_headers, customer_with_pet, start_time="10:00", status="canceled")
    _book(client, auth_headers, customer_with_pet, start_time="11:00", status="no_show")

    response = client.get("/appointments/availability?date=2026-03-16", headers=auth_headers)

    assert response.status_code == 200
    data = response.get_json()
    assert data["booked_slots"] == ["09:00", "11:00"]
    assert "09:00" not in data["available_slots"]
    assert "10:00" in data["available_slots"]
    assert len(data["available_slots"]) == 18
    assert client.get("/appointments/availability", headers=auth_headers).status_code == 400


def test_delete_appointment(client, auth_headers, customer_with_pet) -> None:
    appointment_id = _book(client, auth_headers, customer_with_pet).get_json()["appointment"]["id"]

    assert client.delete(f"/appointments/{appointment_id}", headers=auth_headers).status_code == 200
    assert client.get(f"/appointments/{appointment_id}", headers=auth_headers).status_code == 404
