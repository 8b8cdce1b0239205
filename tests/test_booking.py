"""Tests for the public booking page API."""
from __future__ import annotations

import pytest

from groomhub.extensions import db
from groomhub.models import Appointment, Customer, Pet, Service


@pytest.fixture
def catalog(app, business) -> None:
    with app.app_context():
        db.session.add_all([
            Service(business_id=business["business_id"], name="Bath & Brush", price_cents=3500, duration_minutes=60),
            Service(business_id=business["business_id"], name="Nail Trim", price_cents=1500, duration_minutes=30),
            Service(business_id=business["business_id"], name="Retired", price_cents=100, is_active=False),
        ])
        db.session.commit()


def _booking(**overrides):
    payload = {
        "client_name": "Maria Rivera",
        "phone": "(787) 555-1234",
        "pet_name": "Luna",
        "services": ["Nail Trim", "Bath & Brush"],
        "date": "2026-03-16",
        "time": "10:00",
    }
    payload.update(overrides)
    return payload


def test_public_services_lists_active_only(client, catalog) -> None:
    response = client.get("/book/happy-paws/services")

    assert response.status_code == 200
    data = response.get_json()
    assert data["business"]["name"] == "Happy Paws"
    assert [service["name"] for service in data["services"]] == ["Bath & Brush", "Nail Trim"]


def test_unknown_business_slug(client) -> None:
    assert client.get("/book/nowhere/services").status_code == 404


def test_public_lookup(client, customer_with_pet) -> None:
    found = client.get("/book/happy-paws/lookup", query_string={"phone": "787.555.1234"}).get_json()
    missing = client.get("/book/happy-paws/lookup", query_string={"phone": "7875550000"}).get_json()

    assert found["found"] is True
    assert found["client"]["name"] == "Maria Rivera"
    assert [pet["name"] for pet in found["pets"]] == ["Luna"]
    assert missing == {"found": False, "phone": "(787) 555-0000"}


def test_booking_reuses_matching_customer_and_pet(app, client, catalog, customer_with_pet) -> None:
    response = client.post("/book/happy-paws/appointments", json=_booking(client_name="maria"))

    assert response.status_code == 201
    data = response.get_json()
    appointment = data["appointment"]
    assert appointment["customer_id"] == customer_with_pet["customer_id"]
    assert appointment["pet_id"] == customer_with_pet["pet_id"]
    assert appointment["total_price_cents"] == 5000
    assert appointment["status"] == "scheduled"
    assert appointment["start_time"] == "10:00"
    assert appointment["end_time"] == "11:30"
    assert appointment["service_summary"] == "Nail Trim, Bath & Brush"
    assert appointment["service"]["name"] == "Nail Trim"
    assert "Services: Nail Trim, Bath & Brush" in appointment["notes"]
    assert data["message"] == "Appointment request submitted for Luna on 2026-03-16 at 10:00."

    with app.app_context():
        assert Customer.query.count() == 1
        assert Pet.query.count() == 1


def test_booking_matches_customer_by_pet_name(app, client, catalog, customer_with_pet) -> None:
    response = client.post("/book/happy-paws/appointments", json=_booking(client_name="Mrs. R"))

    assert response.get_json()["appointment"]["customer_id"] == customer_with_pet["customer_id"]


def test_booking_creates_new_customer_when_names_differ(app, client, catalog, customer_with_pet) -> None:
    response = client.post(
        "/book/happy-paws/appointments",
        json=_booking(client_name="Jose Ortiz", pet_name="Toby", email="jose@example.com"),
    )

    assert response.status_code == 201
    appointment = response.get_json()["appointment"]
    assert appointment["customer_id"] != customer_with_pet["customer_id"]

    with app.app_context():
        customer = db.session.get(Customer, appointment["customer_id"])
        assert (customer.first_name, customer.last_name, customer.phone) == ("Jose", "Ortiz", "7875551234")
        pet = db.session.get(Pet, appointment["pet_id"])
        assert (pet.species, pet.breed, pet.age, pet.weight) == ("other", "Unknown", 0, 0.0)


def test_booking_rejects_taken_and_unknown_slots(app, client, catalog) -> None:
    assert client.post("/book/happy-paws/appointments", json=_booking()).status_code == 201

    taken = client.post("/book/happy-paws/appointments", json=_booking(client_name="Someone Else"))
    assert taken.status_code == 409
    assert taken.get_json()["message"] == "The 10:00 slot is no longer available."

    assert client.post("/book/happy-paws/appointments", json=_booking(time="07:00")).status_code == 400
    assert client.post("/book/happy-paws/appointments", json=_booking(time="10:15")).status_code == 400

    with app.app_context():
        assert Appointment.query.count() == 1


def test_canceled_booking_frees_slot(app, client, catalog) -> None:
    first = client.post("/book/happy-paws/appointments", json=_booking()).get_json()["appointment"]
    with app.app_context():
        db.session.get(Appointment, first["id"]).status = "canceled"
        db.session.commit()

    slots = client.get("/book/happy-paws/availability?date=2026-03-16").get_json()["available_slots"]
    assert "10:00" in slots
    assert client.post("/book/happy-paws/appointments", json=_booking()).status_code == 201


def test_booking_validation(client, catalog) -> None:
    assert client.post("/book/happy-paws/appointments", json=_booking(services=[])).status_code == 400
    assert client.post("/book/happy-paws/appointments", json=_booking(services=["Retired"])).status_code == 400
    assert client.post("/book/happy-paws/appointments", json=_booking(phone="123")).status_code == 400
    assert client.post("/book/happy-paws/appointments", json=_booking(pet_name=None)).status_code == 400
    assert client.get("/book/happy-paws/availability?date=tomorrow").status_code == 400
    assert client.post("/book/happy-paws/appointments", json=_booking(time=1000)).status_code == 400
    assert client.post("/book/happy-paws/appointments", json=_booking(email=42)).status_code == 400


def test_booking_cannot_run_past_midnight(app, client, business, catalog) -> None:
    with app.app_context():
        db.session.add(Service(business_id=business["business_id"], name="Spa Day", price_cents=20000, duration_minutes=480))
        db.session.commit()

    late = client.post("/book/happy-paws/appointments", json=_booking(services=["Spa Day"], time="17:30"))
    assert late.status_code == 400

    early = client.post("/book/happy-paws/appointments", json=_booking(services=["Spa Day"], time="08:00"))
    assert early.status_code == 201
    assert early.get_json()["appointment"]["end_time"] == "16:00"
    with app.app_context():
        assert Appointment.query.count() == 1
