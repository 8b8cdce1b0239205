"""Tests for customer and pet endpoints."""
from __future__ import annotations

from datetime import date, time

from groomhub.extensions import db
from groomhub.models import Appointment, Customer, Pet


def test_create_customer_normalizes_phone(client, auth_headers) -> None:
    response = client.post(
        "/customers",
        json={"first_name": "James", "last_name": "Carter", "phone": "1 (212) 555-9876", "email": "J@Example.com"},
        headers=auth_headers,
    )

    assert response.status_code == 201
    customer = response.get_json()["customer"]
    assert customer["phone"] == "2125559876"
    assert customer["phone_display"] == "(212) 555-9876"
    assert customer["email"] == "j@example.com"
    assert customer["name"] == "James Carter"


def test_create_customer_accepts_legacy_name(client, auth_headers) -> None:
    response = client.post("/customers", json={"name": "Ana Lopez Diaz", "phone": "7875550001"}, headers=auth_headers)

    assert response.status_code == 201
    customer = response.get_json()["customer"]
    assert customer["first_name"] == "Ana"
    assert customer["last_name"] == "Lopez Diaz"


def test_create_customer_validation(client, auth_headers) -> None:
    assert client.post("/customers", json={"phone": "7875550001"}, headers=auth_headers).status_code == 400
    response = client.post("/customers", json={"first_name": "Ana", "phone": "555"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_payload"


def test_list_customers_search(client, auth_headers, customer_with_pet) -> None:
    client.post("/customers", json={"first_name": "James", "phone": "2125559876"}, headers=auth_headers)

    by_name = client.get("/customers", query_string={"search": "riv"}, headers=auth_headers).get_json()["customers"]
    by_phone = client.get("/customers", query_string={"search": "(212) 555"}, headers=auth_headers).get_json()["customers"]
    everyone = client.get("/customers", headers=auth_headers).get_json()["customers"]

    assert [c["first_name"] for c in by_name] == ["Maria"]
    assert [c["first_name"] for c in by_phone] == ["James"]
    assert len(everyone) == 2


def test_lookup_customer_by_formatted_phone(client, auth_headers, customer_with_pet) -> None:
    response = client.get("/customers/lookup", query_string={"phone": "(787) 555-1234"}, headers=auth_headers)

    assert response.status_code == 200
    data = response.get_json()
    assert data["customer"]["id"] == customer_with_pet["customer_id"]
    assert [pet["name"] for pet in data["pets"]] == ["Luna"]

    assert client.get("/customers/lookup?phone=7875550000", headers=auth_headers).status_code == 404
    assert client.get("/customers/lookup", headers=auth_headers).status_code == 400


def test_update_customer(client, auth_headers, customer_with_pet) -> None:
    customer_id = customer_with_pet["customer_id"]

    response = client.put(f"/customers/{customer_id}", json={"notes": "Prefers mornings"}, headers=auth_headers)

    assert response.status_code == 200
    customer = response.get_json()["customer"]
    assert customer["notes"] == "Prefers mornings"
    assert customer["first_name"] == "Maria"


def test_delete_customer_cascades_to_pets_and_appointments(app, client, business, auth_headers, customer_with_pet) -> None:
    with app.app_context():
        db.session.add(Appointment(
            business_id=business["business_id"],
            customer_id=customer_with_pet["customer_id"],
            pet_id=customer_with_pet["pet_id"],
            appointment_date=date(2026, 3, 16),
            start_time=time(9, 0),
            end_time=time(10, 0),
        ))
        db.session.commit()

    response = client.delete(f"/customers/{customer_with_pet['customer_id']}", headers=auth_headers)

    assert response.status_code == 200
    with app.app_context():
        assert db.session.get(Customer, customer_with_pet["customer_id"]) is None
        assert db.session.get(Pet, customer_with_pet["pet_id"]) is None
        assert Appointment.query.count() == 0


def test_create_pet_for_customer(client, auth_headers, customer_with_pet) -> None:
    response = client.post(
        "/pets",
        json={"client_id": customer_with_pet["customer_id"], "name": "Milo", "species": "cat", "weight": "7.5", "age": 3},
        headers=auth_headers,
    )

    assert response.status_code == 201
    pet = response.get_json()["pet"]
    assert pet["customer_id"] == customer_with_pet["customer_id"]
    assert pet["customer_name"] == "Maria Rivera"
    assert pet["species"] == "cat"
    assert pet["weight"] == 7.5


def test_create_pet_validation(client, auth_headers, customer_with_pet, other_business) -> None:
    payload = {"customer_id": customer_with_pet["customer_id"], "name": "Rex", "species": "lizard"}
    assert client.post("/pets", json=payload, headers=auth_headers).status_code == 400

    payload = {"customer_id": customer_with_pet["customer_id"], "name": "Rex", "age": -1}
    assert client.post("/pets", json=payload, headers=auth_headers).status_code == 400

    # Another business's customer is invisible.
    payload = {"customer_id": customer_with_pet["customer_id"], "name": "Rex"}
    assert client.post("/pets", json=payload, headers=other_business["headers"]).status_code == 404


def test_list_pets_filters(client, auth_headers, customer_with_pet) -> None:
    client.post(
        "/pets",
        json={"customer_id": customer_with_pet["customer_id"], "name": "Milo", "species": "cat"},
        headers=auth_headers,
    )

    cats = client.get("/pets?species=cat", headers=auth_headers).get_json()["pets"]
    mine = client.get(f"/pets?customer_id={customer_with_pet['customer_id']}", headers=auth_headers).get_json()["pets"]

    assert [pet["name"] for pet in cats] == ["Milo"]
    assert {pet["name"] for pet in mine} == {"Luna", "Milo"}
    assert client.get("/pets?species=lizard", headers=auth_headers).status_code == 400


def test_update_and_delete_pet(client, auth_headers, customer_with_pet) -> None:
    pet_id = customer_with_pet["pet_id"]

    response = client.put(
        f"/pets/{pet_id}",
        json={"breed": "Poodle", "last_grooming_date": "2026-02-01"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.get_json()["pet"]["breed"] == "Poodle"
    assert response.get_json()["pet"]["last_grooming_date"] == "2026-02-01"

    assert client.delete(f"/pets/{pet_id}", headers=auth_headers).status_code == 200
    assert client.get(f"/pets/{pet_id}", headers=auth_headers).status_code == 404


def test_moving_pet_moves_its_appointments(app, client, business, auth_headers, customer_with_pet) -> None:
    with app.app_context():
        db.session.add(Appointment(
            business_id=business["business_id"],
            customer_id=customer_with_pet["customer_id"],
            pet_id=customer_with_pet["pet_id"],
            appointment_date=date(2026, 3, 16),
            start_time=time(9, 0),
            end_time=time(10, 0),
        ))
        db.session.commit()
    new_owner = client.post(
        "/customers", json={"first_name": "James", "phone": "2125559876"}, headers=auth_headers
    ).get_json()["customer"]["id"]

    response = client.put(f"/pets/{customer_with_pet['pet_id']}", json={"customer_id": new_owner}, headers=auth_headers)

    assert response.status_code == 200
    with app.app_context():
        appointment = Appointment.query.one()
        assert appointment.customer_id == new_owner
        assert db.session.get(Pet, customer_with_pet["pet_id"]).customer_id == new_owner
