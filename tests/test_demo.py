"""Tests for the read-only demo business."""
from __future__ import annotations

from datetime import date

import pytest

from groomhub.demo import seed_demo_business
from groomhub.extensions import db
from groomhub.models import Business, Customer


@pytest.fixture
def demo(app):
    with app.app_context():
        seed_demo_business(today=date(2026, 3, 18))


def test_seed_is_idempotent(app, demo) -> None:
    with app.app_context():
        seed_demo_business()
        assert Business.query.count() == 1
        assert Customer.query.count() == 3
        assert db.session.get(Business, app.config["DEMO_BUSINESS_ID"]).slug == "demo"


def test_demo_reads_without_token(client, demo) -> None:
    customers = client.get("/demo/customers")
    assert customers.status_code == 200
    assert len(customers.get_json()["customers"]) == 3

    pets = client.get("/demo/pets?species=dog").get_json()["pets"]
    assert sorted(pet["name"] for pet in pets) == ["Luna", "Rex"]

    low_stock = client.get("/demo/products/low-stock").get_json()["products"]
    assert [product["sku"] for product in low_stock] == ["SPR-002"]

    settings = client.get("/demo/settings").get_json()["settings"]
    assert settings["business_name"] == "Stratum Hub Demo"


def test_demo_rejects_writes(client, demo) -> None:
    response = client.post("/demo/customers", json={"first_name": "Eve", "phone": "7875550000"})

    assert response.status_code == 403
    assert response.get_json()["error"] == "demo_read_only"
    assert client.put("/demo/settings", json={"language": "es"}).status_code == 403
    assert client.delete("/demo/customers/1").status_code == 403


def test_demo_payroll_uses_seeded_shifts(client, demo) -> None:
    response = client.get("/demo/payroll?date=2026-03-18")

    assert response.status_code == 200
    rows = {row["employee"]["name"]: row for row in response.get_json()["employees"]}
    assert rows["Carla Mendez"]["total_hours"] == 24
    assert rows["Luis Ortiz"]["total_hours"] == 0


def test_demo_does_not_leak_into_tenant_routes(client, demo) -> None:
    assert client.get("/customers").status_code == 401
