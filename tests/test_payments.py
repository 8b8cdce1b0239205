"""Tests for checkout totals and payment recording."""
from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from groomhub.extensions import db
from groomhub.models import Appointment, Payment


class FakeStripeError(Exception):
    pass


@pytest.fixture
def stripe_mock():
    """Mock Stripe API calls."""
    with patch("groomhub.routes_appointments.stripe") as mock_stripe:
        mock_intent = MagicMock()
        mock_intent.id = "pi_test123"
        mock_intent.client_secret = "pi_test123_secret_abc"
        mock_intent.status = "succeeded"

        mock_stripe.PaymentIntent.create.return_value = mock_intent
        mock_stripe.PaymentIntent.retrieve.return_value = mock_intent
        mock_stripe.StripeError = FakeStripeError

        yield mock_stripe


@pytest.fixture
def appointment_id(client, auth_headers, customer_with_pet, service) -> int:
    response = client.post(
        "/appointments",
        json={
            "customer_id": customer_with_pet["customer_id"],
            "pet_id": customer_with_pet["pet_id"],
            "service_id": service["service_id"],
            "appointment_date": "2026-03-16",
            "start_time": "10:00",
        },
        headers=auth_headers,
    )
    return response.get_json()["appointment"]["id"]


def test_checkout_with_items_and_percent_tip(app, client, auth_headers, appointment_id) -> None:
    response = client.post(
        f"/appointments/{appointment_id}/checkout",
        json={
            "items": [
                {"service_name": "Full Groom", "price": 65, "quantity": 1},
                {"service_name": "Nail Trim", "price": "15.00", "quantity": 2},
            ],
            "tip_type": "percent",
            "tip_value": 15,
        },
        headers=auth_headers,
    )

    assert response.status_code == 200
    data = response.get_json()
    assert data["subtotal_cents"] == 9500
    assert data["tip_cents"] == 1425
    assert data["total_cents"] == 10925
    assert data["items"][1]["line_total_cents"] == 3000

    with app.app_context():
        appointment = db.session.get(Appointment, appointment_id)
        assert appointment.total_price_cents == 10925
        assert appointment.service_summary == "Full Groom, Nail Trim"


def test_checkout_defaults_to_appointment_service(client, auth_headers, appointment_id) -> None:
    response = client.post(
        f"/appointments/{appointment_id}/checkout",
        json={"tip_type": "amount", "tip_value": "5.50"},
        headers=auth_headers,
    )

    data = response.get_json()
    assert data["subtotal_cents"] == 6500
    assert data["tip_cents"] == 550
    assert data["total_cents"] == 7050


def test_checkout_validation(client, auth_headers, appointment_id) -> None:
    url = f"/appointments/{appointment_id}/checkout"

    bad_quantity = {"items": [{"service_name": "Bath", "price": 10, "quantity": 0}]}
    assert client.post(url, json=bad_quantity, headers=auth_headers).status_code == 400
    bad_tip = {"tip_type": "coupon", "tip_value": 5}
    assert client.post(url, json=bad_tip, headers=auth_headers).status_code == 400
    assert client.post("/appointments/999/checkout", json={}, headers=auth_headers).status_code == 404


def test_cash_payment_is_completed(client, auth_headers, appointment_id) -> None:
    response = client.post(
        f"/appointments/{appointment_id}/payments",
        json={"method": "cash", "tip": 5},
        headers=auth_headers,
    )

    assert response.status_code == 201
    data = response.get_json()
    assert data["payment"]["status"] == "completed"
    assert data["payment"]["amount_cents"] == 6500
    assert data["payment"]["tip_cents"] == 500
    assert data["message"] == "Cash payment recorded!"


def test_athmovil_payment_is_pending(client, auth_headers, appointment_id) -> None:
    response = client.post(
        f"/appointments/{appointment_id}/payments?lang=es",
        json={"method": "athmovil", "amount": 40},
        headers=auth_headers,
    )

    assert response.status_code == 201
    data = response.get_json()
    assert data["payment"]["status"] == "pending"
    assert data["payment"]["amount_cents"] == 4000
    assert data["message"] == "¡Pago ATH Móvil iniciado!"


def test_credit_payment_creates_payment_intent(client, auth_headers, appointment_id, stripe_mock) -> None:
    response = client.post(
        f"/appointments/{appointment_id}/payments",
        json={"method": "credit", "tip": 10, "card_number": "4242 4242 4242 1881", "card_expiry": "12/99"},
        headers=auth_headers,
    )

    assert response.status_code == 201
    data = response.get_json()
    assert data["client_secret"] == "pi_test123_secret_abc"
    assert data["payment"]["status"] == "pending"
    assert data["payment"]["card_last4"] == "1881"
    assert data["payment"]["gateway_payment_id"] == "pi_test123"

    kwargs = stripe_mock.PaymentIntent.create.call_args.kwargs
    assert kwargs["amount"] == 7500
    assert kwargs["currency"] == "usd"


def test_credit_payment_rejects_expired_card(client, auth_headers, appointment_id, stripe_mock) -> None:
    for expiry in ("01/20", "13/30", "1"):
        response = client.post(
            f"/appointments/{appointment_id}/payments",
            json={"method": "credit", "card_expiry": expiry},
            headers=auth_headers,
        )
        assert response.status_code == 400

    stripe_mock.PaymentIntent.create.assert_not_called()


def test_credit_payment_stripe_failure(client, auth_headers, appointment_id, stripe_mock) -> None:
    stripe_mock.PaymentIntent.create.side_effect = FakeStripeError("card declined")

    response = client.post(
        f"/appointments/{appointment_id}/payments",
        json={"method": "credit"},
        headers=auth_headers,
    )

    assert response.status_code == 500
    assert response.get_json()["error"] == "payment_error"


def test_payment_method_validation(client, auth_headers, appointment_id) -> None:
    response = client.post(f"/appointments/{appointment_id}/payments", json={"method": "check"}, headers=auth_headers)

    assert response.status_code == 400
    typed = client.post(f"/appointments/{appointment_id}/payments", json={"method": ["cash"]}, headers=auth_headers)
    assert typed.status_code == 400


def test_confirm_card_payment(app, client, auth_headers, appointment_id, stripe_mock) -> None:
    created = client.post(
        f"/appointments/{appointment_id}/payments", json={"method": "credit"}, headers=auth_headers
    ).get_json()["payment"]

    response = client.post(f"/payments/{created['id']}/confirm", headers=auth_headers)

    assert response.status_code == 200
    assert response.get_json()["payment"]["status"] == "completed"
    stripe_mock.PaymentIntent.retrieve.assert_called_once_with("pi_test123")

    listing = client.get(f"/appointments/{appointment_id}/payments", headers=auth_headers).get_json()["payments"]
    assert [payment["status"] for payment in listing] == ["completed"]

    with app.app_context():
        assert Payment.query.count() == 1


def test_confirm_cash_payment_is_noop(client, auth_headers, appointment_id) -> None:
    created = client.post(
        f"/appointments/{appointment_id}/payments", json={"method": "cash"}, headers=auth_headers
    ).get_json()["payment"]

    response = client.post(f"/payments/{created['id']}/confirm", headers=auth_headers)

    assert response.status_code == 200
    assert response.get_json()["payment"]["status"] == "completed"
