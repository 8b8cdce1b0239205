"""pytest configuration and shared fixtures."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest
from werkzeug.security import generate_password_hash

# Ensure the project root is available on sys.path so tests can import the app package.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from groomhub import create_app  # noqa: E402
from groomhub.auth import build_token  # noqa: E402
from groomhub.config import TestingConfig  # noqa: E402
from groomhub.extensions import db  # noqa: E402
from groomhub.models import AuthAccount, Business, Customer, Pet, Profile, Service  # noqa: E402

OWNER_PASSWORD = "groom-pass-123"


@pytest.fixture
def app():
    flask_app = create_app(TestingConfig)
    with flask_app.app_context():
        db.create_all()
    yield flask_app
    with flask_app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def create_business(name: str, email: str, slug: str) -> tuple[int, int]:
    """Create a business with an owner login. Returns (business_id, profile_id)."""
    business = Business(name=name, slug=slug, email=email, subscription_status="active")
    db.session.add(business)
    db.session.flush()
    profile = Profile(email=email, full_name=f"{name} Owner", business_id=business.business_id)
    db.session.add(profile)
    db.session.flush()
    db.session.add(AuthAccount(profile_id=profile.profile_id, password_hash=generate_password_hash(OWNER_PASSWORD)))
    db.session.commit()
    return business.business_id, profile.profile_id


def bearer(app, **payload) -> dict[str, str]:
    with app.app_context():
        return {"Authorization": f"Bearer {build_token(payload)}"}


@pytest.fixture
def business(app) -> dict[str, int]:
    with app.app_context():
        business_id, profile_id = create_business("Happy Paws", "owner@happypaws.example", "happy-paws")
    return {"business_id": business_id, "profile_id": profile_id}


@pytest.fixture
def auth_headers(app, business) -> dict[str, str]:
    return bearer(app, profile_id=business["profile_id"])


@pytest.fixture
def other_business(app, business) -> dict[str, object]:
    with app.app_context():
        business_id, profile_id = create_business("Fluffy Cuts", "owner@fluffy.example", "fluffy-cuts")
    return {"business_id": business_id, "headers": bearer(app, profile_id=profile_id)}


@pytest.fixture
def admin_headers(app) -> dict[str, str]:
    with app.app_context():
        admin = Profile(email="admin@platform.example", full_name="Admin", is_super_admin=True)
        db.session.add(admin)
        db.session.commit()
        admin_id = admin.profile_id
    return bearer(app, profile_id=admin_id)


@pytest.fixture
def customer_with_pet(app, business) -> dict[str, int]:
    with app.app_context():
        customer = Customer(
            business_id=business["business_id"],
            first_name="Maria",
            last_name="Rivera",
            phone="7875551234",
            email="maria@example.com",
        )
        db.session.add(customer)
        db.session.flush()
        pet = Pet(business_id=business["business_id"], customer_id=customer.customer_id, name="Luna", species="dog")
        db.session.add(pet)
        db.session.commit()
        return {"customer_id": customer.customer_id, "pet_id": pet.pet_id}


@pytest.fixture
def service(app, business) -> dict[str, int]:
    with app.app_context():
        full_groom = Service(
            business_id=business["business_id"],
            name="Full Groom",
            price_cents=6500,
            duration_minutes=90,
        )
        db.session.add(full_groom)
        db.session.commit()
        return {"service_id": full_groom.service_id}
