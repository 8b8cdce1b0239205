"""Sample data for the read-only demo business."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta

from flask import current_app
from werkzeug.security import generate_password_hash

from .extensions import db
from .models import (Appointment, AuthAccount, Business, Customer, Employee, Pet, Product, Profile, Service,
                     Setting, TimeEntry)
from .payroll import week_start

DEMO_SERVICES = [
    {"name": "Bath & Brush", "price_cents": 3500, "duration_minutes": 60},
    {"name": "Full Groom", "price_cents": 6500, "duration_minutes": 120},
    {"name": "Nail Trim", "price_cents": 1500, "duration_minutes": 30},
    {"name": "Teeth Cleaning", "price_cents": 2000, "duration_minutes": 30},
]

DEMO_CUSTOMERS = [
    {"first_name": "Maria", "last_name": "Rivera", "phone": "7875551234", "email": "maria@example.com",
     "pets": [{"name": "Luna", "species": "dog", "breed": "Poodle", "age": 4, "weight": 12.5}]},
    {"first_name": "James", "last_name": "Carter", "phone": "2125559876", "email": "james@example.com",
     "pets": [{"name": "Milo", "species": "cat", "breed": "Maine Coon", "age": 6, "weight": 7.2},
              {"name": "Rex", "species": "dog", "breed": "Labrador", "age": 2, "weight": 30.0}]},
    {"first_name": "Ana", "last_name": "Lopez", "phone": "7875550001", "email": None,
     "pets": [{"name": "Kiwi", "species": "other", "breed": "Parakeet", "age": 1, "weight": 0.1}]},
]

DEMO_PRODUCTS = [
    {"name": "Oatmeal Shampoo", "sku": "SHP-001", "barcode": "012345678905", "price_cents": 1599,
     "cost_cents": 700, "quantity": 24, "reorder_level": 5, "category": "Shampoo"},
    {"name": "Detangling Spray", "sku": "SPR-002", "barcode": "012345678912", "price_cents": 1299,
     "cost_cents": 550, "quantity": 3, "reorder_level": 5, "category": "Grooming"},
    {"name": "Dental Chews", "sku": "TRT-003", "barcode": None, "price_cents": 899,
     "cost_cents": 300, "quantity": 40, "reorder_level": 10, "category": "Treats"},
]


def seed_demo_business(
    owner_password: str = "demo-password",
    admin_email: str | None = None,
    admin_password: str | None = None,
    today: date | None = None,
) -> Business:
    """Create the demo business and its sample records.

    Reuses the business if it already exists. With ``admin_email`` a
    platform super admin profile is created as well.
    """
    today = today or date.today()
    business_id = current_app.config["DEMO_BUSINESS_ID"]

    business = db.session.get(Business, business_id)
    if business is not None:
        return business

    business = Business(
        business_id=business_id,
        name="Stratum Hub Demo",
        slug="demo",
        email="demo@stratumhub.example",
        phone="7875550100",
        city="San Juan",
        state="PR",
        subscription_tier="pro",
        subscription_status="active",
        onboarding_completed=True,
    )
    db.session.add(business)
    db.session.flush()

    owner = Profile(email="owner@stratumhub.example", full_name="Demo Owner", business_id=business_id)
    db.session.add(owner)
    db.session.flush()
    db.session.add(AuthAccount(profile_id=owner.profile_id, password_hash=generate_password_hash(owner_password)))

    if admin_email and admin_password:
        admin = Profile(email=admin_email.lower(), full_name="Platform Admin", is_super_admin=True)
        db.session.add(admin)
        db.session.flush()
        db.session.add(AuthAccount(profile_id=admin.profile_id, password_hash=generate_password_hash(admin_password)))

    services = [Service(business_id=business_id, **fields) for fields in DEMO_SERVICES]
    db.session.add_all(services)

    pets = []
    for record in DEMO_CUSTOMERS:
        fields = {key: value for key, value in record.items() if key != "pets"}
        customer = Customer(business_id=business_id, **fields)
        db.session.add(customer)
        db.session.flush()
        for pet_fields in record["pets"]:
            pet = Pet(business_id=business_id, customer_id=customer.customer_id, **pet_fields)
            db.session.add(pet)
            pets.append(pet)
    db.session.flush()

    schedule = [
        (pets[0], services[1], today, time(9, 0), "confirmed"),
        (pets[1], services[0], today, time(11, 0), "scheduled"),
        (pets[2], services[2], today - timedelta(days=2), time(10, 30), "completed"),
        (pets[3], services[3], today + timedelta(days=3), time(14, 0), "scheduled"),
    ]
    for pet, service, day, start, status in schedule:
        end = (datetime.combine(day, start) + timedelta(minutes=service.duration_minutes)).time()
        db.session.add(Appointment(
            business_id=business_id,
            customer_id=pet.customer_id,
            pet_id=pet.pet_id,
            service_id=service.service_id,
            appointment_date=day,
            start_time=start,
            end_time=end,
            status=status,
            service_summary=service.name,
            total_price_cents=service.price_cents,
        ))

    groomer = Employee(business_id=business_id, name="Carla Mendez", email="carla@stratumhub.example",
                       phone="7875550111", pin="1234", hourly_rate_cents=1800)
    bather = Employee(business_id=business_id, name="Luis Ortiz", email="luis@stratumhub.example",
                      phone="7875550112", pin="5678", role="bather")
    db.session.add_all([groomer, bather])
    db.session.flush()

    monday = week_start(today) + timedelta(days=1)
    for offset in range(3):
        day = monday + timedelta(days=offset)
        if day > today:
            break
        db.session.add(TimeEntry(
            business_id=business_id,
            employee_id=groomer.employee_id,
            clock_in=datetime.combine(day, time(8, 0)),
            clock_out=datetime.combine(day, time(16, 30)),
        ))

    db.session.add_all(Product(business_id=business_id, **fields) for fields in DEMO_PRODUCTS)
    db.session.add(Setting(business_id=business_id, key="business_name", value=business.name))

    db.session.commit()
    current_app.logger.info("Seeded demo business %s", business_id)
    return business
