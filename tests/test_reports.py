"""Tests for the reports summary and dashboard."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta

from groomhub.extensions import db
from groomhub.models import Appointment, Employee, Pet, Product, TimeEntry
from groomhub.payroll import week_start


def _seed(app, business, customer_with_pet) -> None:
    today = date.today()
    business_id = business["business_id"]
    with app.app_context():
        db.session.add(Pet(business_id=business_id, customer_id=customer_with_pet["customer_id"], name="Milo", species="cat"))
        for day, start, status, cents in (
            (today, time(9, 0), "completed", 6500),
            (today - timedelta(days=2), time(10, 0), "completed", 3500),
            (today - timedelta(days=10), time(10, 0), "completed", 9900),
            (today, time(11, 0), "scheduled", 4000),
            (today + timedelta(days=2), time(9, 0), "confirmed", 4000),
            (today + timedelta(days=3), time(9, 0), "canceled", 4000),
        ):
            db.session.add(Appointment(
                business_id=business_id,
                customer_id=customer_with_pet["customer_id"],
                pet_id=customer_with_pet["pet_id"],
                appointment_date=day,
                start_time=start,
                end_time=time(start.hour + 1, 0),
                status=status,
                total_price_cents=cents,
            ))

        groomer = Employee(business_id=business_id, name="Carla", email="carla@example.com", pin="1234", hourly_rate_cents=2000)
        db.session.add(groomer)
        db.session.add(Employee(business_id=business_id, name="Gone", email="gone@example.com", pin="9999", status="inactive"))
        db.session.flush()
        shift_day = week_start(today)
        db.session.add(TimeEntry(
            business_id=business_id,
            employee_id=groomer.employee_id,
            clock_in=datetime.combine(shift_day, time(8, 0)),
            clock_out=datetime.combine(shift_day, time(13, 30)),
        ))
        db.session.add(Product(business_id=business_id, name="Spray", sku="SPR", quantity=1, reorder_level=2))
        db.session.commit()


def test_reports_summary(app, client, business, auth_headers, customer_with_pet) -> None:
    _seed(app, business, customer_with_pet)

    response = client.get("/reports/summary", headers=auth_headers)

    assert response.status_code == 200
    data = response.get_json()
    assert data["total_revenue_cents"] == 6500 + 3500 + 9900
    assert data["counts"] == {"appointments": 6, "customers": 1, "pets": 2}
    assert data["species_distribution"] == {"dog": 1, "cat": 1, "other": 0}
    assert data["status_counts"]["completed"] == 3
    assert data["status_counts"]["canceled"] == 1
    assert data["status_counts"]["no_show"] == 0

    revenue = data["revenue_last_7_days"]
    assert len(revenue) == 7
    assert revenue[-1] == {"date": date.today().isoformat(), "revenue_cents": 6500}
    assert sum(day["revenue_cents"] for day in revenue) == 10000

    weeks = data["registrations_last_4_weeks"]
    assert len(weeks) == 4
    assert weeks[-1]["customers"] + weeks[-2]["customers"] == 1

    staff = data["employee_hours"]
    assert [row["name"] for row in staff["employees"]] == ["Carla"]
    assert staff["employees"][0]["hours"] == 5
    assert staff["total_earnings_cents"] == 10000


def test_dashboard(app, client, business, auth_headers, customer_with_pet) -> None:
    _seed(app, business, customer_with_pet)

    response = client.get("/dashboard", headers=auth_headers)

    assert response.status_code == 200
    data = response.get_json()
    assert [a["start_time"] for a in data["todays_appointments"]] == ["09:00", "11:00"]
    assert data["upcoming_count"] == 1
    assert data["counts"]["active_employees"] == 1
    assert data["low_stock_count"] == 1
