"""Business reports and the dashboard overview."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta

from flask import Blueprint, current_app, g, jsonify
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from .auth import business_required
from .models import Appointment, Customer, Employee, Pet, Product, TimeEntry
from .payroll import summarize_entries, week_bounds
from .routes_appointments import APPOINTMENT_STATUSES

bp_reports = Blueprint("reports", __name__)

UPCOMING_STATUSES = ("scheduled", "confirmed")


def _revenue_by_day(completed: list[Appointment], today: date, days: int = 7) -> list[dict[str, object]]:
    totals = {today - timedelta(days=offset): 0 for offset in range(days - 1, -1, -1)}
    for appointment in completed:
        if appointment.appointment_date in totals:
            totals[appointment.appointment_date] += appointment.total_price_cents or 0
    return [{"date": day.isoformat(), "revenue_cents": cents} for day, cents in totals.items()]


def _registrations_by_week(customers, pets, today: date, weeks: int = 4) -> list[dict[str, object]]:
    current_start, _ = week_bounds(today)
    rows = []
    for offset in range(weeks - 1, -1, -1):
        start = current_start - timedelta(weeks=offset)
        end = start + timedelta(days=6)
        rows.append({
            "week_start": start.isoformat(),
            "customers": sum(1 for customer in customers if start <= customer.created_at.date() <= end),
            "pets": sum(1 for pet in pets if start <= pet.created_at.date() <= end),
        })
    return rows


@bp_reports.get("/reports/summary")
@business_required
def reports_summary() -> tuple[dict[str, object], int]:
    """Revenue, client, pet, appointment and staff figures for the business.
    ---
    tags:
      - Reports
    responses:
      200:
        description: Report figures
      500:
        description: Database error
    """
    today = date.today()
    week_start, week_end = week_bounds(today)

    try:
        appointments = Appointment.query.filter_by(business_id=g.business_id).all()
        customers = Customer.query.filter_by(business_id=g.business_id).all()
        pets = Pet.query.filter_by(business_id=g.business_id).all()
        employees = Employee.query.filter_by(business_id=g.business_id, status="active").order_by(Employee.name).all()
        entries = TimeEntry.query.filter(
            TimeEntry.business_id == g.business_id,
            TimeEntry.clock_in >= datetime.combine(week_start, time.min),
            TimeEntry.clock_in < datetime.combine(week_end + timedelta(days=1), time.min),
        ).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to build report summary", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    completed = [appointment for appointment in appointments if appointment.status == "completed"]

    species = {"dog": 0, "cat": 0, "other": 0}
    for pet in pets:
        species[pet.species] = species.get(pet.species, 0) + 1

    status_counts = {status: 0 for status in APPOINTMENT_STATUSES}
    for appointment in appointments:
        status_counts[appointment.status] += 1

    staff_rows = []
    for employee in employees:
        summary = summarize_entries(
            [entry for entry in entries if entry.employee_id == employee.employee_id],
            employee.hourly_rate_cents,
            week_start,
            week_end,
        )
        staff_rows.append({
            "employee_id": employee.employee_id,
            "name": employee.name,
            "hours": summary["total_hours"],
            "earnings_cents": summary["gross_pay_cents"],
        })

    return (
        jsonify({
            "total_revenue_cents": sum(appointment.total_price_cents or 0 for appointment in completed),
            "counts": {
                "appointments": len(appointments),
                "customers": len(customers),
                "pets": len(pets),
            },
            "revenue_last_7_days": _revenue_by_day(completed, today),
            "species_distribution": species,
            "registrations_last_4_weeks": _registrations_by_week(customers, pets, today),
            "status_counts": status_counts,
            "employee_hours": {
                "week_start": week_start.isoformat(),
                "employees": staff_rows,
                "total_hours": sum(row["hours"] for row in staff_rows),
                "total_earnings_cents": sum(row["earnings_cents"] for row in staff_rows),
            },
        }),
        200,
    )


@bp_reports.get("/dashboard")
@business_required
def dashboard() -> tuple[dict[str, object], int]:
    """Today's schedule and headline counts."""
    today = date.today()

    try:
        todays = (
            Appointment.query.options(joinedload(Appointment.customer), joinedload(Appointment.pet))
            .filter(Appointment.business_id == g.business_id, Appointment.appointment_date == today)
            .order_by(Appointment.start_time.asc())
            .all()
        )
        upcoming = Appointment.query.filter(
            Appointment.business_id == g.business_id,
            Appointment.appointment_date > today,
            Appointment.status.in_(UPCOMING_STATUSES),
        ).count()
        counts = {
            "customers": Customer.query.filter_by(business_id=g.business_id).count(),
            "pets": Pet.query.filter_by(business_id=g.business_id).count(),
            "appointments": Appointment.query.filter_by(business_id=g.business_id).count(),
            "active_employees": Employee.query.filter_by(business_id=g.business_id, status="active").count(),
        }
        low_stock = (
            Product.query.with_entities(func.count(Product.product_id))
            .filter(Product.business_id == g.business_id, Product.quantity <= Product.reorder_level)
            .scalar()
        )
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to load dashboard", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return (
        jsonify({
            "date": today.isoformat(),
            "todays_appointments": [appointment.to_dict() for appointment in todays],
            "upcoming_count": upcoming,
            "counts": counts,
            "low_stock_count": low_stock or 0,
        }),
        200,
    )
