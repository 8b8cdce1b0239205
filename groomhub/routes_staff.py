"""Employees, PIN time clock, time entries and payroll."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from .auth import business_required, not_found, tenant_get
from .extensions import db
from .models import Appointment, Employee, TimeEntry
from .payroll import (PAY_PERIOD_DAYS, daily_breakdown, entry_hours, pay_period_bounds,
                      summarize_entries, week_bounds)
from .translations import resolve_language, translate
from .validators import (clean_str, parse_bool, parse_date, parse_datetime, parse_int, parse_money,
                         validate_email, validate_phone, validate_pin)

bp_staff = Blueprint("staff", __name__)

EMPLOYEE_STATUSES = ("active", "inactive")


def _local_now() -> datetime:
    """Business-local wall clock time, to the second."""
    return datetime.now().replace(microsecond=0)


def _entries_between(employee_ids, start: date, end: date) -> list[TimeEntry]:
    query = TimeEntry.query.filter(
        TimeEntry.business_id == g.business_id,
        TimeEntry.clock_in >= datetime.combine(start, time.min),
        TimeEntry.clock_in < datetime.combine(end + timedelta(days=1), time.min),
    )
    if employee_ids is not None:
        query = query.filter(TimeEntry.employee_id.in_(list(employee_ids)))
    return query.order_by(TimeEntry.clock_in.asc()).all()


def _open_entry(employee: Employee, exclude: TimeEntry | None = None) -> TimeEntry | None:
    query = TimeEntry.query.filter(TimeEntry.employee_id == employee.employee_id, TimeEntry.clock_out.is_(None))
    if exclude is not None:
        query = query.filter(TimeEntry.entry_id != exclude.entry_id)
    return query.order_by(TimeEntry.clock_in.desc()).first()


def _already_clocked_in(employee: Employee):
    message = translate("timeTracking.alreadyClockedIn", resolve_language(g.business_id), name=employee.name)
    return jsonify({"error": "conflict", "message": message}), 409


# ---------------------------------------------------------------------------
# Employees
# ---------------------------------------------------------------------------


@bp_staff.get("/employees")
@business_required
def list_employees() -> tuple[dict[str, object], int]:
    """List employees.
    ---
    tags:
      - Employees
    parameters:
      - name: status
        in: query
        type: string
        enum: [active, inactive]
        required: false
      - name: include_pin
        in: query
        type: boolean
        default: false
    responses:
      200:
        description: Employees ordered by name
      400:
        description: Invalid status filter
    """
    status = (request.args.get("status") or "").strip().lower()
    if status and status not in EMPLOYEE_STATUSES:
        return jsonify({"error": "invalid_payload", "message": "status must be active or inactive"}), 400
    include_pin = parse_bool(request.args.get("include_pin"))

    try:
        query = Employee.query.filter(Employee.business_id == g.business_id)
        if status:
            query = query.filter(Employee.status == status)
        employees = query.order_by(Employee.name.asc()).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to list employees", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"employees": [employee.to_dict(include_pin=include_pin) for employee in employees]}), 200


@bp_staff.get("/employees/<int:employee_id>")
@business_required
def get_employee(employee_id: int) -> tuple[dict[str, object], int]:
    employee = tenant_get(Employee, employee_id)
    if employee is None:
        return not_found("Employee")

    payload = employee.to_dict(include_pin=parse_bool(request.args.get("include_pin")))
    payload["is_clocked_in"] = _open_entry(employee) is not None
    return jsonify({"employee": payload}), 200


def _employee_fields(data: dict[str, object], partial: bool) -> dict[str, object]:
    fields: dict[str, object] = {}

    if not partial or "name" in data:
        name = clean_str(data.get("name"))
        if not name:
            raise ValueError("name is required")
        fields["name"] = name
    if not partial or "email" in data:
        fields["email"] = validate_email(data.get("email"), required=True)
    if not partial or "phone" in data:
        fields["phone"] = validate_phone(data.get("phone")) or ""
    if not partial or "pin" in data:
        fields["pin"] = validate_pin(data.get("pin"))
    if not partial or "hourly_rate" in data:
        fields["hourly_rate_cents"] = parse_money(data.get("hourly_rate"), "hourly_rate", default=1500)
    if not partial or "role" in data:
        fields["role"] = clean_str(data.get("role")) or "groomer"
    if not partial or "status" in data:
        status = (clean_str(data.get("status")) or "active").lower()
        if status not in EMPLOYEE_STATUSES:
            raise ValueError("status must be active or inactive")
        fields["status"] = status

    return fields


def _pin_taken(pin: str, exclude_id: int | None = None) -> bool:
    query = Employee.query.filter(Employee.business_id == g.business_id, Employee.pin == pin)
    if exclude_id is not None:
        query = query.filter(Employee.employee_id != exclude_id)
    return query.first() is not None


@bp_staff.post("/employees")
@business_required
def create_employee() -> tuple[dict[str, object], int]:
    """Add an employee with a time clock PIN.
    ---
    tags:
      - Employees
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required:
            - name
            - email
            - pin
          properties:
            name:
              type: string
            email:
              type: string
            phone:
              type: string
            pin:
              type: string
              description: 4 to 6 digits, unique within the business
            hourly_rate:
              type: number
              default: 15.00
            role:
              type: string
              default: groomer
    responses:
      201:
        description: Employee created
      400:
        description: Invalid payload
      409:
        description: PIN already in use
    """
    payload = request.get_json(silent=True) or {}

    try:
        fields = _employee_fields(payload, partial=False)
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    if _pin_taken(fields["pin"]):
        return jsonify({"error": "conflict", "message": "PIN is already assigned to another employee"}), 409

    employee = Employee(business_id=g.business_id, **fields)

    try:
        db.session.add(employee)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create employee", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"employee": employee.to_dict(include_pin=True)}), 201


@bp_staff.put("/employees/<int:employee_id>")
@business_required
def update_employee(employee_id: int) -> tuple[dict[str, object], int]:
    employee = tenant_get(Employee, employee_id)
    if employee is None:
        return not_found("Employee")

    try:
        fields = _employee_fields(request.get_json(silent=True) or {}, partial=True)
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    if "pin" in fields and _pin_taken(fields["pin"], exclude_id=employee.employee_id):
        return jsonify({"error": "conflict", "message": "PIN is already assigned to another employee"}), 409

    for key, value in fields.items():
        setattr(employee, key, value)

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update employee", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"employee": employee.to_dict()}), 200


@bp_staff.delete("/employees/<int:employee_id>")
@business_required
def delete_employee(employee_id: int) -> tuple[dict[str, object], int]:
    employee = tenant_get(Employee, employee_id)
    if employee is None:
        return not_found("Employee")

    try:
        Appointment.query.filter(Appointment.employee_id == employee.employee_id).update(
            {"employee_id": None}, synchronize_session=False
        )
        db.session.delete(employee)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete employee", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"message": "Employee deleted"}), 200


@bp_staff.post("/employees/verify-pin")
@business_required
def verify_employee_pin() -> tuple[dict[str, object], int]:
    """Identify an active employee at the time clock by PIN.
    ---
    tags:
      - Time Tracking
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required:
            - pin
          properties:
            pin:
              type: string
    responses:
      200:
        description: Employee and whether they are clocked in
      404:
        description: No active employee with that PIN
    """
    payload = request.get_json(silent=True) or {}
    pin = str(payload.get("pin") or "").strip()

    employee = None
    if pin:
        employee = Employee.query.filter_by(business_id=g.business_id, pin=pin, status="active").first()

    if employee is None:
        current_app.logger.warning("Invalid PIN attempt for business %s", g.business_id)
        return (
            jsonify({"error": "not_found", "message": translate("timeTracking.invalidPin", resolve_language(g.business_id))}),
            404,
        )

    open_entry = _open_entry(employee)
    return (
        jsonify({
            "employee": employee.to_dict(),
            "is_clocked_in": open_entry is not None,
            "open_entry": open_entry.to_dict() if open_entry else None,
        }),
        200,
    )


# ---------------------------------------------------------------------------
# Time clock
# ---------------------------------------------------------------------------


@bp_staff.post("/employees/<int:employee_id>/clock-in")
@business_required
def clock_in(employee_id: int) -> tuple[dict[str, object], int]:
    """Open a time entry for an employee.
    ---
    tags:
      - Time Tracking
    responses:
      201:
        description: Time entry opened
      400:
        description: Employee is inactive
      404:
        description: Employee not found
      409:
        description: Employee is already clocked in
    """
    employee = tenant_get(Employee, employee_id)
    if employee is None:
        return not_found("Employee")

    language = resolve_language(g.business_id)
    if employee.status != "active":
        return jsonify({"error": "invalid_payload", "message": "Inactive employees cannot clock in"}), 400

    if _open_entry(employee) is not None:
        return _already_clocked_in(employee)

    entry = TimeEntry(
        business_id=g.business_id,
        employee_id=employee.employee_id,
        clock_in=_local_now(),
        notes=clean_str((request.get_json(silent=True) or {}).get("notes")),
    )

    try:
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to clock in", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return (
        jsonify({
            "entry": entry.to_dict(),
            "message": translate("timeTracking.clockedIn", language, name=employee.name),
        }),
        201,
    )


@bp_staff.post("/employees/<int:employee_id>/clock-out")
@business_required
def clock_out(employee_id: int) -> tuple[dict[str, object], int]:
    employee = tenant_get(Employee, employee_id)
    if employee is None:
        return not_found("Employee")

    entry = _open_entry(employee)
    if entry is None:
        return jsonify({"error": "invalid_payload", "message": f"{employee.name} is not clocked in"}), 400

    entry.clock_out = max(_local_now(), entry.clock_in)
    notes = clean_str((request.get_json(silent=True) or {}).get("notes"))
    if notes:
        entry.notes = notes

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to clock out", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return (
        jsonify({
            "entry": {**entry.to_dict(), "hours": entry_hours(entry)},
            "message": translate("timeTracking.clockedOut", resolve_language(g.business_id), name=employee.name),
        }),
        200,
    )


# ---------------------------------------------------------------------------
# Time entries
# ---------------------------------------------------------------------------


@bp_staff.get("/time-entries")
@business_required
def list_time_entries() -> tuple[dict[str, object], int]:
    """List time entries, newest first.
    ---
    tags:
      - Time Tracking
    parameters:
      - name: employee_id
        in: query
        type: integer
        required: false
      - name: start_date
        in: query
        type: string
        format: date
        required: false
      - name: end_date
        in: query
        type: string
        format: date
        required: false
    responses:
      200:
        description: Time entries
      400:
        description: Invalid filter
    """
    try:
        employee_id = parse_int(request.args.get("employee_id"), "employee_id")
        start = parse_date(request.args["start_date"], "start_date") if request.args.get("start_date") else None
        end = parse_date(request.args["end_date"], "end_date") if request.args.get("end_date") else None
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    try:
        query = TimeEntry.query.filter(TimeEntry.business_id == g.business_id)
        if employee_id is not None:
            query = query.filter(TimeEntry.employee_id == employee_id)
        if start is not None:
            query = query.filter(TimeEntry.clock_in >= datetime.combine(start, time.min))
        if end is not None:
            query = query.filter(TimeEntry.clock_in < datetime.combine(end + timedelta(days=1), time.min))
        entries = query.order_by(TimeEntry.clock_in.desc()).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to list time entries", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"time_entries": [{**entry.to_dict(), "hours": entry_hours(entry)} for entry in entries]}), 200


class OpenEntryConflict(Exception):
    """The employee already has another open time entry."""

    def __init__(self, employee: Employee):
        super().__init__(employee.name)
        self.employee = employee


def _time_entry_fields(data: dict[str, object], entry: TimeEntry | None = None) -> dict[str, object]:
    fields: dict[str, object] = {}

    employee = entry.employee if entry is not None else None
    if entry is None or "employee_id" in data:
        employee_id = parse_int(data.get("employee_id"), "employee_id")
        if employee_id is None:
            raise ValueError("employee_id is required")
        employee = tenant_get(Employee, employee_id)
        if employee is None:
            raise LookupError("Employee")
        fields["employee_id"] = employee_id

    clock_in_at = entry.clock_in if entry is not None else None
    if entry is None or "clock_in" in data:
        clock_in_at = parse_datetime(data.get("clock_in"), "clock_in")
        fields["clock_in"] = clock_in_at

    clock_out_at = entry.clock_out if entry is not None else None
    if "clock_out" in data:
        clock_out_at = parse_datetime(data["clock_out"], "clock_out") if data["clock_out"] else None
        fields["clock_out"] = clock_out_at

    if clock_out_at is not None and clock_out_at <= clock_in_at:
        raise ValueError("clock_out must be after clock_in")
    if clock_out_at is None and _open_entry(employee, exclude=entry) is not None:
        raise OpenEntryConflict(employee)

    if "notes" in data:
        fields["notes"] = clean_str(data.get("notes"))

    return fields


@bp_staff.post("/time-entries")
@business_required
def create_time_entry() -> tuple[dict[str, object], int]:
    """Add a time entry by hand.
    ---
    tags:
      - Time Tracking
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required:
            - employee_id
            - clock_in
          properties:
            employee_id:
              type: integer
            clock_in:
              type: string
              format: date-time
            clock_out:
              type: string
              format: date-time
            notes:
              type: string
    responses:
      201:
        description: Time entry created
      400:
        description: Invalid payload
      404:
        description: Employee not found
    """
    try:
        fields = _time_entry_fields(request.get_json(silent=True) or {})
    except LookupError as exc:
        return not_found(str(exc))
    except OpenEntryConflict as exc:
        return _already_clocked_in(exc.employee)
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    entry = TimeEntry(business_id=g.business_id, **fields)

    try:
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create time entry", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"entry": {**entry.to_dict(), "hours": entry_hours(entry)}}), 201


@bp_staff.put("/time-entries/<int:entry_id>")
@business_required
def update_time_entry(entry_id: int) -> tuple[dict[str, object], int]:
    entry = tenant_get(TimeEntry, entry_id)
    if entry is None:
        return not_found("Time entry")

    try:
        fields = _time_entry_fields(request.get_json(silent=True) or {}, entry)
    except LookupError as exc:
        return not_found(str(exc))
    except OpenEntryConflict as exc:
        return _already_clocked_in(exc.employee)
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    for key, value in fields.items():
        setattr(entry, key, value)

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update time entry", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"entry": {**entry.to_dict(), "hours": entry_hours(entry)}}), 200


@bp_staff.delete("/time-entries/<int:entry_id>")
@business_required
def delete_time_entry(entry_id: int) -> tuple[dict[str, object], int]:
    entry = tenant_get(TimeEntry, entry_id)
    if entry is None:
        return not_found("Time entry")

    try:
        db.session.delete(entry)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete time entry", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"message": "Time entry deleted"}), 200


# ---------------------------------------------------------------------------
# Payroll
# ---------------------------------------------------------------------------


def _reference_date(arg: str) -> date:
    value = request.args.get(arg)
    return parse_date(value, arg) if value else date.today()


@bp_staff.get("/payroll")
@business_required
def get_payroll() -> tuple[dict[str, object], int]:
    """Hours and gross pay per employee for a two-week pay period.
    ---
    tags:
      - Payroll
    parameters:
      - name: date
        in: query
        type: string
        format: date
        required: false
        description: Any day inside the pay period; defaults to today
    responses:
      200:
        description: Pay period summary with navigation dates
      400:
        description: Invalid date
    """
    try:
        start, end = pay_period_bounds(_reference_date("date"))
    except ValueError as exc:
        return jsonify({"error": "invalid_date", "message": str(exc)}), 400

    try:
        employees = Employee.query.filter_by(business_id=g.business_id).order_by(Employee.name.asc()).all()
        entries = _entries_between(None, start, end)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to load payroll", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    rows = []
    for employee in employees:
        own = [entry for entry in entries if entry.employee_id == employee.employee_id]
        if employee.status != "active" and not own:
            continue
        summary = summarize_entries(own, employee.hourly_rate_cents, start, end)
        rows.append({
            "employee": employee.to_dict(),
            "total_hours": summary["total_hours"],
            "gross_pay_cents": summary["gross_pay_cents"],
        })

    return (
        jsonify({
            "period_start": start.isoformat(),
            "period_end": end.isoformat(),
            "previous_period": (start - timedelta(days=PAY_PERIOD_DAYS)).isoformat(),
            "next_period": (start + timedelta(days=PAY_PERIOD_DAYS)).isoformat(),
            "employees": rows,
            "total_hours": sum(row["total_hours"] for row in rows),
            "total_pay_cents": sum(row["gross_pay_cents"] for row in rows),
        }),
        200,
    )


@bp_staff.get("/payroll/employees/<int:employee_id>")
@business_required
def get_employee_payroll(employee_id: int) -> tuple[dict[str, object], int]:
    """One employee's entries, hours and pay for a single week."""
    employee = tenant_get(Employee, employee_id)
    if employee is None:
        return not_found("Employee")

    try:
        start, end = week_bounds(_reference_date("week_start"))
    except ValueError as exc:
        return jsonify({"error": "invalid_date", "message": str(exc)}), 400

    summary = summarize_entries(_entries_between([employee_id], start, end), employee.hourly_rate_cents, start, end)
    return (
        jsonify({
            "employee": employee.to_dict(),
            "week_start": start.isoformat(),
            "week_end": end.isoformat(),
            **summary,
        }),
        200,
    )


@bp_staff.get("/payroll/employees/<int:employee_id>/timesheet")
@business_required
def get_employee_timesheet(employee_id: int) -> tuple[dict[str, object], int]:
    employee = tenant_get(Employee, employee_id)
    if employee is None:
        return not_found("Employee")

    try:
        start, end = pay_period_bounds(_reference_date("date"))
    except ValueError as exc:
        return jsonify({"error": "invalid_date", "message": str(exc)}), 400

    entries = _entries_between([employee_id], start, end)
    days = daily_breakdown(entries, employee.hourly_rate_cents, start, end)
    total_hours = sum(day["hours"] for day in days)
    return (
        jsonify({
            "employee": employee.to_dict(),
            "period_start": start.isoformat(),
            "period_end": end.isoformat(),
            "days": days,
            "total_hours": total_hours,
            "gross_pay_cents": total_hours * employee.hourly_rate_cents,
        }),
        200,
    )
