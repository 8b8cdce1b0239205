"""Appointments, daily availability, checkout and payments."""
from __future__ import annotations

from datetime import date, datetime, timedelta, time
from decimal import ROUND_HALF_UP, Decimal

import stripe
from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from .auth import business_required, not_found, tenant_get
from .availability import available_time_slots, booked_times, parse_time
from .extensions import db
from .formatting import format_expiry, mask_card_number
from .legacy import normalize_appointment_payload, normalize_status
from .models import Appointment, Customer, Employee, Payment, Pet, Service, utc_now
from .translations import resolve_language, translate
from .validators import clean_str, parse_date, parse_int, parse_money

bp_appointments = Blueprint("appointments", __name__)

APPOINTMENT_STATUSES = ("scheduled", "confirmed", "in_progress", "completed", "canceled", "no_show")
FINAL_STATUSES = ("completed", "canceled")
PAYMENT_METHODS = ("credit", "cash", "athmovil")
TIP_TYPES = ("percent", "amount")


def _find_service_id(name: str) -> int | None:
    service = Service.query.filter(
        Service.business_id == g.business_id,
        func.lower(Service.name) == name.strip().lower(),
    ).first()
    return service.service_id if service else None


def _add_minutes(start: time, minutes: int) -> time:
    return (datetime.combine(date.min, start) + timedelta(minutes=minutes)).time()


class StatusChangeError(ValueError):
    """Unknown status, or a change out of a final status."""


def _check_status(value, appointment: Appointment | None = None) -> str:
    status = normalize_status(value)
    if status not in APPOINTMENT_STATUSES:
        raise StatusChangeError(f"status must be one of: {', '.join(APPOINTMENT_STATUSES)}")
    if appointment is not None and appointment.status in FINAL_STATUSES and status != appointment.status:
        raise StatusChangeError(f"Cannot change status of a {appointment.status} appointment")
    return status


def _stamp_grooming_date(appointment: Appointment) -> None:
    pet = appointment.pet or tenant_get(Pet, appointment.pet_id)
    if appointment.status == "completed" and pet is not None:
        pet.last_grooming_date = appointment.appointment_date


@bp_appointments.get("/appointments")
@business_required
def list_appointments() -> tuple[dict[str, object], int]:
    """List appointments of the current business.
    ---
    tags:
      - Appointments
    parameters:
      - name: date
        in: query
        type: string
        format: date
        required: false
      - name: status
        in: query
        type: string
        required: false
      - name: customer_id
        in: query
        type: integer
        required: false
    responses:
      200:
        description: Appointments ordered by date and start time
      400:
        description: Invalid filter
      500:
        description: Database error
    """
    try:
        day = parse_date(request.args["date"]) if request.args.get("date") else None
        customer_id = parse_int(request.args.get("customer_id"), "customer_id")
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    status = normalize_status(request.args.get("status"))
    if status and status not in APPOINTMENT_STATUSES:
        return jsonify({"error": "invalid_status", "message": f"Unknown status: {status}"}), 400

    try:
        query = Appointment.query.options(
            joinedload(Appointment.customer),
            joinedload(Appointment.pet),
            joinedload(Appointment.service),
        ).filter(Appointment.business_id == g.business_id)

        if day is not None:
            query = query.filter(Appointment.appointment_date == day)
        if status:
            query = query.filter(Appointment.status == status)
        if customer_id is not None:
            query = query.filter(Appointment.customer_id == customer_id)

        appointments = query.order_by(Appointment.appointment_date.asc(), Appointment.start_time.asc()).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to list appointments", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"appointments": [appointment.to_dict() for appointment in appointments]}), 200


@bp_appointments.get("/appointments/availability")
@business_required
def get_availability() -> tuple[dict[str, object], int]:
    """Free booking slots for one day.
    ---
    tags:
      - Appointments
    parameters:
      - name: date
        in: query
        type: string
        format: date
        required: true
    responses:
      200:
        description: Available and booked slots
      400:
        description: Missing or invalid date
    """
    try:
        day = parse_date(request.args.get("date"))
    except ValueError as exc:
        return jsonify({"error": "invalid_date", "message": str(exc)}), 400

    try:
        appointments = Appointment.query.filter(
            Appointment.business_id == g.business_id,
            Appointment.appointment_date == day,
        ).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to load availability", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    booked = booked_times(appointments)
    return (
        jsonify({
            "date": day.isoformat(),
            "booked_slots": sorted(booked),
            "available_slots": available_time_slots(booked),
        }),
        200,
    )


@bp_appointments.get("/appointments/<int:appointment_id>")
@business_required
def get_appointment(appointment_id: int) -> tuple[dict[str, object], int]:
    appointment = tenant_get(Appointment, appointment_id)
    if appointment is None:
        return not_found("Appointment")
    return jsonify({"appointment": appointment.to_dict()}), 200


def _appointment_fields(data: dict[str, object], appointment: Appointment | None = None) -> dict[str, object]:
    """Validate a create (``appointment`` is None) or partial update payload."""
    partial = appointment is not None
    fields: dict[str, object] = {}

    customer_id = appointment.customer_id if partial else None
    if not partial or "customer_id" in data:
        customer_id = parse_int(data.get("customer_id"), "customer_id")
        if customer_id is None:
            raise ValueError("customer_id is required")
        if tenant_get(Customer, customer_id) is None:
            raise LookupError("Customer")
        fields["customer_id"] = customer_id

    if not partial or "pet_id" in data or "customer_id" in data:
        pet_id = parse_int(data.get("pet_id"), "pet_id") if "pet_id" in data else appointment.pet_id
        if pet_id is None:
            raise ValueError("pet_id is required")
        pet = tenant_get(Pet, pet_id)
        if pet is None:
            raise LookupError("Pet")
        if pet.customer_id != customer_id:
            raise ValueError("pet does not belong to this customer")
        fields["pet_id"] = pet_id

    service = appointment.service if partial else None
    if "service_id" in data:
        service_id = parse_int(data.get("service_id"), "service_id")
        service = None
        if service_id is not None:
            service = tenant_get(Service, service_id)
            if service is None:
                raise LookupError("Service")
        fields["service_id"] = service_id

    if "employee_id" in data:
        employee_id = parse_int(data.get("employee_id"), "employee_id")
        if employee_id is not None and tenant_get(Employee, employee_id) is None:
            raise LookupError("Employee")
        fields["employee_id"] = employee_id

    if not partial or "appointment_date" in data:
        fields["appointment_date"] = parse_date(data.get("appointment_date"), "appointment_date")

    start = appointment.start_time if partial else None
    if not partial or "start_time" in data:
        if not data.get("start_time"):
            raise ValueError("start_time is required")
        start = parse_time(str(data["start_time"]))
        fields["start_time"] = start

    if data.get("end_time"):
        end = parse_time(str(data["end_time"]))
    elif not partial:
        end = _add_minutes(start, service.duration_minutes if service else 60)
    elif "start_time" in data:
        duration = datetime.combine(date.min, appointment.end_time) - datetime.combine(date.min, appointment.start_time)
        end = (datetime.combine(date.min, start) + duration).time()
    else:
        end = appointment.end_time
    if end <= start:
        raise ValueError("end_time must be after start_time")
    fields["end_time"] = end

    if partial and "status" in data:
        fields["status"] = _check_status(data.get("status"), appointment)
    elif not partial:
        fields["status"] = _check_status(data.get("status") or "scheduled")

    if "total_price" in data:
        fields["total_price_cents"] = parse_money(data.get("total_price"), "total_price")
    elif not partial:
        fields["total_price_cents"] = service.price_cents if service else None

    for key in ("notes", "service_summary"):
        if key in data:
            fields[key] = clean_str(data.get(key))
    if not partial and not fields.get("service_summary") and service is not None:
        fields["service_summary"] = service.name

    return fields


@bp_appointments.post("/appointments")
@business_required
def create_appointment() -> tuple[dict[str, object], int]:
    """Book an appointment from the staff app.
    ---
    tags:
      - Appointments
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required:
            - customer_id
            - pet_id
            - appointment_date
            - start_time
          properties:
            customer_id:
              type: integer
            pet_id:
              type: integer
            service_id:
              type: integer
            appointment_date:
              type: string
              format: date
            start_time:
              type: string
              example: "10:30"
            end_time:
              type: string
            total_price:
              type: number
            scheduled_date:
              type: string
              description: Legacy ISO datetime, split into date and start time
            service_type:
              type: string
              description: Legacy comma-joined service names
    responses:
      201:
        description: Appointment created
      400:
        description: Invalid payload
      404:
        description: Customer, pet or service not found
      500:
        description: Database error
    """
    try:
        payload = normalize_appointment_payload(request.get_json(silent=True) or {}, _find_service_id)
        fields = _appointment_fields(payload)
    except LookupError as exc:
        return not_found(str(exc))
    except StatusChangeError as exc:
        return jsonify({"error": "invalid_status", "message": str(exc)}), 400
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    appointment = Appointment(business_id=g.business_id, **fields)

    try:
        db.session.add(appointment)
        _stamp_grooming_date(appointment)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create appointment", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"appointment": appointment.to_dict()}), 201


@bp_appointments.put("/appointments/<int:appointment_id>")
@business_required
def update_appointment(appointment_id: int) -> tuple[dict[str, object], int]:
    """Reschedule or edit an appointment.
    ---
    tags:
      - Appointments
    responses:
      200:
        description: Appointment updated
      400:
        description: Invalid payload
      404:
        description: Appointment not found
    """
    appointment = tenant_get(Appointment, appointment_id)
    if appointment is None:
        return not_found("Appointment")

    try:
        payload = normalize_appointment_payload(request.get_json(silent=True) or {}, _find_service_id)
        fields = _appointment_fields(payload, appointment)
    except LookupError as exc:
        return not_found(str(exc))
    except StatusChangeError as exc:
        return jsonify({"error": "invalid_status", "message": str(exc)}), 400
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    for key, value in fields.items():
        setattr(appointment, key, value)
    if "status" in fields:
        _stamp_grooming_date(appointment)

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update appointment", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"appointment": appointment.to_dict()}), 200


@bp_appointments.put("/appointments/<int:appointment_id>/status")
@business_required
def update_appointment_status(appointment_id: int) -> tuple[dict[str, object], int]:
    """Move an appointment through its lifecycle.
    ---
    tags:
      - Appointments
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required:
            - status
          properties:
            status:
              type: string
              enum: [scheduled, confirmed, in_progress, completed, canceled, no_show]
    responses:
      200:
        description: Status updated
      400:
        description: Unknown status or the appointment is already completed/canceled
      404:
        description: Appointment not found
    """
    appointment = tenant_get(Appointment, appointment_id)
    if appointment is None:
        return not_found("Appointment")

    payload = request.get_json(silent=True) or {}
    try:
        status = _check_status(payload.get("status"), appointment)
    except StatusChangeError as exc:
        return jsonify({"error": "invalid_status", "message": str(exc)}), 400

    appointment.status = status
    _stamp_grooming_date(appointment)

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update appointment status", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    response = {"appointment": appointment.to_dict()}
    if status == "canceled":
        response["message"] = translate("appointments.cancelled", resolve_language(g.business_id))
    return jsonify(response), 200


@bp_appointments.delete("/appointments/<int:appointment_id>")
@business_required
def delete_appointment(appointment_id: int) -> tuple[dict[str, object], int]:
    appointment = tenant_get(Appointment, appointment_id)
    if appointment is None:
        return not_found("Appointment")

    try:
        Payment.query.filter(Payment.appointment_id == appointment.appointment_id).delete(synchronize_session=False)
        db.session.delete(appointment)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete appointment", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"message": "Appointment deleted"}), 200


# ---------------------------------------------------------------------------
# Checkout & payments
# ---------------------------------------------------------------------------


def _checkout_items(appointment: Appointment, raw_items) -> list[dict[str, object]]:
    if not raw_items:
        if appointment.service is None and appointment.total_price_cents is None:
            raise ValueError("items are required for an appointment without a service")
        price_cents = appointment.service.price_cents if appointment.service else appointment.total_price_cents
        return [{
            "service_id": appointment.service_id,
            "service_name": appointment.service.name if appointment.service else appointment.service_summary,
            "price_cents": price_cents,
            "quantity": 1,
            "line_total_cents": price_cents,
        }]

    if not isinstance(raw_items, list):
        raise ValueError("items must be a list")

    items = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            raise ValueError("each item must be an object")
        service_id = parse_int(raw.get("service_id"), "service_id")
        service = tenant_get(Service, service_id) if service_id is not None else None
        if service_id is not None and service is None:
            raise LookupError("Service")

        name = clean_str(raw.get("service_name")) or (service.name if service else None)
        if not name:
            raise ValueError("service_name is required")
        price_cents = parse_money(raw.get("price"), "price", default=service.price_cents if service else None)
        if price_cents is None:
            raise ValueError("price is required")
        quantity = parse_int(raw.get("quantity"), "quantity", minimum=1, default=1)

        items.append({
            "service_id": service_id,
            "service_name": name,
            "price_cents": price_cents,
            "quantity": quantity,
            "line_total_cents": price_cents * quantity,
        })
    return items


def _tip_cents(subtotal_cents: int, tip_type: str, tip_value) -> int:
    if tip_type not in TIP_TYPES:
        raise ValueError(f"tip_type must be one of: {', '.join(TIP_TYPES)}")
    if tip_type == "amount":
        return parse_money(tip_value, "tip_value", default=0)

    try:
        percent = Decimal(str(tip_value if tip_value not in (None, "") else 0))
    except ArithmeticError as exc:
        raise ValueError("tip_value must be a number") from exc
    if not percent.is_finite() or percent < 0:
        raise ValueError("tip_value must be a non-negative number")
    return int((Decimal(subtotal_cents) * percent / 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@bp_appointments.post("/appointments/<int:appointment_id>/checkout")
@business_required
def checkout_appointment(appointment_id: int) -> tuple[dict[str, object], int]:
    """Total up an appointment with line items and tip.
    ---
    tags:
      - Payments
    parameters:
      - name: body
        in: body
        required: false
        schema:
          type: object
          properties:
            items:
              type: array
              items:
                type: object
                properties:
                  service_id:
                    type: integer
                  service_name:
                    type: string
                  price:
                    type: number
                  quantity:
                    type: integer
                    minimum: 1
            tip_type:
              type: string
              enum: [percent, amount]
            tip_value:
              type: number
    responses:
      200:
        description: Subtotal, tip and total; the total is stored on the appointment
      400:
        description: Invalid items or tip
      404:
        description: Appointment not found
    """
    appointment = tenant_get(Appointment, appointment_id)
    if appointment is None:
        return not_found("Appointment")

    payload = request.get_json(silent=True) or {}

    try:
        items = _checkout_items(appointment, payload.get("items"))
        subtotal_cents = sum(item["line_total_cents"] for item in items)
        tip_cents = _tip_cents(subtotal_cents, payload.get("tip_type") or "percent", payload.get("tip_value"))
    except LookupError as exc:
        return not_found(str(exc))
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    total_cents = subtotal_cents + tip_cents
    appointment.total_price_cents = total_cents
    appointment.service_summary = ", ".join(item["service_name"] for item in items)[:500]

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to save checkout total", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return (
        jsonify({
            "appointment": appointment.to_dict(),
            "items": items,
            "subtotal_cents": subtotal_cents,
            "tip_cents": tip_cents,
            "total_cents": total_cents,
        }),
        200,
    )


def _validate_expiry(value) -> None:
    expiry = format_expiry(str(value))
    if len(expiry) != 5:
        raise ValueError("card_expiry must be MM/YY")
    month, year = int(expiry[:2]), 2000 + int(expiry[3:])
    if not 1 <= month <= 12:
        raise ValueError("card_expiry month must be between 01 and 12")
    today = utc_now().date()
    if (year, month) < (today.year, today.month):
        raise ValueError("card has expired")


@bp_appointments.get("/appointments/<int:appointment_id>/payments")
@business_required
def list_appointment_payments(appointment_id: int) -> tuple[dict[str, object], int]:
    appointment = tenant_get(Appointment, appointment_id)
    if appointment is None:
        return not_found("Appointment")

    payments = (
        Payment.query.filter_by(business_id=g.business_id, appointment_id=appointment_id)
        .order_by(Payment.created_at.asc())
        .all()
    )
    return jsonify({"payments": [payment.to_dict() for payment in payments]}), 200


@bp_appointments.post("/appointments/<int:appointment_id>/payments")
@business_required
def create_payment(appointment_id: int) -> tuple[dict[str, object], int]:
    """Take payment for an appointment by card, cash or ATH Movil.
    ---
    tags:
      - Payments
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required:
            - method
          properties:
            method:
              type: string
              enum: [credit, cash, athmovil]
            amount:
              type: number
              description: Defaults to the appointment total
            tip:
              type: number
            card_number:
              type: string
            card_expiry:
              type: string
              example: "08/27"
    responses:
      201:
        description: Payment recorded; card payments include the Stripe client secret
      400:
        description: Invalid payload
      404:
        description: Appointment not found
      500:
        description: Database or payment processor error
    """
    appointment = tenant_get(Appointment, appointment_id)
    if appointment is None:
        return not_found("Appointment")

    payload = request.get_json(silent=True) or {}
    method = str(payload.get("method") or "").strip().lower()
    if method not in PAYMENT_METHODS:
        return (
            jsonify({"error": "invalid_payload", "message": f"method must be one of: {', '.join(PAYMENT_METHODS)}"}),
            400,
        )

    try:
        amount_cents = parse_money(payload.get("amount"), "amount", default=appointment.total_price_cents)
        tip_cents = parse_money(payload.get("tip"), "tip", default=0)
        if not amount_cents:
            raise ValueError("amount must be greater than zero")
        if method == "credit" and payload.get("card_expiry"):
            _validate_expiry(payload["card_expiry"])
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    language = resolve_language(g.business_id)
    payment = Payment(
        business_id=g.business_id,
        appointment_id=appointment.appointment_id,
        method=method,
        amount_cents=amount_cents,
        tip_cents=tip_cents,
        status="completed" if method == "cash" else "pending",
    )
    response: dict[str, object] = {}

    if method == "credit":
        stripe_key = current_app.config.get("STRIPE_SECRET_KEY")
        if not stripe_key:
            current_app.logger.warning("Stripe secret key not configured")
            return jsonify({"error": "server_error", "message": "Card payments are not currently available."}), 500

        stripe.api_key = stripe_key
        try:
            intent = stripe.PaymentIntent.create(
                amount=int(amount_cents + tip_cents),
                currency=current_app.config.get("PAYMENT_CURRENCY", "usd"),
                metadata={
                    "appointment_id": str(appointment.appointment_id),
                    "business_id": str(g.business_id),
                },
            )
        except stripe.StripeError as exc:
            current_app.logger.exception("Stripe API error while creating payment intent", exc_info=exc)
            return jsonify({"error": "payment_error", "message": "An error occurred while processing the payment."}), 500

        payment.gateway_payment_id = intent.id
        if payload.get("card_number"):
            payment.card_last4 = mask_card_number(str(payload["card_number"])) or None
        response["client_secret"] = intent.client_secret
        response["message"] = translate("payment.cardProcessing", language)
    elif method == "cash":
        response["message"] = translate("payment.cashRecorded", language)
    else:
        response["message"] = translate("payment.athmovilInitiated", language)

    try:
        db.session.add(payment)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to record payment", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    current_app.logger.info(
        "Recorded %s payment %s for appointment %s", method, payment.payment_id, appointment.appointment_id
    )
    response["payment"] = payment.to_dict()
    return jsonify(response), 201


@bp_appointments.post("/payments/<int:payment_id>/confirm")
@business_required
def confirm_payment(payment_id: int) -> tuple[dict[str, object], int]:
    """Check a card payment's PaymentIntent and mark it completed.
    ---
    tags:
      - Payments
    responses:
      200:
        description: Current payment state
      400:
        description: Payment has no PaymentIntent to confirm
      404:
        description: Payment not found
      500:
        description: Payment processor error
    """
    payment = tenant_get(Payment, payment_id)
    if payment is None:
        return not_found("Payment")

    if payment.status == "completed":
        return jsonify({"payment": payment.to_dict()}), 200

    if not payment.gateway_payment_id:
        return jsonify({"error": "invalid_payload", "message": "Only card payments can be confirmed"}), 400

    stripe_key = current_app.config.get("STRIPE_SECRET_KEY")
    if not stripe_key:
        current_app.logger.warning("Stripe secret key not configured")
        return jsonify({"error": "server_error", "message": "Card payments are not currently available."}), 500

    stripe.api_key = stripe_key
    try:
        intent = stripe.PaymentIntent.retrieve(payment.gateway_payment_id)
    except stripe.StripeError as exc:
        current_app.logger.exception("Failed to retrieve payment intent", exc_info=exc)
        return jsonify({"error": "payment_error", "message": "Unable to verify payment"}), 500

    if intent.status == "succeeded":
        payment.status = "completed"
    elif intent.status == "canceled":
        payment.status = "failed"

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update payment", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"payment": payment.to_dict(), "intent_status": intent.status}), 200
