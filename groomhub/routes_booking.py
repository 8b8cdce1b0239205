"""Public booking page API, addressed by business slug. No login required."""
from __future__ import annotations

from datetime import datetime, timedelta

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from .auth import not_found
from .availability import TIME_SLOTS, available_time_slots, booked_times
from .extensions import db
from .formatting import format_phone_number
from .legacy import split_full_name
from .models import Appointment, Business, Customer, Pet, Service
from .translations import resolve_language, translate
from .validators import clean_str, parse_date, parse_float, parse_int, validate_email, validate_phone

bp_booking = Blueprint("booking", __name__, url_prefix="/book/<slug>")

NEW_PET_DEFAULTS = {"species": "other", "breed": "Unknown", "age": 0, "weight": 0.0}


@bp_booking.url_value_preprocessor
def load_business(endpoint, values):
    g.booking_slug = values.pop("slug", None)


def _business() -> Business | None:
    business = Business.query.filter_by(slug=g.booking_slug).first()
    if business is not None:
        g.business_id = business.business_id
    return business


def _booked_for(day) -> list[str]:
    return booked_times(
        Appointment.query.filter(
            Appointment.business_id == g.business_id,
            Appointment.appointment_date == day,
        ).all()
    )


def _names_overlap(first: str, second: str) -> bool:
    first, second = first.strip().lower(), second.strip().lower()
    return bool(first and second) and (first in second or second in first)


def match_customer(customer: Customer | None, client_name: str, pet_id: int | None, pet_name: str | None) -> bool:
    """Decide whether a booking made with an existing customer's phone is theirs.

    The booking matches when the names overlap either way, when the
    chosen pet is theirs, or when one of their pets has the given name.
    """
    if customer is None:
        return False
    if _names_overlap(customer.full_name, client_name):
        return True
    if pet_id is not None and any(pet.pet_id == pet_id for pet in customer.pets):
        return True
    if pet_name:
        return any(pet.name.strip().lower() == pet_name.strip().lower() for pet in customer.pets)
    return False


@bp_booking.get("/services")
def public_services() -> tuple[dict[str, object], int]:
    """Business name and its active services for the booking page.
    ---
    tags:
      - Booking
    parameters:
      - name: slug
        in: path
        type: string
        required: true
    responses:
      200:
        description: Business summary and active services
      404:
        description: Unknown business
    """
    business = _business()
    if business is None:
        return not_found("Business")

    services = (
        Service.query.filter(Service.business_id == business.business_id, Service.is_active.is_(True))
        .order_by(Service.name.asc())
        .all()
    )
    return (
        jsonify({
            "business": {"name": business.name, "slug": business.slug, "phone": business.phone},
            "services": [service.to_dict() for service in services],
        }),
        200,
    )


@bp_booking.get("/availability")
def public_availability() -> tuple[dict[str, object], int]:
    business = _business()
    if business is None:
        return not_found("Business")

    try:
        day = parse_date(request.args.get("date"))
    except ValueError as exc:
        return jsonify({"error": "invalid_date", "message": str(exc)}), 400

    return jsonify({"date": day.isoformat(), "available_slots": available_time_slots(_booked_for(day))}), 200


@bp_booking.get("/lookup")
def public_lookup() -> tuple[dict[str, object], int]:
    """Match a returning client by phone number.
    ---
    tags:
      - Booking
    parameters:
      - name: phone
        in: query
        type: string
        required: true
    responses:
      200:
        description: Whether a client was found, with their name and pets
      400:
        description: Invalid phone
      404:
        description: Unknown business
    """
    business = _business()
    if business is None:
        return not_found("Business")

    try:
        phone = validate_phone(request.args.get("phone"), required=True)
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    customer = Customer.query.filter_by(business_id=business.business_id, phone=phone).first()
    if customer is None:
        return jsonify({"found": False, "phone": format_phone_number(phone)}), 200

    return (
        jsonify({
            "found": True,
            "client": {
                "name": customer.full_name,
                "phone": format_phone_number(customer.phone),
                "email": customer.email,
            },
            "pets": [
                {"id": pet.pet_id, "name": pet.name, "species": pet.species, "breed": pet.breed}
                for pet in customer.pets
            ],
        }),
        200,
    )


@bp_booking.post("/appointments")
def public_book_appointment() -> tuple[dict[str, object], int]:
    """Submit a booking request from the public page.
    ---
    tags:
      - Booking
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required:
            - client_name
            - phone
            - services
            - date
            - time
          properties:
            client_name:
              type: string
            phone:
              type: string
            email:
              type: string
            pet_id:
              type: integer
            pet_name:
              type: string
            pet_species:
              type: string
            pet_breed:
              type: string
            services:
              type: array
              items:
                type: string
            date:
              type: string
              format: date
            time:
              type: string
              example: "09:30"
            notes:
              type: string
    responses:
      201:
        description: Appointment requested
      400:
        description: Invalid payload or unknown time slot
      404:
        description: Unknown business
      409:
        description: Time slot already taken
    """
    business = _business()
    if business is None:
        return not_found("Business")

    payload = request.get_json(silent=True) or {}
    language = resolve_language(business.business_id)

    client_name = clean_str(payload.get("client_name"))
    pet_name = clean_str(payload.get("pet_name"))
    service_names = payload.get("services") or []
    slot = str(payload.get("time") or "").strip()

    try:
        phone = validate_phone(payload.get("phone"), required=True)
        email = validate_email(payload.get("email"))
        day = parse_date(payload.get("date"))
        pet_id = parse_int(payload.get("pet_id"), "pet_id")
        pet_age = parse_int(payload.get("pet_age"), "pet_age", minimum=0, default=NEW_PET_DEFAULTS["age"])
        pet_weight = parse_float(payload.get("pet_weight"), "pet_weight", minimum=0, default=NEW_PET_DEFAULTS["weight"])
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    if not client_name or not (pet_id or pet_name) or not isinstance(service_names, list) or not service_names:
        return (
            jsonify({
                "error": "invalid_payload",
                "message": "client_name, phone, a pet, and at least one service are required",
            }),
            400,
        )

    if slot not in TIME_SLOTS:
        return jsonify({"error": "invalid_payload", "message": f"time must be one of the booking slots: {slot!r}"}), 400

    wanted = [str(name).strip().lower() for name in service_names]
    services = [
        service
        for service in Service.query.filter(
            Service.business_id == business.business_id, Service.is_active.is_(True)
        ).all()
        if service.name.strip().lower() in wanted
    ]
    if not services:
        return jsonify({"error": "invalid_payload", "message": "none of the selected services are offered"}), 400
    services.sort(key=lambda service: wanted.index(service.name.strip().lower()))

    duration = sum(service.duration_minutes for service in services)
    start = datetime.strptime(slot, "%H:%M")
    end = start + timedelta(minutes=duration)
    if end.date() != start.date():
        return jsonify({"error": "invalid_payload", "message": "the selected services run past the end of the day"}), 400

    if slot in _booked_for(day):
        return jsonify({"error": "conflict", "message": translate("appointments.slotTaken", language, time=slot)}), 409

    try:
        customer = Customer.query.filter_by(business_id=business.business_id, phone=phone).first()
        if not match_customer(customer, client_name, pet_id, pet_name):
            first_name, last_name = split_full_name(client_name)
            customer = Customer(
                business_id=business.business_id,
                first_name=first_name,
                last_name=last_name,
                phone=phone,
                email=email,
            )
            db.session.add(customer)
            db.session.flush()
            current_app.logger.info("Created customer %s from public booking", customer.customer_id)

        pet = None
        for candidate in customer.pets:
            if candidate.pet_id == pet_id or (pet_name and candidate.name.strip().lower() == pet_name.lower()):
                pet = candidate
                break
        if pet is None:
            if not pet_name:
                db.session.rollback()
                return jsonify({"error": "invalid_payload", "message": "pet_name is required for a new pet"}), 400
            species = (clean_str(payload.get("pet_species")) or NEW_PET_DEFAULTS["species"]).lower()
            pet = Pet(
                business_id=business.business_id,
                customer_id=customer.customer_id,
                name=pet_name,
                species=species if species in ("dog", "cat", "other") else NEW_PET_DEFAULTS["species"],
                breed=clean_str(payload.get("pet_breed")) or NEW_PET_DEFAULTS["breed"],
                age=pet_age,
                weight=pet_weight,
            )
            db.session.add(pet)
            db.session.flush()

        summary = ", ".join(service.name for service in services)
        notes = clean_str(payload.get("notes")) or (
            f"Client: {client_name}\nPet: {pet.name}\nBreed: {pet.breed or 'Unknown'}\nServices: {summary}"
        )

        appointment = Appointment(
            business_id=business.business_id,
            customer_id=customer.customer_id,
            pet_id=pet.pet_id,
            service_id=services[0].service_id,
            appointment_date=day,
            start_time=start.time(),
            end_time=end.time(),
            status="scheduled",
            notes=notes,
            service_summary=summary,
            total_price_cents=sum(service.price_cents for service in services),
        )
        db.session.add(appointment)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to book appointment", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    message = translate("appointments.booked", language, pet=pet.name, date=day.isoformat(), time=slot)
    return jsonify({"appointment": appointment.to_dict(), "message": message}), 201
