"""Customer and pet records."""
from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from .auth import business_required, not_found, tenant_get
from .extensions import db
from .formatting import unformat_phone_number
from .legacy import normalize_customer_payload, normalize_pet_payload
from .models import Appointment, Customer, Payment, Pet
from .validators import clean_str, parse_date, parse_float, parse_int, validate_email, validate_phone

bp_records = Blueprint("records", __name__)

PET_SPECIES = ("dog", "cat", "other")


def _delete_appointments(query) -> None:
    appointment_ids = [row.appointment_id for row in query.with_entities(Appointment.appointment_id).all()]
    if appointment_ids:
        Payment.query.filter(Payment.appointment_id.in_(appointment_ids)).delete(synchronize_session=False)
        Appointment.query.filter(Appointment.appointment_id.in_(appointment_ids)).delete(synchronize_session=False)


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------


@bp_records.get("/customers")
@business_required
def list_customers() -> tuple[dict[str, object], int]:
    """List customers of the current business.
    ---
    tags:
      - Customers
    parameters:
      - name: search
        in: query
        type: string
        required: false
        description: Matches first/last name, email or phone digits
    responses:
      200:
        description: Customers, newest first
      500:
        description: Database error
    """
    search = (request.args.get("search") or "").strip()

    try:
        query = Customer.query.filter(Customer.business_id == g.business_id)
        if search:
            pattern = f"%{search}%"
            filters = [
                Customer.first_name.ilike(pattern),
                Customer.last_name.ilike(pattern),
                Customer.email.ilike(pattern),
            ]
            digits = unformat_phone_number(search)
            if digits:
                filters.append(Customer.phone.like(f"%{digits}%"))
            query = query.filter(or_(*filters))

        customers = query.order_by(Customer.created_at.desc(), Customer.customer_id.desc()).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to list customers", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"customers": [customer.to_dict() for customer in customers]}), 200


@bp_records.get("/customers/lookup")
@business_required
def lookup_customer_by_phone() -> tuple[dict[str, object], int]:
    """Find a customer by phone number, in any formatting.
    ---
    tags:
      - Customers
    parameters:
      - name: phone
        in: query
        type: string
        required: true
    responses:
      200:
        description: Customer with their pets
      400:
        description: Missing or invalid phone
      404:
        description: No customer with that phone
    """
    try:
        phone = validate_phone(request.args.get("phone"), required=True)
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    try:
        customer = (
            Customer.query.options(joinedload(Customer.pets))
            .filter(Customer.business_id == g.business_id, Customer.phone == phone)
            .first()
        )
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to look up customer", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    if customer is None:
        return not_found("Customer")

    return jsonify({"customer": customer.to_dict(), "pets": [pet.to_dict() for pet in customer.pets]}), 200


@bp_records.get("/customers/<int:customer_id>")
@business_required
def get_customer(customer_id: int) -> tuple[dict[str, object], int]:
    customer = tenant_get(Customer, customer_id)
    if customer is None:
        return not_found("Customer")

    payload = customer.to_dict()
    payload["pets"] = [pet.to_dict() for pet in customer.pets]
    return jsonify({"customer": payload}), 200


def _customer_fields(data: dict[str, object], partial: bool) -> dict[str, object]:
    fields: dict[str, object] = {}

    if not partial or "first_name" in data:
        first_name = clean_str(data.get("first_name"))
        if not first_name:
            raise ValueError("first_name is required")
        fields["first_name"] = first_name
    if not partial or "last_name" in data:
        fields["last_name"] = clean_str(data.get("last_name")) or ""
    if not partial or "phone" in data:
        fields["phone"] = validate_phone(data.get("phone"), required=True)
    if not partial or "email" in data:
        fields["email"] = validate_email(data.get("email"))

    for key in ("address", "city", "state", "zip_code", "notes"):
        if not partial or key in data:
            fields[key] = clean_str(data.get(key))

    return fields


@bp_records.post("/customers")
@business_required
def create_customer() -> tuple[dict[str, object], int]:
    """Create a customer.
    ---
    tags:
      - Customers
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            first_name:
              type: string
            last_name:
              type: string
            name:
              type: string
              description: Legacy single name field
            phone:
              type: string
            email:
              type: string
    responses:
      201:
        description: Customer created
      400:
        description: Invalid payload
      500:
        description: Database error
    """
    payload = normalize_customer_payload(request.get_json(silent=True) or {})

    try:
        fields = _customer_fields(payload, partial=False)
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    customer = Customer(business_id=g.business_id, **fields)

    try:
        db.session.add(customer)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create customer", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"customer": customer.to_dict()}), 201


@bp_records.put("/customers/<int:customer_id>")
@business_required
def update_customer(customer_id: int) -> tuple[dict[str, object], int]:
    customer = tenant_get(Customer, customer_id)
    if customer is None:
        return not_found("Customer")

    payload = normalize_customer_payload(request.get_json(silent=True) or {})

    try:
        fields = _customer_fields(payload, partial=True)
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    for key, value in fields.items():
        setattr(customer, key, value)

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update customer", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"customer": customer.to_dict()}), 200


@bp_records.delete("/customers/<int:customer_id>")
@business_required
def delete_customer(customer_id: int) -> tuple[dict[str, object], int]:
    """Delete a customer together with their pets and appointments.
    ---
    tags:
      - Customers
    responses:
      200:
        description: Customer deleted
      404:
        description: Customer not found
    """
    customer = tenant_get(Customer, customer_id)
    if customer is None:
        return not_found("Customer")

    try:
        _delete_appointments(Appointment.query.filter(Appointment.customer_id == customer.customer_id))
        db.session.delete(customer)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete customer", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    current_app.logger.info("Deleted customer %s for business %s", customer_id, g.business_id)
    return jsonify({"message": "Customer deleted"}), 200


# ---------------------------------------------------------------------------
# Pets
# ---------------------------------------------------------------------------


@bp_records.get("/pets")
@business_required
def list_pets() -> tuple[dict[str, object], int]:
    """List pets, optionally for one customer or one species.
    ---
    tags:
      - Pets
    parameters:
      - name: customer_id
        in: query
        type: integer
        required: false
      - name: species
        in: query
        type: string
        enum: [dog, cat, other]
        required: false
    responses:
      200:
        description: Pets, newest first
      400:
        description: Invalid filter
    """
    try:
        customer_id = parse_int(request.args.get("customer_id"), "customer_id")
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    species = (request.args.get("species") or "").strip().lower()
    if species and species not in PET_SPECIES:
        return jsonify({"error": "invalid_payload", "message": f"species must be one of: {', '.join(PET_SPECIES)}"}), 400

    try:
        query = Pet.query.options(joinedload(Pet.customer)).filter(Pet.business_id == g.business_id)
        if customer_id is not None:
            query = query.filter(Pet.customer_id == customer_id)
        if species:
            query = query.filter(Pet.species == species)
        pets = query.order_by(Pet.created_at.desc(), Pet.pet_id.desc()).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to list pets", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"pets": [pet.to_dict() for pet in pets]}), 200


@bp_records.get("/pets/<int:pet_id>")
@business_required
def get_pet(pet_id: int) -> tuple[dict[str, object], int]:
    pet = tenant_get(Pet, pet_id)
    if pet is None:
        return not_found("Pet")
    return jsonify({"pet": pet.to_dict()}), 200


def _pet_fields(data: dict[str, object], partial: bool) -> dict[str, object]:
    fields: dict[str, object] = {}

    if not partial or "customer_id" in data:
        customer_id = parse_int(data.get("customer_id"), "customer_id")
        if customer_id is None:
            raise ValueError("customer_id is required")
        if tenant_get(Customer, customer_id) is None:
            raise LookupError("Customer")
        fields["customer_id"] = customer_id

    if not partial or "name" in data:
        name = clean_str(data.get("name"))
        if not name:
            raise ValueError("name is required")
        fields["name"] = name

    if not partial or "species" in data:
        species = (clean_str(data.get("species")) or "dog").lower()
        if species not in PET_SPECIES:
            raise ValueError(f"species must be one of: {', '.join(PET_SPECIES)}")
        fields["species"] = species

    if "age" in data or not partial:
        fields["age"] = parse_int(data.get("age"), "age", minimum=0)
    if "weight" in data or not partial:
        fields["weight"] = parse_float(data.get("weight"), "weight", minimum=0)
    if data.get("last_grooming_date"):
        fields["last_grooming_date"] = parse_date(data["last_grooming_date"], "last_grooming_date")
    elif "last_grooming_date" in data:
        fields["last_grooming_date"] = None

    for key in ("breed", "color", "notes", "special_instructions", "vaccination_status"):
        if not partial or key in data:
            fields[key] = clean_str(data.get(key))

    return fields


@bp_records.post("/pets")
@business_required
def create_pet() -> tuple[dict[str, object], int]:
    """Create a pet for one of the business's customers.
    ---
    tags:
      - Pets
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required:
            - customer_id
            - name
          properties:
            customer_id:
              type: integer
            client_id:
              type: integer
              description: Legacy alias of customer_id
            name:
              type: string
            species:
              type: string
              enum: [dog, cat, other]
    responses:
      201:
        description: Pet created
      400:
        description: Invalid payload
      404:
        description: Customer not found
    """
    payload = normalize_pet_payload(request.get_json(silent=True) or {})

    try:
        fields = _pet_fields(payload, partial=False)
    except LookupError as exc:
        return not_found(str(exc))
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    pet = Pet(business_id=g.business_id, **fields)

    try:
        db.session.add(pet)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create pet", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"pet": pet.to_dict()}), 201


@bp_records.put("/pets/<int:pet_id>")
@business_required
def update_pet(pet_id: int) -> tuple[dict[str, object], int]:
    pet = tenant_get(Pet, pet_id)
    if pet is None:
        return not_found("Pet")

    payload = normalize_pet_payload(request.get_json(silent=True) or {})

    try:
        fields = _pet_fields(payload, partial=True)
    except LookupError as exc:
        return not_found(str(exc))
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    new_owner = fields.get("customer_id")
    for key, value in fields.items():
        setattr(pet, key, value)

    try:
        if new_owner is not None:
            # Appointments follow the pet to its new owner.
            Appointment.query.filter_by(business_id=g.business_id, pet_id=pet.pet_id).update(
                {"customer_id": new_owner}, synchronize_session=False
            )
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update pet", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"pet": pet.to_dict()}), 200


@bp_records.delete("/pets/<int:pet_id>")
@business_required
def delete_pet(pet_id: int) -> tuple[dict[str, object], int]:
    pet = tenant_get(Pet, pet_id)
    if pet is None:
        return not_found("Pet")

    try:
        _delete_appointments(Appointment.query.filter(Appointment.pet_id == pet.pet_id))
        db.session.delete(pet)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete pet", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"message": "Pet deleted"}), 200
