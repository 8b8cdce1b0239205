"""Database models for the GroomHub backend."""
from __future__ import annotations

from datetime import datetime, timezone

from .extensions import db
from .formatting import cents_to_dollars, format_phone_number


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def _iso(value) -> str | None:
    return value.isoformat() if value else None


class Business(db.Model):
    """A grooming business (tenant)."""

    __tablename__ = "businesses"

    business_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    slug = db.Column(db.String(160), unique=True, nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(30))
    address = db.Column(db.String(255))
    city = db.Column(db.String(100))
    state = db.Column(db.String(100))
    zip_code = db.Column(db.String(20))
    website = db.Column(db.String(255))
    logo_url = db.Column(db.String(500))
    subscription_tier = db.Column(
        db.Enum(
            "basic",
            "pro",
            "enterprise",
            name="subscription_tier",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="basic",
    )
    subscription_status = db.Column(
        db.Enum(
            "active",
            "canceled",
            "past_due",
            "trialing",
            name="subscription_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="trialing",
    )
    stripe_customer_id = db.Column(db.String(255))
    trial_ends_at = db.Column(db.DateTime)
    onboarding_completed = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    profiles = db.relationship("Profile", back_populates="business", lazy="dynamic")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.business_id,
            "name": self.name,
            "slug": self.slug,
            "email": self.email,
            "phone": self.phone,
            "phone_display": format_phone_number(self.phone or ""),
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "website": self.website,
            "logo_url": self.logo_url,
            "subscription_tier": self.subscription_tier,
            "subscription_status": self.subscription_status,
            "trial_ends_at": _iso(self.trial_ends_at),
            "onboarding_completed": bool(self.onboarding_completed),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Profile(db.Model):
    """A login identity: business owner/staff or platform super admin."""

    __tablename__ = "profiles"

    profile_id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    full_name = db.Column(db.String(150))
    is_super_admin = db.Column(db.Boolean, nullable=False, default=False)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.business_id"), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    business = db.relationship("Business", back_populates="profiles")
    auth_account = db.relationship("AuthAccount", back_populates="profile", uselist=False)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.profile_id,
            "email": self.email,
            "full_name": self.full_name,
            "is_super_admin": bool(self.is_super_admin),
            "business_id": self.business_id,
        }


class AuthAccount(db.Model):
    __tablename__ = "auth_accounts"

    profile_id = db.Column(db.Integer, db.ForeignKey("profiles.profile_id"), primary_key=True)
    password_hash = db.Column(db.String(255), nullable=False)
    last_login_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    profile = db.relationship("Profile", back_populates="auth_account")


class Customer(db.Model):
    """A pet owner."""

    __tablename__ = "customers"

    customer_id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.business_id"), nullable=False, index=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False, default="")
    email = db.Column(db.String(255))
    phone = db.Column(db.String(30), nullable=False)  # digits only
    address = db.Column(db.String(255))
    city = db.Column(db.String(100))
    state = db.Column(db.String(100))
    zip_code = db.Column(db.String(20))
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    pets = db.relationship("Pet", back_populates="customer", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.customer_id,
            "business_id": self.business_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "phone_display": format_phone_number(self.phone or ""),
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "notes": self.notes,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Pet(db.Model):
    __tablename__ = "pets"

    pet_id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.business_id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.customer_id"), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    species = db.Column(
        db.Enum(
            "dog",
            "cat",
            "other",
            name="pet_species",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="dog",
    )
    breed = db.Column(db.String(100))
    age = db.Column(db.Integer)
    weight = db.Column(db.Float)
    color = db.Column(db.String(50))
    notes = db.Column(db.Text)
    special_instructions = db.Column(db.Text)
    vaccination_status = db.Column(db.String(100))
    last_grooming_date = db.Column(db.Date)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    customer = db.relationship("Customer", back_populates="pets")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.pet_id,
            "business_id": self.business_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.full_name if self.customer else None,
            "name": self.name,
            "species": self.species,
            "breed": self.breed,
            "age": self.age,
            "weight": self.weight,
            "color": self.color,
            "notes": self.notes,
            "special_instructions": self.special_instructions,
            "vaccination_status": self.vaccination_status,
            "last_grooming_date": _iso(self.last_grooming_date),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Service(db.Model):
    """Grooming services offered by a business."""

    __tablename__ = "services"

    service_id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.business_id"), nullable=False, index=True)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    price_cents = db.Column(db.Integer, nullable=False)
    duration_minutes = db.Column(db.Integer, nullable=False, default=60)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.service_id,
            "business_id": self.business_id,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "price": cents_to_dollars(self.price_cents),
            "duration_minutes": self.duration_minutes,
            "is_active": bool(self.is_active),
            "created_at": _iso(self.created_at),
        }


class Appointment(db.Model):
    """A grooming appointment."""

    __tablename__ = "appointments"

    appointment_id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.business_id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.customer_id"), nullable=False)
    pet_id = db.Column(db.Integer, db.ForeignKey("pets.pet_id"), nullable=False)
    service_id = db.Column(db.Integer, db.ForeignKey("services.service_id"), nullable=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.employee_id"), nullable=True)
    appointment_date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    status = db.Column(
        db.Enum(
            "scheduled",
            "confirmed",
            "in_progress",
            "completed",
            "canceled",
            "no_show",
            name="appointment_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="scheduled",
    )
    notes = db.Column(db.Text)
    service_summary = db.Column(db.String(500))
    total_price_cents = db.Column(db.Integer)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    customer = db.relationship("Customer")
    pet = db.relationship("Pet")
    service = db.relationship("Service")
    employee = db.relationship("Employee")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.appointment_id,
            "business_id": self.business_id,
            "customer_id": self.customer_id,
            "customer": {
                "id": self.customer.customer_id,
                "name": self.customer.full_name,
                "phone_display": format_phone_number(self.customer.phone or ""),
            } if self.customer else None,
            "pet_id": self.pet_id,
            "pet": {
                "id": self.pet.pet_id,
                "name": self.pet.name,
                "species": self.pet.species,
                "breed": self.pet.breed,
            } if self.pet else None,
            "service_id": self.service_id,
            "service": {
                "id": self.service.service_id,
                "name": self.service.name,
                "price_cents": self.service.price_cents,
                "duration_minutes": self.service.duration_minutes,
            } if self.service else None,
            "service_summary": self.service_summary,
            "employee_id": self.employee_id,
            "appointment_date": _iso(self.appointment_date),
            "start_time": self.start_time.strftime("%H:%M") if self.start_time else None,
            "end_time": self.end_time.strftime("%H:%M") if self.end_time else None,
            "status": self.status,
            "notes": self.notes,
            "total_price_cents": self.total_price_cents,
            "total_price": cents_to_dollars(self.total_price_cents) if self.total_price_cents is not None else None,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Payment(db.Model):
    """Payments collected at checkout."""

    __tablename__ = "payments"

    payment_id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.business_id"), nullable=False, index=True)
    appointment_id = db.Column(db.Integer, db.ForeignKey("appointments.appointment_id"), nullable=False)
    method = db.Column(
        db.Enum(
            "credit",
            "cash",
            "athmovil",
            name="payment_method",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
    )
    amount_cents = db.Column(db.Integer, nullable=False)
    tip_cents = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(50), nullable=False, default="pending")  # pending, completed, failed
    # Stripe payment intent id for card payments
    gateway_payment_id = db.Column(db.String(255), nullable=True, unique=True)
    card_last4 = db.Column(db.String(4))
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    appointment = db.relationship("Appointment")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.payment_id,
            "appointment_id": self.appointment_id,
            "method": self.method,
            "amount_cents": self.amount_cents,
            "amount": cents_to_dollars(self.amount_cents),
            "tip_cents": self.tip_cents,
            "status": self.status,
            "gateway_payment_id": self.gateway_payment_id,
            "card_last4": self.card_last4,
            "created_at": _iso(self.created_at),
        }


class Employee(db.Model):
    __tablename__ = "employees"
    __table_args__ = (db.UniqueConstraint("business_id", "pin", name="uq_employee_business_pin"),)

    employee_id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.business_id"), nullable=False, index=True)
    name = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(30), nullable=False, default="")
    pin = db.Column(db.String(6), nullable=False)
    hourly_rate_cents = db.Column(db.Integer, nullable=False, default=1500)
    role = db.Column(db.String(50), nullable=False, default="groomer")
    status = db.Column(
        db.Enum(
            "active",
            "inactive",
            name="employee_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="active",
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    time_entries = db.relationship("TimeEntry", back_populates="employee", cascade="all, delete-orphan")

    def to_dict(self, include_pin: bool = False) -> dict[str, object]:
        payload = {
            "id": self.employee_id,
            "business_id": self.business_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "phone_display": format_phone_number(self.phone or ""),
            "hourly_rate_cents": self.hourly_rate_cents,
            "hourly_rate": cents_to_dollars(self.hourly_rate_cents),
            "role": self.role,
            "status": self.status,
            "created_at": _iso(self.created_at),
        }
        if include_pin:
            payload["pin"] = self.pin
        return payload


class TimeEntry(db.Model):
    """Clock-in/clock-out row; times are business-local wall clock."""

    __tablename__ = "time_entries"

    entry_id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.business_id"), nullable=False, index=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.employee_id"), nullable=False)
    clock_in = db.Column(db.DateTime, nullable=False)
    clock_out = db.Column(db.DateTime)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    employee = db.relationship("Employee", back_populates="time_entries")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.entry_id,
            "employee_id": self.employee_id,
            "clock_in": _iso(self.clock_in),
            "clock_out": _iso(self.clock_out),
            "notes": self.notes,
        }


class Product(db.Model):
    """Retail/inventory item."""

    __tablename__ = "products"
    __table_args__ = (db.UniqueConstraint("business_id", "sku", name="uq_product_business_sku"),)

    product_id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.business_id"), nullable=False, index=True)
    name = db.Column(db.String(150), nullable=False)
    sku = db.Column(db.String(100), nullable=False)
    barcode = db.Column(db.String(100), index=True)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_cents = db.Column(db.Integer)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=False, default=0)
    supplier = db.Column(db.String(150))
    category = db.Column(db.String(100))
    description = db.Column(db.Text)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.reorder_level

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.product_id,
            "business_id": self.business_id,
            "name": self.name,
            "sku": self.sku,
            "barcode": self.barcode,
            "price_cents": self.price_cents,
            "price": cents_to_dollars(self.price_cents),
            "cost_cents": self.cost_cents,
            "cost": cents_to_dollars(self.cost_cents) if self.cost_cents is not None else None,
            "quantity": self.quantity,
            "reorder_level": self.reorder_level,
            "is_low_stock": self.is_low_stock,
            "supplier": self.supplier,
            "category": self.category,
            "description": self.description,
            "notes": self.notes,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Setting(db.Model):
    """Per-business key/value personalization setting."""

    __tablename__ = "settings"
    __table_args__ = (db.UniqueConstraint("business_id", "key", name="uq_setting_business_key"),)

    setting_id = db.Column(db.Integer, primary_key=True)
    business_id = db.Column(db.Integer, db.ForeignKey("businesses.business_id"), nullable=False, index=True)
    key = db.Column(db.String(100), nullable=False)
    value = db.Column(db.String(500), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )
