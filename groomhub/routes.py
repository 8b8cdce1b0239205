"""Core HTTP routes: health, authentication, translations and settings."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from flask import Blueprint, Flask, current_app, g, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException
from werkzeug.security import check_password_hash, generate_password_hash

from .auth import build_token, business_required, decode_token, get_current_profile
from .extensions import db
from .formatting import hsl_to_hex, normalize_color, slugify
from .models import AuthAccount, Business, Profile, Setting
from .translations import SUPPORTED_LANGUAGES, resolve_language, translate, translations_for
from .validators import clean_str, validate_email, validate_phone

bp = Blueprint("api", __name__)
settings_bp = Blueprint("settings", __name__)

DEFAULT_SETTINGS: dict[str, str] = {
    "business_name": "Stratum Hub",
    "business_hours": "9:00 AM - 6:00 PM",
    "primary_color": "168 60% 45%",
    "secondary_color": "200 55% 55%",
    "language": "en",
}
COLOR_SETTINGS = ("primary_color", "secondary_color")


@bp.get("/health")
def health_check() -> tuple[dict[str, str], int]:
    """
    Expose a simple uptime check endpoint.
    ---
    tags:
      - Health
    responses:
      200:
        description: Service is healthy and running.
    """
    return jsonify({"status": "ok"}), 200


@bp.get("/db-health")
def database_health() -> tuple[dict[str, str], int]:
    """Check connectivity to the configured database.
    ---
    tags:
      - Health
    responses:
      200:
        description: Database connection is ok.
      500:
        description: Database connection failed.
    """
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        current_app.logger.exception("Database connectivity check failed", exc_info=exc)
        return jsonify({"database": "unavailable"}), 500

    return jsonify({"database": "ok"}), 200


def _unique_slug(name: str) -> str:
    base = slugify(name) or "business"
    slug = base
    suffix = 2
    while Business.query.filter_by(slug=slug).first() is not None:
        slug = f"{base}-{suffix}"
        suffix += 1
    return slug


@bp.post("/auth/register")
def register_business() -> tuple[dict[str, object], int]:
    """Sign up a new grooming business and its owner account.
    ---
    tags:
      - Authentication
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            business_name:
              type: string
            full_name:
              type: string
            email:
              type: string
            password:
              type: string
            phone:
              type: string
          required:
            - business_name
            - email
            - password
    responses:
      201:
        description: Business and owner created, returns access token
      400:
        description: Invalid payload
      409:
        description: Email already registered
      500:
        description: Server error
    """
    payload = request.get_json(silent=True) or {}

    business_name = (payload.get("business_name") or "").strip()
    full_name = clean_str(payload.get("full_name"))
    password = payload.get("password") or ""

    try:
        email = validate_email(payload.get("email"), required=True)
        phone = validate_phone(payload.get("phone"))
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    if not business_name or not password:
        return (
            jsonify({"error": "invalid_payload", "message": "business_name, email, and password are required"}),
            400,
        )
    if len(password) < 8:
        return jsonify({"error": "invalid_payload", "message": "password must be at least 8 characters"}), 400

    if Profile.query.filter_by(email=email).first():
        return jsonify({"error": "conflict", "message": "email address is already in use"}), 409

    try:
        business = Business(
            name=business_name,
            slug=_unique_slug(business_name),
            email=email,
            phone=phone,
            subscription_tier="basic",
            subscription_status="trialing",
            trial_ends_at=datetime.now(timezone.utc) + timedelta(days=current_app.config.get("TRIAL_DAYS", 14)),
        )
        db.session.add(business)
        db.session.flush()

        profile = Profile(email=email, full_name=full_name, business_id=business.business_id)
        db.session.add(profile)
        db.session.flush()

        db.session.add(AuthAccount(profile_id=profile.profile_id, password_hash=generate_password_hash(password)))
        db.session.add(Setting(business_id=business.business_id, key="business_name", value=business_name))
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to register business", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    current_app.logger.info("Registered business %s (%s)", business.business_id, business.slug)
    token = build_token({"profile_id": profile.profile_id})
    return jsonify({"token": token, "profile": profile.to_dict(), "business": business.to_dict()}), 201


@bp.post("/auth/login")
def login() -> tuple[dict[str, object], int]:
    """Authenticate by email/password and return an access token.
    ---
    tags:
      - Authentication
    responses:
      200:
        description: Login successful, returns access token
      400:
        description: Missing email or password
      401:
        description: Invalid credentials
      500:
        description: Server error
    """
    payload = request.get_json(silent=True) or {}

    email = (payload.get("email") or "").strip().lower()
    password = payload.get("password") or ""

    if not email or not password:
        return (
            jsonify({"error": "invalid_payload", "message": "email and password are required"}),
            400,
        )

    record = (
        db.session.query(Profile, AuthAccount)
        .join(AuthAccount, AuthAccount.profile_id == Profile.profile_id)
        .filter(Profile.email == email)
        .first()
    )

    if not record:
        return jsonify({"error": "unauthorized", "message": "invalid email or password"}), 401

    profile, auth_account = record

    if not check_password_hash(auth_account.password_hash, password):
        return jsonify({"error": "unauthorized", "message": "invalid email or password"}), 401

    auth_account.last_login_at = datetime.now(timezone.utc)

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to record login", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    token = build_token({"profile_id": profile.profile_id})
    return (
        jsonify({
            "token": token,
            "profile": profile.to_dict(),
            "business": profile.business.to_dict() if profile.business else None,
        }),
        200,
    )


@bp.get("/auth/me")
def current_user() -> tuple[dict[str, object], int]:
    """Return the authenticated profile and the business it is acting for."""
    profile = get_current_profile()
    if profile is None:
        return jsonify({"error": "unauthorized", "message": "Invalid or missing token"}), 401

    payload = decode_token() or {}
    impersonating_id = payload.get("impersonating_business_id") if profile.is_super_admin else None
    business = db.session.get(Business, impersonating_id) if impersonating_id else profile.business

    return (
        jsonify({
            "profile": profile.to_dict(),
            "business": business.to_dict() if business else None,
            "is_impersonating": bool(impersonating_id),
        }),
        200,
    )


@bp.get("/translations")
def get_translations() -> tuple[dict[str, object], int]:
    language = resolve_language()
    return jsonify({"language": language, "translations": translations_for(language)}), 200


def _load_settings(business_id: int) -> dict[str, str]:
    settings = dict(DEFAULT_SETTINGS)
    for row in Setting.query.filter_by(business_id=business_id).all():
        settings[row.key] = row.value
    return settings


def _settings_payload(settings: dict[str, str]) -> dict[str, object]:
    payload: dict[str, object] = dict(settings)
    for key in COLOR_SETTINGS:
        payload[f"{key}_hex"] = hsl_to_hex(settings[key])
    return payload


@settings_bp.get("/settings")
@business_required
def get_settings() -> tuple[dict[str, object], int]:
    """Business personalization settings merged over the defaults.
    ---
    tags:
      - Settings
    responses:
      200:
        description: Current settings including hex versions of the theme colors
    """
    try:
        settings = _load_settings(g.business_id)
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to load settings", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"settings": _settings_payload(settings)}), 200


@settings_bp.put("/settings")
@business_required
def update_settings() -> tuple[dict[str, object], int]:
    """Upsert one or more personalization settings.
    ---
    tags:
      - Settings
    responses:
      200:
        description: Settings saved
      400:
        description: Unknown key or invalid value
      500:
        description: Database error
    """
    payload = request.get_json(silent=True) or {}
    if not payload:
        return jsonify({"error": "invalid_payload", "message": "no settings provided"}), 400

    unknown = sorted(set(payload) - set(DEFAULT_SETTINGS))
    if unknown:
        return jsonify({"error": "invalid_payload", "message": f"unknown settings: {', '.join(unknown)}"}), 400

    updates: dict[str, str] = {}
    try:
        for key, raw in payload.items():
            value = str(raw).strip() if raw is not None else ""
            if key in COLOR_SETTINGS:
                value = normalize_color(value)
            elif key == "language":
                value = value.lower()
                if value not in SUPPORTED_LANGUAGES:
                    raise ValueError(f"language must be one of: {', '.join(SUPPORTED_LANGUAGES)}")
            elif not value:
                raise ValueError(f"{key} must not be empty")
            updates[key] = value
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    try:
        existing = {
            row.key: row
            for row in Setting.query.filter(
                Setting.business_id == g.business_id, Setting.key.in_(list(updates))
            ).all()
        }
        for key, value in updates.items():
            if key in existing:
                existing[key].value = value
            else:
                db.session.add(Setting(business_id=g.business_id, key=key, value=value))
        db.session.commit()
        settings = _load_settings(g.business_id)
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to save settings", exc_info=exc)
        return (
            jsonify({
                "error": "database_error",
                "message": translate("personalization.settingsError", resolve_language(g.business_id)),
            }),
            500,
        )

    return (
        jsonify({
            "settings": _settings_payload(settings),
            "message": translate("personalization.settingsSaved", resolve_language(g.business_id)),
        }),
        200,
    )


def _json_error(exc: HTTPException):
    return jsonify({"error": (exc.name or "error").lower().replace(" ", "_"), "message": exc.description}), exc.code


def register_routes(app: Flask) -> None:
    from .routes_admin import bp_admin
    from .routes_appointments import bp_appointments
    from .routes_booking import bp_booking
    from .routes_catalog import bp_catalog
    from .routes_records import bp_records
    from .routes_reports import bp_reports
    from .routes_staff import bp_staff

    app.register_blueprint(bp)
    app.register_blueprint(bp_admin)
    app.register_blueprint(bp_booking)

    # Tenant-scoped areas are also served read-only for the demo business.
    for blueprint in (settings_bp, bp_records, bp_catalog, bp_appointments, bp_staff, bp_reports):
        app.register_blueprint(blueprint)
        app.register_blueprint(blueprint, url_prefix="/demo", name=f"demo_{blueprint.name}")

    app.register_error_handler(HTTPException, _json_error)
