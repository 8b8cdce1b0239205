"""Bearer tokens and business (tenant) resolution for API requests."""
from __future__ import annotations

from functools import wraps

from flask import current_app, g, jsonify, request
from itsdangerous import BadSignature, URLSafeTimedSerializer

from .extensions import db
from .models import Profile
from .translations import resolve_language, translate

DEMO_PREFIX = "/demo/"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt="auth-token")


def build_token(payload: dict[str, object]) -> str:
    return _serializer().dumps(payload)


def decode_token() -> dict[str, object] | None:
    """Return the payload of the request's bearer token.

    Returns None if the header is missing, or the token is invalid or expired.
    """
    auth_header = request.headers.get("Authorization", "")

    if not auth_header.startswith("Bearer "):
        return None

    token = auth_header[7:]
    try:
        payload = _serializer().loads(token, max_age=current_app.config.get("TOKEN_MAX_AGE", 86400))
    except BadSignature:
        return None
    return payload if isinstance(payload, dict) else None


def get_current_profile() -> Profile | None:
    payload = decode_token()
    if not payload or not payload.get("profile_id"):
        return None
    return db.session.get(Profile, payload["profile_id"])


def is_demo_request() -> bool:
    return request.path.startswith(DEMO_PREFIX)


def resolve_business_id(profile: Profile | None, payload: dict[str, object] | None) -> int | None:
    """Return the business whose data this request may touch.

    Demo routes always use the demo business. A super admin who is
    impersonating a business uses that business. Everyone else uses
    the business on their profile.
    """
    if is_demo_request():
        return current_app.config["DEMO_BUSINESS_ID"]

    if profile is None:
        return None

    impersonating = (payload or {}).get("impersonating_business_id")
    if profile.is_super_admin and impersonating:
        return int(impersonating)

    return profile.business_id


def _unauthorized():
    return (
        jsonify({"error": "unauthorized", "message": translate("errors.unauthorized", resolve_language())}),
        401,
    )


def business_required(view):
    """Resolve ``g.business_id`` for the request or reject it."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        g.profile = None
        g.is_demo = is_demo_request()

        if g.is_demo:
            if request.method != "GET":
                return (
                    jsonify({
                        "error": "demo_read_only",
                        "message": translate("errors.demoReadOnly", resolve_language()),
                    }),
                    403,
                )
            g.business_id = resolve_business_id(None, None)
            return view(*args, **kwargs)

        payload = decode_token()
        profile = get_current_profile()
        if profile is None:
            return _unauthorized()

        business_id = resolve_business_id(profile, payload)
        if business_id is None:
            return jsonify({"error": "forbidden", "message": "no business is associated with this account"}), 403

        g.profile = profile
        g.business_id = business_id
        return view(*args, **kwargs)

    return wrapper


def super_admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        profile = get_current_profile()
        if profile is None:
            return _unauthorized()
        if not profile.is_super_admin:
            return jsonify({"error": "forbidden", "message": "Super admin access required"}), 403

        g.profile = profile
        return view(*args, **kwargs)

    return wrapper


def tenant_get(model, object_id: int):
    """Fetch ``model`` by primary key only if it belongs to ``g.business_id``."""
    instance = db.session.get(model, object_id)
    if instance is None or instance.business_id != g.business_id:
        return None
    return instance


def not_found(resource: str):
    message = translate("errors.notFound", resolve_language(), resource=resource)
    return jsonify({"error": "not_found", "message": message}), 404
