"""Platform administration for super admins."""
from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError

from .auth import build_token, not_found, super_admin_required
from .extensions import db
from .models import Appointment, Business, Customer, Employee, Pet, Profile, Service

bp_admin = Blueprint("admin", __name__, url_prefix="/admin")

SUBSCRIPTION_TIERS = ("basic", "pro", "enterprise")
SUBSCRIPTION_STATUSES = ("active", "canceled", "past_due", "trialing")


def _record_counts(business_id: int) -> dict[str, int]:
    return {
        "customers": Customer.query.filter_by(business_id=business_id).count(),
        "pets": Pet.query.filter_by(business_id=business_id).count(),
        "appointments": Appointment.query.filter_by(business_id=business_id).count(),
        "services": Service.query.filter_by(business_id=business_id).count(),
        "employees": Employee.query.filter_by(business_id=business_id).count(),
    }


@bp_admin.get("/businesses")
@super_admin_required
def list_businesses() -> tuple[dict[str, object], int]:
    """List all businesses on the platform with pagination.
    ---
    tags:
      - Admin
    parameters:
      - name: search
        in: query
        type: string
        required: false
      - name: status
        in: query
        type: string
        enum: [active, canceled, past_due, trialing]
        required: false
      - name: page
        in: query
        type: integer
        default: 1
      - name: limit
        in: query
        type: integer
        default: 20
        maximum: 100
    responses:
      200:
        description: Businesses with pagination
      400:
        description: Invalid parameters
      401:
        description: Unauthorized
      403:
        description: Not a super admin
    """
    try:
        page = max(1, int(request.args.get("page", 1)))
        limit = min(100, max(1, int(request.args.get("limit", 20))))
    except ValueError:
        return jsonify({"error": "invalid_payload", "message": "page and limit must be integers"}), 400

    search = (request.args.get("search") or "").strip()
    status = (request.args.get("status") or "").strip().lower()
    if status and status not in SUBSCRIPTION_STATUSES:
        return jsonify({"error": "invalid_payload", "message": f"Unknown status: {status}"}), 400

    try:
        query = Business.query
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(Business.name.ilike(pattern), Business.email.ilike(pattern), Business.slug.ilike(pattern))
            )
        if status:
            query = query.filter(Business.subscription_status == status)

        total = query.count()
        businesses = (
            query.order_by(Business.created_at.desc(), Business.business_id.desc())
            .limit(limit)
            .offset((page - 1) * limit)
            .all()
        )
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to list businesses", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return (
        jsonify({
            "businesses": [business.to_dict() for business in businesses],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": (total + limit - 1) // limit,
            },
        }),
        200,
    )


@bp_admin.get("/businesses/<int:business_id>")
@super_admin_required
def get_business(business_id: int) -> tuple[dict[str, object], int]:
    business = db.session.get(Business, business_id)
    if business is None:
        return not_found("Business")

    try:
        counts = _record_counts(business_id)
        owners = [profile.to_dict() for profile in business.profiles]
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to load business detail", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"business": business.to_dict(), "counts": counts, "profiles": owners}), 200


@bp_admin.put("/businesses/<int:business_id>/subscription")
@super_admin_required
def update_subscription(business_id: int) -> tuple[dict[str, object], int]:
    """Change a business's subscription tier and/or status.
    ---
    tags:
      - Admin
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            subscription_tier:
              type: string
              enum: [basic, pro, enterprise]
            subscription_status:
              type: string
              enum: [active, canceled, past_due, trialing]
    responses:
      200:
        description: Subscription updated
      400:
        description: Invalid tier or status
      404:
        description: Business not found
    """
    business = db.session.get(Business, business_id)
    if business is None:
        return not_found("Business")

    payload = request.get_json(silent=True) or {}
    tier = payload.get("subscription_tier")
    status = payload.get("subscription_status")

    if tier is None and status is None:
        return jsonify({"error": "invalid_payload", "message": "subscription_tier or subscription_status required"}), 400
    if tier is not None and tier not in SUBSCRIPTION_TIERS:
        return jsonify({"error": "invalid_payload", "message": f"subscription_tier must be one of: {', '.join(SUBSCRIPTION_TIERS)}"}), 400
    if status is not None and status not in SUBSCRIPTION_STATUSES:
        return jsonify({"error": "invalid_payload", "message": f"subscription_status must be one of: {', '.join(SUBSCRIPTION_STATUSES)}"}), 400

    if tier is not None:
        business.subscription_tier = tier
    if status is not None:
        business.subscription_status = status

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update subscription", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    current_app.logger.info(
        "Admin %s set business %s subscription to %s/%s",
        g.profile.profile_id,
        business.business_id,
        business.subscription_tier,
        business.subscription_status,
    )
    return jsonify({"business": business.to_dict()}), 200


@bp_admin.post("/businesses/<int:business_id>/impersonate")
@super_admin_required
def impersonate_business(business_id: int) -> tuple[dict[str, object], int]:
    """Issue a token that acts on behalf of a business.
    ---
    tags:
      - Admin
    responses:
      200:
        description: Impersonation token
      404:
        description: Business not found
    """
    business = db.session.get(Business, business_id)
    if business is None:
        return not_found("Business")

    current_app.logger.warning("Admin %s is impersonating business %s", g.profile.profile_id, business_id)
    token = build_token({"profile_id": g.profile.profile_id, "impersonating_business_id": business.business_id})
    return jsonify({"token": token, "business": business.to_dict()}), 200


@bp_admin.get("/stats")
@super_admin_required
def platform_stats() -> tuple[dict[str, object], int]:
    try:
        by_status = dict(
            db.session.query(Business.subscription_status, func.count(Business.business_id))
            .group_by(Business.subscription_status)
            .all()
        )
        by_tier = dict(
            db.session.query(Business.subscription_tier, func.count(Business.business_id))
            .group_by(Business.subscription_tier)
            .all()
        )
        stats = {
            "businesses": Business.query.count(),
            "profiles": Profile.query.count(),
            "customers": Customer.query.count(),
            "pets": Pet.query.count(),
            "appointments": Appointment.query.count(),
            "by_status": {status: by_status.get(status, 0) for status in SUBSCRIPTION_STATUSES},
            "by_tier": {tier: by_tier.get(tier, 0) for tier in SUBSCRIPTION_TIERS},
        }
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to load platform stats", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"stats": stats}), 200
