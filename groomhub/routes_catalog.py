"""Service catalog and retail inventory."""
from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from .auth import business_required, not_found, tenant_get
from .extensions import db
from .models import Appointment, Product, Service
from .validators import clean_str, parse_bool, parse_int, parse_money

bp_catalog = Blueprint("catalog", __name__)


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


@bp_catalog.get("/services")
@business_required
def list_services() -> tuple[dict[str, object], int]:
    """List the business's grooming services.
    ---
    tags:
      - Services
    parameters:
      - name: active_only
        in: query
        type: boolean
        default: false
    responses:
      200:
        description: Services ordered by name
      500:
        description: Database error
    """
    active_only = parse_bool(request.args.get("active_only"))

    try:
        query = Service.query.filter(Service.business_id == g.business_id)
        if active_only:
            query = query.filter(Service.is_active.is_(True))
        services = query.order_by(Service.name.asc()).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to list services", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"services": [service.to_dict() for service in services]}), 200


@bp_catalog.get("/services/<int:service_id>")
@business_required
def get_service(service_id: int) -> tuple[dict[str, object], int]:
    service = tenant_get(Service, service_id)
    if service is None:
        return not_found("Service")
    return jsonify({"service": service.to_dict()}), 200


def _service_fields(data: dict[str, object], partial: bool) -> dict[str, object]:
    fields: dict[str, object] = {}

    if not partial or "name" in data:
        name = clean_str(data.get("name"))
        if not name:
            raise ValueError("name is required")
        fields["name"] = name
    if not partial or "price" in data:
        price_cents = parse_money(data.get("price"), "price")
        if price_cents is None:
            raise ValueError("price is required")
        fields["price_cents"] = price_cents
    if not partial or "duration_minutes" in data:
        fields["duration_minutes"] = parse_int(data.get("duration_minutes"), "duration_minutes", minimum=1, default=60)
    if not partial or "description" in data:
        fields["description"] = clean_str(data.get("description"))
    if "is_active" in data:
        fields["is_active"] = parse_bool(data.get("is_active"), default=True)

    return fields


@bp_catalog.post("/services")
@business_required
def create_service() -> tuple[dict[str, object], int]:
    """Create a grooming service.
    ---
    tags:
      - Services
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required:
            - name
            - price
          properties:
            name:
              type: string
            description:
              type: string
            price:
              type: number
            duration_minutes:
              type: integer
              default: 60
            is_active:
              type: boolean
    responses:
      201:
        description: Service created
      400:
        description: Invalid payload
      500:
        description: Database error
    """
    payload = request.get_json(silent=True) or {}

    try:
        fields = _service_fields(payload, partial=False)
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    service = Service(business_id=g.business_id, **fields)

    try:
        db.session.add(service)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create service", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"service": service.to_dict()}), 201


@bp_catalog.put("/services/<int:service_id>")
@business_required
def update_service(service_id: int) -> tuple[dict[str, object], int]:
    """Update a service's details.
    ---
    tags:
      - Services
    responses:
      200:
        description: Service updated
      400:
        description: Invalid payload
      404:
        description: Service not found
    """
    service = tenant_get(Service, service_id)
    if service is None:
        return not_found("Service")

    try:
        fields = _service_fields(request.get_json(silent=True) or {}, partial=True)
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    for key, value in fields.items():
        setattr(service, key, value)

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update service", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"service": service.to_dict()}), 200


@bp_catalog.delete("/services/<int:service_id>")
@business_required
def delete_service(service_id: int) -> tuple[dict[str, object], int]:
    service = tenant_get(Service, service_id)
    if service is None:
        return not_found("Service")

    try:
        # Past appointments keep their service_summary text.
        Appointment.query.filter(Appointment.service_id == service.service_id).update(
            {"service_id": None}, synchronize_session=False
        )
        db.session.delete(service)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete service", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"message": "Service deleted"}), 200


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------


@bp_catalog.get("/products")
@business_required
def list_products() -> tuple[dict[str, object], int]:
    """List inventory products.
    ---
    tags:
      - Inventory
    parameters:
      - name: search
        in: query
        type: string
        required: false
        description: Matches name, SKU, barcode, category or supplier
    responses:
      200:
        description: Products ordered by name
    """
    search = (request.args.get("search") or "").strip()

    try:
        query = Product.query.filter(Product.business_id == g.business_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Product.name.ilike(pattern),
                    Product.sku.ilike(pattern),
                    Product.barcode.ilike(pattern),
                    Product.category.ilike(pattern),
                    Product.supplier.ilike(pattern),
                )
            )
        products = query.order_by(Product.name.asc()).all()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to list products", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"products": [product.to_dict() for product in products]}), 200


@bp_catalog.get("/products/low-stock")
@business_required
def list_low_stock_products() -> tuple[dict[str, object], int]:
    try:
        products = (
            Product.query.filter(
                Product.business_id == g.business_id,
                Product.quantity <= Product.reorder_level,
            )
            .order_by(Product.quantity.asc(), Product.name.asc())
            .all()
        )
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to list low stock products", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"products": [product.to_dict() for product in products]}), 200


@bp_catalog.get("/products/barcode/<string:code>")
@business_required
def get_product_by_barcode(code: str) -> tuple[dict[str, object], int]:
    """Look up a product by a scanned barcode.
    ---
    tags:
      - Inventory
    parameters:
      - name: code
        in: path
        type: string
        required: true
    responses:
      200:
        description: Matching product
      404:
        description: No product with that barcode
    """
    product = Product.query.filter_by(business_id=g.business_id, barcode=code.strip()).first()
    if product is None:
        return not_found("Product")
    return jsonify({"product": product.to_dict()}), 200


@bp_catalog.get("/products/<int:product_id>")
@business_required
def get_product(product_id: int) -> tuple[dict[str, object], int]:
    product = tenant_get(Product, product_id)
    if product is None:
        return not_found("Product")
    return jsonify({"product": product.to_dict()}), 200


def _product_fields(data: dict[str, object], partial: bool) -> dict[str, object]:
    fields: dict[str, object] = {}

    for key in ("name", "sku"):
        if not partial or key in data:
            value = clean_str(data.get(key))
            if not value:
                raise ValueError(f"{key} is required")
            fields[key] = value

    if not partial or "price" in data:
        fields["price_cents"] = parse_money(data.get("price"), "price", default=0)
    if not partial or "cost" in data:
        fields["cost_cents"] = parse_money(data.get("cost"), "cost")
    if not partial or "quantity" in data:
        fields["quantity"] = parse_int(data.get("quantity"), "quantity", minimum=0, default=0)
    if not partial or "reorder_level" in data:
        fields["reorder_level"] = parse_int(data.get("reorder_level"), "reorder_level", minimum=0, default=0)

    for key in ("barcode", "supplier", "category", "description", "notes"):
        if not partial or key in data:
            fields[key] = clean_str(data.get(key))

    return fields


def _sku_taken(sku: str, exclude_id: int | None = None) -> bool:
    query = Product.query.filter(Product.business_id == g.business_id, Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.product_id != exclude_id)
    return query.first() is not None


@bp_catalog.post("/products")
@business_required
def create_product() -> tuple[dict[str, object], int]:
    """Add a product to inventory.
    ---
    tags:
      - Inventory
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required:
            - name
            - sku
          properties:
            name:
              type: string
            sku:
              type: string
            barcode:
              type: string
            price:
              type: number
            cost:
              type: number
            quantity:
              type: integer
            reorder_level:
              type: integer
    responses:
      201:
        description: Product created
      400:
        description: Invalid payload
      409:
        description: SKU already used in this business
    """
    payload = request.get_json(silent=True) or {}

    try:
        fields = _product_fields(payload, partial=False)
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    if _sku_taken(fields["sku"]):
        return jsonify({"error": "conflict", "message": f"SKU {fields['sku']} already exists"}), 409

    product = Product(business_id=g.business_id, **fields)

    try:
        db.session.add(product)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to create product", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"product": product.to_dict()}), 201


@bp_catalog.put("/products/<int:product_id>")
@business_required
def update_product(product_id: int) -> tuple[dict[str, object], int]:
    product = tenant_get(Product, product_id)
    if product is None:
        return not_found("Product")

    try:
        fields = _product_fields(request.get_json(silent=True) or {}, partial=True)
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400

    if "sku" in fields and _sku_taken(fields["sku"], exclude_id=product.product_id):
        return jsonify({"error": "conflict", "message": f"SKU {fields['sku']} already exists"}), 409

    for key, value in fields.items():
        setattr(product, key, value)

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update product", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"product": product.to_dict()}), 200


@bp_catalog.post("/products/<int:product_id>/adjust")
@business_required
def adjust_product_quantity(product_id: int) -> tuple[dict[str, object], int]:
    """Apply a stock delta (received or sold units).
    ---
    tags:
      - Inventory
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          required:
            - delta
          properties:
            delta:
              type: integer
              description: Positive to add stock, negative to remove
    responses:
      200:
        description: Updated product
      400:
        description: Missing delta or quantity would go negative
      404:
        description: Product not found
    """
    product = tenant_get(Product, product_id)
    if product is None:
        return not_found("Product")

    payload = request.get_json(silent=True) or {}
    try:
        delta = parse_int(payload.get("delta"), "delta")
    except ValueError as exc:
        return jsonify({"error": "invalid_payload", "message": str(exc)}), 400
    if delta is None:
        return jsonify({"error": "invalid_payload", "message": "delta is required"}), 400

    new_quantity = product.quantity + delta
    if new_quantity < 0:
        return (
            jsonify({
                "error": "invalid_payload",
                "message": f"Only {product.quantity} units of {product.name} in stock",
            }),
            400,
        )

    product.quantity = new_quantity

    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to adjust product quantity", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    if product.is_low_stock:
        current_app.logger.info("Product %s is low on stock (%s left)", product.product_id, product.quantity)

    return jsonify({"product": product.to_dict()}), 200


@bp_catalog.delete("/products/<int:product_id>")
@business_required
def delete_product(product_id: int) -> tuple[dict[str, object], int]:
    product = tenant_get(Product, product_id)
    if product is None:
        return not_found("Product")

    try:
        db.session.delete(product)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete product", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"message": "Product deleted"}), 200
