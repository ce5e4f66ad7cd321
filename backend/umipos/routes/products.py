# Overview: Flask API routes for products and stock; parses input and returns JSON responses.

# backend/umipos/routes/products.py
"""
Product and stock routes with multi-tenant support.

MULTI-TENANT: Every operation is scoped to the caller's tenant (g.tenant_id,
set while resolving the Bearer session).

SECURITY:
- Read operations require VIEW_INVENTORY
- Catalog writes require MANAGE_PRODUCTS
- Stock adjustments require VIEW_INVENTORY and ADJUST_STOCK
- Stock history requires VIEW_STOCK_HISTORY
"""
from flask import Blueprint, g, request

from ..decorators import require_permission
from ..models import Product
from ..models.inventory import STOCK_ADJUSTMENT, STOCK_TRANSACTION_TYPES
from ..services import inventory_service, products_service
from ..services.inventory_service import StockUpdateResult
from ..validation import (
    ConflictError,
    ModelValidationPolicy,
    ValidationError,
    coerce_int,
    enforce_rules_product,
    enforce_rules_stock_level,
    parse_date_range,
    validate_payload,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=set(products_service.PRODUCT_MUTABLE_FIELDS),
    required_on_create={"name", "price_cents"},
)

MAX_REASON_LENGTH = 200

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_permission("VIEW_INVENTORY")
def list_products():
    """
    List active products with optional pagination.

    Query params:
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    page = request.args.get("page", type=int)
    per_page = request.args.get("per_page", type=int)
    return products_service.list_products(g.tenant_id, page=page, per_page=per_page)


@products_bp.get("/<int:product_id>")
@require_permission("VIEW_INVENTORY")
def get_product_route(product_id: int):
    product = products_service.get_product(g.tenant_id, product_id)
    if product is None:
        return {"error": "Product not found"}, 404
    return product.to_dict()


@products_bp.get("/barcode/<barcode>")
@require_permission("VIEW_INVENTORY")
def get_product_by_barcode_route(barcode: str):
    product = products_service.get_product_by_barcode(g.tenant_id, barcode)
    if product is None:
        return {"error": "Product not found"}, 404
    return product.to_dict()


@products_bp.get("/search")
@require_permission("VIEW_INVENTORY")
def search_products_route():
    """
    Query params: q (at least 2 characters), limit (optional, default 20, max 50).
    """
    try:
        products = products_service.search_products(
            g.tenant_id,
            request.args.get("q", ""),
            limit=request.args.get("limit", 20, type=int),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.post("")
@require_permission("MANAGE_PRODUCTS")
def create_product_route():
    """
    Create a product. An optional "stock" field sets the opening quantity,
    recorded as a PURCHASE stock transaction.
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return {"error": "Invalid JSON payload"}, 400

    payload = dict(payload)
    raw_stock = payload.pop("stock", 0)

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
        initial_stock = coerce_int("stock", raw_stock)
        enforce_rules_stock_level(initial_stock)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = products_service.create_product(
            tenant_id=g.tenant_id,
            patch=patch,
            initial_stock=initial_stock,
        )
    except ConflictError as e:
        return {"error": str(e)}, 409

    return created.to_dict(), 201


@products_bp.put("/<int:product_id>")
@require_permission("MANAGE_PRODUCTS")
def update_product_route(product_id: int):
    """Partial update. Stock cannot be changed here; use POST /<id>/stock."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = products_service.update_product(
            tenant_id=g.tenant_id,
            product_id=product_id,
            patch=patch,
        )
    except ConflictError as e:
        return {"error": str(e)}, 409

    if updated is None:
        return {"error": "Product not found"}, 404
    return updated.to_dict()


@products_bp.delete("/<int:product_id>")
@require_permission("MANAGE_PRODUCTS")
def delete_product_route(product_id: int):
    deleted = products_service.delete_product(tenant_id=g.tenant_id, product_id=product_id)
    if not deleted:
        return {"error": "Product not found"}, 404
    return {"ok": True}, 200


@products_bp.post("/<int:product_id>/stock")
@require_permission("VIEW_INVENTORY", "ADJUST_STOCK")
def update_stock_route(product_id: int):
    """
    Set a product's stock level and record the audit transaction.

    Body: {"new_stock": int, "reason": str, "transaction_type": optional}

    Returns:
    - 200 with the updated product
    - 400 invalid input
    - 404 product not found (nothing written)
    - 500 database failure (nothing written)
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return {"error": "Invalid JSON payload"}, 400

    if "new_stock" not in payload:
        return {"error": "new_stock is required"}, 400

    reason = payload.get("reason")
    if reason is not None:
        reason = str(reason).strip()
        if len(reason) > MAX_REASON_LENGTH:
            return {"error": f"reason exceeds max length {MAX_REASON_LENGTH}"}, 400

    transaction_type = payload.get("transaction_type") or STOCK_ADJUSTMENT
    if transaction_type not in STOCK_TRANSACTION_TYPES:
        return {"error": f"transaction_type must be one of: {', '.join(STOCK_TRANSACTION_TYPES)}"}, 400

    try:
        new_stock = coerce_int("new_stock", payload["new_stock"])
        enforce_rules_stock_level(new_stock)
    except ValidationError as e:
        return {"error": str(e)}, 400

    result = inventory_service.apply_stock_update(
        product_id,
        new_stock,
        reason,
        transaction_type=transaction_type,
        tenant_id=g.tenant_id,
    )

    if result is StockUpdateResult.NOT_FOUND:
        return {"error": "Product not found"}, 404
    if result is StockUpdateResult.FAILED:
        return {"error": "Stock update failed"}, 500

    product = products_service.get_product(g.tenant_id, product_id)
    return {"product": product.to_dict(), "result": result.value}


@products_bp.get("/low-stock")
@require_permission("LOW_STOCK_ALERT")
def low_stock_route():
    products = products_service.list_low_stock(g.tenant_id)
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/<int:product_id>/transactions")
@require_permission("VIEW_STOCK_HISTORY")
def product_transactions_route(product_id: int):
    """Stock audit trail of one product, newest first. Query: limit (optional)."""
    if products_service.get_product(g.tenant_id, product_id) is None:
        return {"error": "Product not found"}, 404

    limit = request.args.get("limit", type=int)
    if limit is not None and limit <= 0:
        return {"error": "limit must be positive"}, 400

    rows = inventory_service.list_stock_transactions_for_product(
        product_id,
        tenant_id=g.tenant_id,
        limit=limit,
    )
    return {"items": [tx.to_dict() for tx in rows], "count": len(rows)}


@products_bp.get("/transactions")
@require_permission("VIEW_STOCK_HISTORY")
def transactions_between_route():
    """Stock transactions of the tenant between ?start= and ?end= (inclusive, ISO-8601)."""
    try:
        start, end = parse_date_range(request.args.get("start"), request.args.get("end"))
    except ValidationError as e:
        return {"error": str(e)}, 400

    rows = inventory_service.list_stock_transactions_between(start, end, tenant_id=g.tenant_id)
    return {"items": [tx.to_dict() for tx in rows], "count": len(rows)}
