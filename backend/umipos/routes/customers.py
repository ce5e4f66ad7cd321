# Overview: Flask API routes for customers; parses input and returns JSON responses.

from flask import Blueprint, g, request

from ..authorization import AccessRequirement
from ..decorators import guard_blueprint, require_permission
from ..models import Customer
from ..services import customers_service
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    enforce_rules_customer,
    validate_payload,
)

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields=set(customers_service.CUSTOMER_MUTABLE_FIELDS),
    required_on_create={"name"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")

# Every customer route needs VIEW_CUSTOMERS; writes add MANAGE_CUSTOMERS.
guard_blueprint(customers_bp, AccessRequirement(permissions=("VIEW_CUSTOMERS",)))


@customers_bp.get("")
def list_customers_route():
    """Query params: search (optional) - matches name, email or phone."""
    customers = customers_service.list_customers(g.tenant_id, request.args.get("search"))
    return {"items": [c.to_dict() for c in customers], "count": len(customers)}


@customers_bp.get("/<int:customer_id>")
def get_customer_route(customer_id: int):
    customer = customers_service.get_customer(g.tenant_id, customer_id)
    if customer is None:
        return {"error": "Customer not found"}, 404
    return customer.to_dict()


@customers_bp.post("")
@require_permission("MANAGE_CUSTOMERS")
def create_customer_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
        enforce_rules_customer(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    customer = customers_service.create_customer(tenant_id=g.tenant_id, patch=patch)
    return customer.to_dict(), 201


@customers_bp.put("/<int:customer_id>")
@require_permission("MANAGE_CUSTOMERS")
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
        enforce_rules_customer(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    customer = customers_service.update_customer(
        tenant_id=g.tenant_id,
        customer_id=customer_id,
        patch=patch,
    )
    if customer is None:
        return {"error": "Customer not found"}, 404
    return customer.to_dict()


@customers_bp.delete("/<int:customer_id>")
@require_permission("MANAGE_CUSTOMERS")
def delete_customer_route(customer_id: int):
    if not customers_service.delete_customer(tenant_id=g.tenant_id, customer_id=customer_id):
        return {"error": "Customer not found"}, 404
    return {"ok": True}, 200
