# Overview: Flask API routes for sales; parses input and returns JSON responses.

# backend/umipos/routes/sales.py
"""
Sales routes.

Creating a sale decrements stock for every line in the same transaction as
the sale itself (see sales_service).

SECURITY:
- Reads require VIEW_SALES
- Creating a sale requires CREATE_SALE
"""
from flask import Blueprint, current_app, g, request

from ..decorators import require_permission
from ..services import customers_service, sales_service
from ..validation import ConflictError, ValidationError, coerce_int, parse_date_range

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
@require_permission("CREATE_SALE")
def create_sale_route():
    """
    Body:
    {
        "items": [{"product_id": 1, "quantity": 2}, ...],
        "payment_method": "cash" | "card" | "mobile_money" | "insurance",
        "customer_id": optional int,
        "cash_received_cents": optional int,
        "payment_details": optional str
    }
    """
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return {"error": "Invalid JSON payload"}, 400

    try:
        customer_id = payload.get("customer_id")
        if customer_id is not None:
            customer_id = coerce_int("customer_id", customer_id)
        cash_received = payload.get("cash_received_cents")
        if cash_received is not None:
            cash_received = coerce_int("cash_received_cents", cash_received)

        sale = sales_service.create_sale(
            tenant_id=g.tenant_id,
            items=payload.get("items"),
            payment_method=payload.get("payment_method"),
            customer_id=customer_id,
            cashier_user_id=g.current_user.id,
            cash_received_cents=cash_received,
            payment_details=payload.get("payment_details"),
            tax_rate_bps=current_app.config["SALES_TAX_RATE_BPS"],
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    return sale.to_dict(), 201


@sales_bp.get("/<int:sale_id>")
@require_permission("VIEW_SALES")
def get_sale_route(sale_id: int):
    sale = sales_service.get_sale(g.tenant_id, sale_id)
    if sale is None:
        return {"error": "Sale not found"}, 404
    return sale.to_dict()


@sales_bp.get("/customer/<int:customer_id>")
@require_permission("VIEW_SALES", "VIEW_CUSTOMERS")
def customer_sales_route(customer_id: int):
    if customers_service.get_customer(g.tenant_id, customer_id) is None:
        return {"error": "Customer not found"}, 404
    sales = sales_service.list_sales_for_customer(g.tenant_id, customer_id)
    return {"items": [s.to_dict() for s in sales], "count": len(sales)}


@sales_bp.get("")
@require_permission("VIEW_SALES")
def list_sales_route():
    """Sales between ?start= and ?end= (inclusive, ISO-8601)."""
    try:
        start, end = parse_date_range(request.args.get("start"), request.args.get("end"))
    except ValidationError as e:
        return {"error": str(e)}, 400

    sales = sales_service.list_sales_between(g.tenant_id, start, end)
    return {"items": [s.to_dict() for s in sales], "count": len(sales)}
