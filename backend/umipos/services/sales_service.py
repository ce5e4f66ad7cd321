# Overview: Service-layer operations for sales; encapsulates business logic and database work.

"""
Sales Invariants

- A sale, its items and one SALE stock transaction per product are written
  in a single DB transaction. Any failure leaves no trace of the sale.
- Stock may not go negative: a line asking for more than is on hand
  aborts the whole sale with ConflictError.
- Duplicate product lines are merged before stock is checked.
- Money is integer cents; tax is computed from basis points, half-up.
"""

from __future__ import annotations

import secrets
from collections import OrderedDict
from datetime import datetime

from ..extensions import db
from ..models import Customer, Sale, SaleItem
from ..models.inventory import STOCK_SALE
from ..models.sales import PAYMENT_METHODS
from ..validation import ValidationError, ConflictError
from .concurrency import run_with_retry
from .inventory_service import get_active_product, _record_stock_change_inner
from umipos.time_utils import utcnow

MAX_PAYMENT_DETAILS_LENGTH = 100


def _merge_lines(items) -> "OrderedDict[int, int]":
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    merged: "OrderedDict[int, int]" = OrderedDict()
    for line in items:
        if not isinstance(line, dict):
            raise ValidationError("each item must be an object")
        product_id = line.get("product_id")
        quantity = line.get("quantity")
        if not isinstance(product_id, int) or isinstance(product_id, bool):
            raise ValidationError("product_id must be an integer")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise ValidationError("quantity must be a positive integer")
        merged[product_id] = merged.get(product_id, 0) + quantity
    return merged


def compute_tax_cents(subtotal_cents: int, tax_rate_bps: int) -> int:
    # half-up rounding to the nearest cent
    return (subtotal_cents * tax_rate_bps + 5000) // 10000


def generate_receipt_number(now: datetime) -> str:
    return f"RCP-{now:%Y%m%d%H%M%S}-{secrets.token_hex(3).upper()}"


def create_sale(
    *,
    tenant_id: int,
    items: list[dict],
    payment_method: str,
    customer_id: int | None = None,
    cashier_user_id: int | None = None,
    cash_received_cents: int | None = None,
    payment_details: str | None = None,
    tax_rate_bps: int = 0,
) -> Sale:
    """
    Record a completed sale and decrement stock for each line.

    Raises:
        ValidationError: bad lines, unknown product/customer, short cash
        ConflictError: insufficient stock
    """
    lines = _merge_lines(items)

    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

    if payment_details is not None:
        if not isinstance(payment_details, str):
            raise ValidationError("payment_details must be a string")
        if len(payment_details) > MAX_PAYMENT_DETAILS_LENGTH:
            raise ValidationError(f"payment_details must be at most {MAX_PAYMENT_DETAILS_LENGTH} characters")

    if customer_id is not None:
        customer = db.session.query(Customer).filter_by(
            id=customer_id, tenant_id=tenant_id, is_active=True
        ).first()
        if customer is None:
            raise ValidationError("Customer not found")

    def _op():
        products = {}
        for product_id, quantity in lines.items():
            product = get_active_product(product_id, tenant_id=tenant_id, lock=True)
            if product is None:
                raise ValidationError(f"Product {product_id} not found")
            if product.stock < quantity:
                raise ConflictError(
                    f"Insufficient stock for {product.name}: {product.stock} on hand, {quantity} requested"
                )
            products[product_id] = product

        subtotal = sum(products[pid].price_cents * qty for pid, qty in lines.items())
        tax = compute_tax_cents(subtotal, tax_rate_bps)
        total = subtotal + tax

        change = None
        if cash_received_cents is not None:
            if cash_received_cents < total:
                raise ValidationError("cash_received_cents is less than the sale total")
            change = cash_received_cents - total

        now = utcnow()
        sale = Sale(
            tenant_id=tenant_id,
            receipt_number=generate_receipt_number(now),
            customer_id=customer_id,
            cashier_user_id=cashier_user_id,
            subtotal_cents=subtotal,
            tax_cents=tax,
            total_cents=total,
            payment_method=payment_method,
            payment_details=payment_details,
            cash_received_cents=cash_received_cents,
            change_cents=change,
            status="completed",
            created_at=now,
        )
        db.session.add(sale)
        db.session.flush()

        for product_id, quantity in lines.items():
            product = products[product_id]
            db.session.add(SaleItem(
                sale_id=sale.id,
                product_id=product_id,
                unit_price_cents=product.price_cents,
                quantity=quantity,
                total_price_cents=product.price_cents * quantity,
            ))
            _record_stock_change_inner(
                product=product,
                new_stock=product.stock - quantity,
                reason=f"Sale {sale.receipt_number}",
                transaction_type=STOCK_SALE,
                sale_id=sale.id,
            )

        db.session.commit()
        return sale

    try:
        return run_with_retry(_op)
    except (ValidationError, ConflictError):
        db.session.rollback()
        raise


def get_sale(tenant_id: int, sale_id: int) -> Sale | None:
    return db.session.query(Sale).filter_by(id=sale_id, tenant_id=tenant_id).first()


def list_sales_for_customer(tenant_id: int, customer_id: int) -> list[Sale]:
    return (
        db.session.query(Sale)
        .filter_by(tenant_id=tenant_id, customer_id=customer_id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .all()
    )


def list_sales_between(tenant_id: int, start: datetime, end: datetime) -> list[Sale]:
    """Sales with start <= created_at <= end, newest first."""
    if start > end:
        raise ValidationError("start must not be after end")
    return (
        db.session.query(Sale)
        .filter(
            Sale.tenant_id == tenant_id,
            Sale.created_at >= start,
            Sale.created_at <= end,
        )
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .all()
    )
