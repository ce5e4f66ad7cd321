# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/umipos/services/inventory_service.py
"""
Stock Invariants (authoritative)

Stock model:
- Product.stock holds the current quantity on hand.
- Every change to Product.stock is paired with exactly one StockTransaction
  row (previous_stock, new_stock, quantity_change = new - previous, reason).
- The product write and its audit row are committed together or rolled back
  together; no caller ever observes stock without its audit row.
- StockTransaction is append-only: this module offers no update/delete.

Concurrency:
- The product row is read with SELECT ... FOR UPDATE where supported.
- There is no in-process lock. Two concurrent updates to the same product
  are ordered only by the database's transaction isolation level; that is
  an assumption about the storage engine, not a guarantee of this code.

Time semantics:
- created_at/updated_at are UTC-naive; date-range filters are inclusive.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, StockTransaction
from ..models.inventory import STOCK_ADJUSTMENT, STOCK_TRANSACTION_TYPES
from .concurrency import lock_for_update
from umipos.time_utils import utcnow

logger = logging.getLogger(__name__)


class StockUpdateResult(str, Enum):
    UPDATED = "updated"
    NOT_FOUND = "not_found"
    FAILED = "failed"


def get_active_product(
    product_id: int,
    *,
    tenant_id: int | None = None,
    lock: bool = False,
) -> Product | None:
    query = db.session.query(Product).filter_by(id=product_id, is_active=True)
    if tenant_id is not None:
        query = query.filter(Product.tenant_id == tenant_id)
    if lock:
        query = lock_for_update(query)
    return query.first()


def _record_stock_change_inner(
    *,
    product: Product,
    new_stock: int,
    reason: str | None,
    transaction_type: str,
    sale_id: int | None = None,
) -> StockTransaction:
    """Core stock write without lookup, locking, or commit.

    Called by apply_stock_update() and by sales_service inside the sale's
    own transaction.
    """
    previous_stock = product.stock
    now = utcnow()

    product.stock = new_stock
    product.updated_at = now

    tx = StockTransaction(
        product_id=product.id,
        transaction_type=transaction_type,
        quantity_change=new_stock - previous_stock,
        previous_stock=previous_stock,
        new_stock=new_stock,
        reason=reason,
        sale_id=sale_id,
        created_at=now,
    )
    db.session.add(tx)
    db.session.flush()
    return tx


def apply_stock_update(
    product_id: int,
    new_stock: int,
    reason: str | None,
    *,
    transaction_type: str = STOCK_ADJUSTMENT,
    tenant_id: int | None = None,
) -> StockUpdateResult:
    """
    Set a product's stock and record the audit row atomically.

    Returns NOT_FOUND (nothing written) when no active product matches,
    FAILED when the database rejects the write (everything rolled back),
    UPDATED otherwise.
    """
    if transaction_type not in STOCK_TRANSACTION_TYPES:
        raise ValueError(f"unknown transaction_type: {transaction_type}")

    try:
        product = get_active_product(product_id, tenant_id=tenant_id, lock=True)
        if product is None:
            return StockUpdateResult.NOT_FOUND

        _record_stock_change_inner(
            product=product,
            new_stock=new_stock,
            reason=reason,
            transaction_type=transaction_type,
        )
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Stock update failed for product %s", product_id)
        return StockUpdateResult.FAILED

    return StockUpdateResult.UPDATED


def update_stock(
    product_id: int,
    new_stock: int,
    reason: str | None,
    *,
    transaction_type: str = STOCK_ADJUSTMENT,
    tenant_id: int | None = None,
) -> bool:
    """Boolean form of apply_stock_update(): True only when committed."""
    result = apply_stock_update(
        product_id,
        new_stock,
        reason,
        transaction_type=transaction_type,
        tenant_id=tenant_id,
    )
    return result is StockUpdateResult.UPDATED


def list_stock_transactions_for_product(
    product_id: int,
    *,
    tenant_id: int | None = None,
    limit: int | None = None,
) -> list[StockTransaction]:
    """Audit rows of one product, newest first."""
    q = db.session.query(StockTransaction).filter(StockTransaction.product_id == product_id)
    if tenant_id is not None:
        q = q.join(Product, Product.id == StockTransaction.product_id).filter(Product.tenant_id == tenant_id)

    q = q.order_by(StockTransaction.created_at.desc(), StockTransaction.id.desc())
    if limit is not None:
        q = q.limit(limit)
    return q.all()


def list_stock_transactions_between(
    start: datetime,
    end: datetime,
    *,
    tenant_id: int | None = None,
) -> list[StockTransaction]:
    """Audit rows with start <= created_at <= end, newest first."""
    if start > end:
        raise ValueError("start must not be after end")

    q = db.session.query(StockTransaction).filter(
        StockTransaction.created_at >= start,
        StockTransaction.created_at <= end,
    )
    if tenant_id is not None:
        q = q.join(Product, Product.id == StockTransaction.product_id).filter(Product.tenant_id == tenant_id)

    return q.order_by(StockTransaction.created_at.desc(), StockTransaction.id.desc()).all()
