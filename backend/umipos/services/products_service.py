# backend/umipos/services/products_service.py
"""
Products Service with Multi-Tenant Support

MULTI-TENANT: Every read and write is scoped by tenant_id.
Soft delete: delete_product() clears is_active; inactive products are
invisible to every lookup here.

Stock is NOT a patchable field. Initial stock on create is recorded as a
PURCHASE stock transaction; later changes go through
inventory_service.apply_stock_update().
"""
from __future__ import annotations

from ..extensions import db
from ..models import Product
from ..models.inventory import STOCK_PURCHASE
from ..validation import ConflictError, ValidationError
from .inventory_service import _record_stock_change_inner
from umipos.time_utils import utcnow

PRODUCT_MUTABLE_FIELDS = {"name", "category", "barcode", "description", "price_cents", "min_stock"}
SEARCH_MIN_LENGTH = 2
SEARCH_MAX_RESULTS = 50


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _active_products(tenant_id: int):
    return db.session.query(Product).filter(
        Product.tenant_id == tenant_id,
        Product.is_active.is_(True),
    )


def _ensure_barcode_free(tenant_id: int, barcode: str | None, *, exclude_id: int | None = None) -> None:
    if not barcode:
        return
    q = _active_products(tenant_id).filter(Product.barcode == barcode)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("Barcode already in use")


def list_products(
    tenant_id: int,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    """
    Active products of a tenant ordered by name, optionally paginated.

    Returns dict with 'items', 'count', and pagination metadata if paginated.
    """
    base_query = _active_products(tenant_id).order_by(Product.name.asc(), Product.id.asc())

    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    per_page = max(1, min(per_page or 20, 100))  # Default 20, max 100
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def get_product(tenant_id: int, product_id: int) -> Product | None:
    return _active_products(tenant_id).filter(Product.id == product_id).first()


def get_product_by_barcode(tenant_id: int, barcode: str) -> Product | None:
    return _active_products(tenant_id).filter(Product.barcode == barcode).first()


def search_products(tenant_id: int, query: str, limit: int = 20) -> list[Product]:
    """
    Till lookup: active products whose name or category contains the
    query, or whose barcode starts with it, ordered by name.

    Raises ValidationError when the query is shorter than SEARCH_MIN_LENGTH.
    """
    query = (query or "").strip()
    if len(query) < SEARCH_MIN_LENGTH:
        raise ValidationError(f"Search query must be at least {SEARCH_MIN_LENGTH} characters")

    limit = max(1, min(limit or 20, SEARCH_MAX_RESULTS))
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    contains = f"%{escaped}%"
    return (
        _active_products(tenant_id)
        .filter(db.or_(
            Product.name.ilike(contains, escape="\\"),
            Product.category.ilike(contains, escape="\\"),
            Product.barcode.like(f"{escaped}%", escape="\\"),
        ))
        .order_by(Product.name.asc(), Product.id.asc())
        .limit(limit)
        .all()
    )


def create_product(*, tenant_id: int, patch: dict, initial_stock: int = 0) -> Product:
    """
    Create a product from a validated patch dict.

    A non-zero initial_stock is written through the stock audit path in the
    same transaction as the product itself.

    Raises:
        ConflictError: If the barcode is already used by an active product
    """
    _ensure_barcode_free(tenant_id, patch.get("barcode"))

    now = utcnow()
    product = Product(tenant_id=tenant_id, stock=0, created_at=now, updated_at=now)
    apply_product_patch(product, patch)
    db.session.add(product)
    db.session.flush()

    if initial_stock:
        _record_stock_change_inner(
            product=product,
            new_stock=initial_stock,
            reason="Initial stock",
            transaction_type=STOCK_PURCHASE,
        )

    db.session.commit()
    return product


def update_product(*, tenant_id: int, product_id: int, patch: dict) -> Product | None:
    """Apply a validated patch. Returns None if the product doesn't exist."""
    product = get_product(tenant_id, product_id)
    if product is None:
        return None

    if "barcode" in patch:
        _ensure_barcode_free(tenant_id, patch["barcode"], exclude_id=product.id)

    apply_product_patch(product, patch)
    product.updated_at = utcnow()
    db.session.commit()
    return product


def delete_product(*, tenant_id: int, product_id: int) -> bool:
    """Soft delete. Returns False if no active product matched."""
    product = get_product(tenant_id, product_id)
    if product is None:
        return False

    product.is_active = False
    product.updated_at = utcnow()
    db.session.commit()
    return True


def list_low_stock(tenant_id: int) -> list[Product]:
    """Active products at or below their reorder threshold, lowest stock first."""
    return (
        _active_products(tenant_id)
        .filter(Product.stock <= Product.min_stock)
        .order_by(Product.stock.asc(), Product.name.asc())
        .all()
    )
