from __future__ import annotations

from ..extensions import db
from umipos.time_utils import to_utc_z, utcnow


# StockTransaction.transaction_type values
STOCK_SALE = "SALE"
STOCK_PURCHASE = "PURCHASE"
STOCK_ADJUSTMENT = "ADJUSTMENT"
STOCK_RETURN = "RETURN"

STOCK_TRANSACTION_TYPES = (STOCK_SALE, STOCK_PURCHASE, STOCK_ADJUSTMENT, STOCK_RETURN)


class Product(db.Model):
    """
    Product master data with its current stock level.

    MULTI-TENANT: Products are scoped by tenant_id.

    STOCK: `stock` is the current quantity on hand. It is only ever changed
    together with a StockTransaction row in the same DB transaction
    (see services/inventory_service.py). Deletion is soft: is_active=False.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_tenant_name", "tenant_id", "name"),
        db.Index("ix_products_tenant_active", "tenant_id", "is_active"),
        db.Index("ix_products_tenant_barcode", "tenant_id", "barcode"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    name = db.Column(db.String(200), nullable=False)
    category = db.Column(db.String(100), nullable=True)
    barcode = db.Column(db.String(50), nullable=True)
    description = db.Column(db.String(500), nullable=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=5)  # reorder threshold

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    tenant = db.relationship("Tenant", backref=db.backref("products", lazy=True))

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock} tenant_id={self.tenant_id}>"

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.min_stock

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "category": self.category,
            "barcode": self.barcode,
            "description": self.description,
            "price_cents": self.price_cents,
            "stock": self.stock,
            "min_stock": self.min_stock,
            "is_low_stock": self.is_low_stock,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockTransaction(db.Model):
    """
    Append-only audit row for a single stock change.

    Written in the same DB transaction as the Product.stock write it
    describes. There is no update or delete path for these rows.
    """
    __tablename__ = "stock_transactions"
    __table_args__ = (
        db.Index("ix_stock_transactions_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    transaction_type = db.Column(db.String(50), nullable=False, index=True)

    quantity_change = db.Column(db.Integer, nullable=False)  # new_stock - previous_stock
    previous_stock = db.Column(db.Integer, nullable=False)
    new_stock = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(200), nullable=True)

    # Set by sales_service when the change comes from a sale
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    product = db.relationship("Product", backref=db.backref("stock_transactions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "transaction_type": self.transaction_type,
            "quantity_change": self.quantity_change,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "reason": self.reason,
            "sale_id": self.sale_id,
            "created_at": to_utc_z(self.created_at),
        }
