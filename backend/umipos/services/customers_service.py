# Overview: Service-layer operations for customers; tenant-scoped CRUD with soft delete.

from __future__ import annotations

from ..extensions import db
from ..models import Customer
from umipos.time_utils import utcnow

CUSTOMER_MUTABLE_FIELDS = {"name", "email", "phone", "address"}


def _active_customers(tenant_id: int):
    return db.session.query(Customer).filter(
        Customer.tenant_id == tenant_id,
        Customer.is_active.is_(True),
    )


def list_customers(tenant_id: int, search: str | None = None) -> list[Customer]:
    q = _active_customers(tenant_id)
    if search:
        pattern = f"%{search.strip()}%"
        q = q.filter(db.or_(
            Customer.name.ilike(pattern),
            Customer.email.ilike(pattern),
            Customer.phone.ilike(pattern),
        ))
    return q.order_by(Customer.name.asc(), Customer.id.asc()).all()


def get_customer(tenant_id: int, customer_id: int) -> Customer | None:
    return _active_customers(tenant_id).filter(Customer.id == customer_id).first()


def create_customer(*, tenant_id: int, patch: dict) -> Customer:
    now = utcnow()
    customer = Customer(tenant_id=tenant_id, created_at=now, updated_at=now)
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)
    db.session.add(customer)
    db.session.commit()
    return customer


def update_customer(*, tenant_id: int, customer_id: int, patch: dict) -> Customer | None:
    customer = get_customer(tenant_id, customer_id)
    if customer is None:
        return None

    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(customer, k, v)
    customer.updated_at = utcnow()
    db.session.commit()
    return customer


def delete_customer(*, tenant_id: int, customer_id: int) -> bool:
    """Soft delete. Past sales keep pointing at the record."""
    customer = get_customer(tenant_id, customer_id)
    if customer is None:
        return False

    customer.is_active = False
    customer.updated_at = utcnow()
    db.session.commit()
    return True
