# Overview: Endpoints that report the caller's access context and exercise each requirement kind.

# backend/umipos/routes/access.py
"""
Access check endpoints.

Front-ends use these to decide which screens to show; each endpoint is
guarded by a different requirement kind so the client gets the same
401/403 answer the real endpoint would give.
"""
from flask import Blueprint, g

from ..authorization import resolve_user_id
from ..decorators import (
    allow_anonymous,
    current_principal,
    require_auth,
    require_permission,
    require_permission_and_role,
    require_role,
)
from ..services import permission_service

access_bp = Blueprint("access", __name__, url_prefix="/api/access")


@access_bp.get("/public")
@allow_anonymous
def public_route():
    principal = current_principal()
    return {"ok": True, "authenticated": principal.is_authenticated}


@access_bp.get("/me")
@require_auth
def me_route():
    principal = current_principal()
    return {
        "user_id": resolve_user_id(principal),
        "tenant_id": principal.tenant_id,
        "claims": dict(principal.claims),
        "roles": permission_service.get_user_role_names(g.current_user.id),
        "permissions": sorted(permission_service.get_user_permissions(g.current_user.id, g.tenant_id)),
    }


@access_bp.get("/inventory")
@require_permission("VIEW_INVENTORY")
def inventory_access_route():
    return {"ok": True, "requirement": "permission", "permissions": ["VIEW_INVENTORY"]}


@access_bp.get("/stock-adjustment")
@require_permission("VIEW_INVENTORY", "ADJUST_STOCK")
def stock_adjustment_access_route():
    return {"ok": True, "requirement": "permission", "permissions": ["VIEW_INVENTORY", "ADJUST_STOCK"]}


@access_bp.get("/dispensary")
@require_role("Pharmacist", "TenantAdmin")
def dispensary_access_route():
    return {"ok": True, "requirement": "role", "roles": ["Pharmacist", "TenantAdmin"]}


@access_bp.get("/dispense")
@require_permission_and_role(("CREATE_SALE",), ("Pharmacist",))
def dispense_access_route():
    return {
        "ok": True,
        "requirement": "permission_and_role",
        "permissions": ["CREATE_SALE"],
        "roles": ["Pharmacist"],
    }
