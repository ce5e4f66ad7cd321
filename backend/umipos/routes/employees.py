# Overview: Flask API routes for tenant employees (user accounts and their roles).

from flask import Blueprint, g, request

from ..authorization import AccessRequirement
from ..decorators import guard_blueprint, require_permission, require_permission_and_role
from ..services import employee_service
from ..services.auth_service import PasswordValidationError
from ..validation import ConflictError, ValidationError

employees_bp = Blueprint("employees", __name__, url_prefix="/api/employees")

guard_blueprint(employees_bp, AccessRequirement(permissions=("VIEW_USERS",)))


@employees_bp.get("")
def list_employees_route():
    """Query params: include_inactive (optional, "true" to list deactivated accounts)."""
    include_inactive = request.args.get("include_inactive", "").lower() == "true"
    users = employee_service.list_employees(g.tenant_id, include_inactive=include_inactive)
    return {"items": [employee_service.employee_to_dict(u) for u in users], "count": len(users)}


@employees_bp.post("")
@require_permission("MANAGE_USERS")
def create_employee_route():
    """
    Body: {"username", "email", "password", "role", "full_name" (optional)}
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return {"error": "Invalid JSON payload"}, 400

    required = ("username", "email", "password", "role")
    missing = [k for k in required if not data.get(k)]
    if missing:
        return {"error": f"Missing required fields: {', '.join(missing)}"}, 400

    try:
        user = employee_service.create_employee(
            tenant_id=g.tenant_id,
            username=str(data["username"]).strip(),
            email=str(data["email"]).strip(),
            password=data["password"],
            role_name=data["role"],
            full_name=data.get("full_name"),
        )
    except PasswordValidationError as e:
        return {"error": str(e)}, 400
    except ValueError as e:
        return {"error": str(e)}, 400

    return employee_service.employee_to_dict(user), 201


@employees_bp.post("/<int:user_id>/deactivate")
@require_permission_and_role(("MANAGE_USERS",), ("TenantAdmin",))
def deactivate_employee_route(user_id: int):
    """Deactivate an account and revoke its sessions. TenantAdmin only."""
    try:
        user = employee_service.deactivate_employee(
            tenant_id=g.tenant_id,
            user_id=user_id,
            acting_user_id=g.current_user.id,
        )
    except ConflictError as e:
        return {"error": str(e)}, 409

    if user is None:
        return {"error": "Employee not found"}, 404
    return employee_service.employee_to_dict(user)


@employees_bp.get("/<int:user_id>")
def get_employee_route(user_id: int):
    user = employee_service.get_employee(g.tenant_id, user_id)
    if user is None:
        return {"error": "Employee not found"}, 404
    return employee_service.employee_to_dict(user)


@employees_bp.put("/<int:user_id>")
@require_permission("MANAGE_USERS")
def update_employee_route(user_id: int):
    """
    Body: any of {"email", "full_name", "role", "password"}
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return {"error": "Invalid JSON payload"}, 400

    for key in ("email", "role", "password"):
        if key in data and not isinstance(data[key], str):
            return {"error": f"{key} must be a string"}, 400
    if data.get("full_name") is not None and not isinstance(data["full_name"], str):
        return {"error": "full_name must be a string"}, 400

    try:
        user = employee_service.update_employee(
            tenant_id=g.tenant_id,
            user_id=user_id,
            acting_user_id=g.current_user.id,
            patch=data,
        )
    except (ValidationError, PasswordValidationError) as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    if user is None:
        return {"error": "Employee not found"}, 404
    return employee_service.employee_to_dict(user)


@employees_bp.put("/<int:user_id>/status")
@require_permission_and_role(("MANAGE_USERS",), ("TenantAdmin",))
def update_employee_status_route(user_id: int):
    """
    Body: {"is_active": bool}. TenantAdmin only.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return {"error": "Invalid JSON payload"}, 400

    is_active = data.get("is_active")
    if not isinstance(is_active, bool):
        return {"error": "is_active must be true or false"}, 400

    try:
        user = employee_service.set_employee_status(
            tenant_id=g.tenant_id,
            user_id=user_id,
            acting_user_id=g.current_user.id,
            is_active=is_active,
        )
    except ConflictError as e:
        return {"error": str(e)}, 409

    if user is None:
        return {"error": "Employee not found"}, 404
    return {
        "employee": employee_service.employee_to_dict(user),
        "message": f"Employee status updated to {'Active' if is_active else 'Inactive'}",
    }
