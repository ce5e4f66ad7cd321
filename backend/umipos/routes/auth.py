# backend/umipos/routes/auth.py
"""
Authentication API routes: login, logout, current session.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import allow_anonymous, require_auth
from ..extensions import db
from ..models import Tenant
from ..services import auth_service, permission_service, session_service

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
@allow_anonymous
def login_route():
    """
    Authenticate and create a session token.

    Body: {"username": ..., "password": ..., "tenant_code": optional}
    The token goes in "Authorization: Bearer <token>" on later requests.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    username = data.get("username") or data.get("email")
    password = data.get("password")

    if not username or not password:
        return jsonify({"error": "username/email and password required"}), 400

    tenant_id = None
    tenant_code = data.get("tenant_code")
    if tenant_code:
        tenant = db.session.query(Tenant).filter_by(code=tenant_code).first()
        if tenant is None:
            return jsonify({"error": "Invalid credentials"}), 401
        tenant_id = tenant.id

    try:
        user = auth_service.authenticate(username, password, tenant_id=tenant_id)
    except auth_service.TenantRequiredError as e:
        return jsonify({"error": str(e)}), 400
    if not user:
        return jsonify({"error": "Invalid credentials"}), 401

    max_devices = current_app.config.get("MAX_DEVICES_PER_USER", 0)
    if session_service.is_device_limit_reached(user.id, max_devices):
        return jsonify({"error": "Device limit reached. Log out from another device first."}), 409

    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )

    return jsonify({
        "user": user.to_dict(),
        "roles": permission_service.get_user_role_names(user.id),
        "permissions": sorted(permission_service.get_user_permissions(user.id)),
        "token": token,
        "session": session.to_dict(),
        "tenant_id": session.tenant_id,
        "message": "Login successful",
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token = request.headers["Authorization"].split(" ", 1)[1].strip()
    session_service.revoke_session(token, reason="User logout")
    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current user, roles, permissions and tenant context."""
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "roles": permission_service.get_user_role_names(user.id),
        "permissions": sorted(permission_service.get_user_permissions(user.id, g.tenant_id)),
        "tenant_id": g.tenant_id,
    }), 200


@auth_bp.get("/sessions")
@require_auth
def list_sessions_route():
    """Live sessions of the current user; the caller's own is flagged is_current."""
    current_id = g.session_context.session.id
    sessions = session_service.get_active_sessions(g.current_user.id)
    items = []
    for s in sessions:
        data = s.to_dict()
        data["user_agent"] = s.user_agent
        data["ip_address"] = s.ip_address
        data["is_current"] = s.id == current_id
        items.append(data)
    return jsonify({"items": items, "count": len(items)}), 200


@auth_bp.delete("/sessions/<int:session_id>")
@require_auth
def revoke_session_route(session_id: int):
    """Sign out one of the current user's other devices."""
    if not session_service.revoke_user_session(g.current_user.id, session_id):
        return jsonify({"error": "Session not found"}), 404
    return jsonify({"message": "Session revoked"}), 200
