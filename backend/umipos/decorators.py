# Overview: Request authentication and authorization decorators for API routes.

import logging
from functools import wraps

from flask import current_app, g, jsonify, request

from .authorization import (
    ANONYMOUS,
    CLAIM_NAME,
    CLAIM_NAME_IDENTIFIER,
    CLAIM_SUBJECT,
    CLAIM_TENANT,
    AccessRequirement,
    AuthorizationOutcome,
    AuthorizationResult,
    Principal,
    authenticate,
    authorize,
)
from .services import session_service

logger = logging.getLogger(__name__)

# app.extensions key under which create_app() registers the PermissionResolver
PERMISSION_RESOLVER_KEY = "umipos.permission_resolver"
PRINCIPAL_ENVIRON_KEY = "umipos.principal"


def get_permission_resolver():
    """The app's PermissionResolver, or None if none is registered."""
    return current_app.extensions.get(PERMISSION_RESOLVER_KEY)


def principal_from_session(context: session_service.SessionContext) -> Principal:
    user = context.user
    return Principal(
        claims={
            CLAIM_NAME_IDENTIFIER: str(user.id),
            CLAIM_SUBJECT: str(user.id),
            CLAIM_NAME: user.username,
            CLAIM_TENANT: str(context.tenant_id),
        },
        tenant_id=context.tenant_id,
        is_authenticated=True,
    )


def current_principal() -> Principal:
    """
    Resolve the request's Principal from the Bearer token, once per request.

    The Principal (ANONYMOUS when no valid token) is cached in the WSGI
    environ; g can outlive a single request when an app context is reused.
    Valid sessions also set g.current_user, g.tenant_id, g.session_context.
    """
    cached = request.environ.get(PRINCIPAL_ENVIRON_KEY)
    if cached is not None:
        return cached

    principal = ANONYMOUS
    auth_header = request.headers.get("Authorization")

    if auth_header and auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1].strip()
        context = session_service.validate_session(token) if token else None
        if context is not None:
            principal = principal_from_session(context)
            g.current_user = context.user
            g.tenant_id = context.tenant_id
            g.session_context = context

    request.environ[PRINCIPAL_ENVIRON_KEY] = principal
    return principal


def allow_anonymous(f):
    """Mark a view as public: skips every authorization check."""
    f.allow_anonymous = True
    return f


def _is_anonymous_allowed(view) -> bool:
    return bool(getattr(view, "allow_anonymous", False))


def _deny(result: AuthorizationResult):
    if result.outcome is AuthorizationOutcome.UNAUTHENTICATED:
        return jsonify({"error": "Authentication required", "kind": result.outcome.value}), 401

    if result.outcome is AuthorizationOutcome.FORBIDDEN:
        return jsonify({
            "error": "Permission denied",
            "kind": result.outcome.value,
            "message": f"Access denied. {result.reason}",
        }), 403

    return jsonify({"error": "Internal authorization error", "kind": result.outcome.value}), 500


def _check(requirement: AccessRequirement, view):
    principal = current_principal()
    result = authorize(
        requirement,
        principal,
        get_permission_resolver(),
        anonymous_allowed=_is_anonymous_allowed(view),
    )
    if not result.allowed:
        logger.debug(
            "Authorization %s for %s %s: %s",
            result.outcome.value, request.method, request.path, result.reason,
        )
    return result


def _guard(requirement: AccessRequirement):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            result = _check(requirement, decorated_function)
            if not result.allowed:
                return _deny(result)
            return f(*args, **kwargs)

        decorated_function.access_requirement = requirement
        return decorated_function
    return decorator


def require_auth(f):
    """
    Require an authenticated caller (any permissions).

    Returns 401 if there is no valid Bearer session.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_anonymous_allowed(decorated_function):
            result = authenticate(current_principal())
            if not result.allowed:
                return _deny(result)
        return f(*args, **kwargs)

    return decorated_function


def require_permission(*permissions: str, tenant_id: int | None = None):
    """
    Require ALL of the given permissions, checked in order.

    Usage:
        @bp.post("/<int:product_id>/stock")
        @require_permission("VIEW_INVENTORY", "ADJUST_STOCK")
        def set_stock(product_id): ...
    """
    return _guard(AccessRequirement(permissions=tuple(permissions), tenant_id=tenant_id))


def require_role(*roles: str):
    """Require ANY one of the given roles."""
    return _guard(AccessRequirement(roles=tuple(roles)))


def require_permission_and_role(permissions, roles, tenant_id: int | None = None):
    """Require all `permissions`, then any one of `roles`."""
    return _guard(AccessRequirement(
        permissions=tuple(permissions),
        roles=tuple(roles),
        tenant_id=tenant_id,
    ))


def guard_blueprint(blueprint, requirement: AccessRequirement) -> None:
    """
    Apply a requirement to every view of a blueprint.

    Views marked @allow_anonymous stay public. Per-view decorators still
    run afterwards and can only add further requirements.
    """
    @blueprint.before_request
    def _blueprint_guard():
        view = current_app.view_functions.get(request.endpoint)
        result = _check(requirement, view)
        if not result.allowed:
            return _deny(result)
        return None
