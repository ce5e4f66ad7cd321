# Overview: Framework-free authorization evaluation for declared route requirements.

"""
Route Authorization

A route declares an AccessRequirement (permission names and/or role names).
authorize() decides ALLOWED / UNAUTHENTICATED / FORBIDDEN / INTERNAL for a
principal against that requirement, asking a PermissionResolver for each
grant. It has no side effects: no DB writes, no logging. The Flask adapter in
decorators.py turns the result into a response.

RULES:
- Public (anonymous-allowed) endpoints are always ALLOWED
- Missing/unauthenticated principal, or no user id claim -> UNAUTHENTICATED
- No resolver available, or the resolver raising -> INTERNAL
- Permissions: ALL required, checked in declared order, stop at first miss
- Roles: ANY one suffices, checked in declared order, stop at first hit
- Combined: permissions first (to completion), then roles
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional, Protocol, Tuple


# Claim names carried by a Principal
CLAIM_NAME_IDENTIFIER = "nameidentifier"
CLAIM_SUBJECT = "sub"
CLAIM_NAME = "name"
CLAIM_TENANT = "tenant_id"


class PermissionResolver(Protocol):
    """
    Permission lookup collaborator.

    Absence of a grant is False; "user not found" must not raise.
    """

    def has_permission(self, user_id: str, permission: str, tenant_id: Optional[int] = None) -> bool:
        ...

    def is_in_role(self, user_id: str, role: str) -> bool:
        ...


@dataclass(frozen=True)
class Principal:
    """The caller of a request, as established by authentication."""
    claims: Mapping[str, str] = field(default_factory=dict)
    tenant_id: Optional[int] = None
    is_authenticated: bool = True


ANONYMOUS = Principal(claims={}, tenant_id=None, is_authenticated=False)


def resolve_user_id(principal: Optional[Principal]) -> Optional[str]:
    """Stable user id: the name-identifier claim, else the subject claim."""
    if principal is None:
        return None
    user_id = principal.claims.get(CLAIM_NAME_IDENTIFIER) or principal.claims.get(CLAIM_SUBJECT)
    return user_id or None


@dataclass(frozen=True)
class AccessRequirement:
    permissions: Tuple[str, ...] = ()
    roles: Tuple[str, ...] = ()
    # Tenant passed to permission lookups; None means "the caller's tenant"
    tenant_id: Optional[int] = None

    def __post_init__(self):
        if not self.permissions and not self.roles:
            raise ValueError("AccessRequirement needs at least one permission or role")


class AuthorizationOutcome(str, Enum):
    ALLOWED = "allowed"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    INTERNAL = "internal"


_STATUS_CODES = {
    AuthorizationOutcome.ALLOWED: 200,
    AuthorizationOutcome.UNAUTHENTICATED: 401,
    AuthorizationOutcome.FORBIDDEN: 403,
    AuthorizationOutcome.INTERNAL: 500,
}


@dataclass(frozen=True)
class AuthorizationResult:
    outcome: AuthorizationOutcome
    reason: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.outcome is AuthorizationOutcome.ALLOWED

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self.outcome]


ALLOWED = AuthorizationResult(AuthorizationOutcome.ALLOWED)


def _unauthenticated(reason: str) -> AuthorizationResult:
    return AuthorizationResult(AuthorizationOutcome.UNAUTHENTICATED, reason)


def _forbidden(reason: str) -> AuthorizationResult:
    return AuthorizationResult(AuthorizationOutcome.FORBIDDEN, reason)


def _internal(reason: str) -> AuthorizationResult:
    return AuthorizationResult(AuthorizationOutcome.INTERNAL, reason)


def authenticate(principal: Optional[Principal]) -> AuthorizationResult:
    """ALLOWED for an authenticated principal carrying a user id claim."""
    if principal is None or not principal.is_authenticated:
        return _unauthenticated("unauthenticated")
    if resolve_user_id(principal) is None:
        return _unauthenticated("unauthenticated")
    return ALLOWED


def check_permissions(
    resolver: PermissionResolver,
    user_id: str,
    permissions: Tuple[str, ...],
    tenant_id: Optional[int],
) -> AuthorizationResult:
    for permission in permissions:
        if not resolver.has_permission(user_id, permission, tenant_id):
            return _forbidden(f"missing permission: {permission}")
    return ALLOWED


def check_roles(
    resolver: PermissionResolver,
    user_id: str,
    roles: Tuple[str, ...],
) -> AuthorizationResult:
    for role in roles:
        if resolver.is_in_role(user_id, role):
            return ALLOWED
    return _forbidden(f"missing role, required one of: [{', '.join(roles)}]")


def authorize(
    requirement: AccessRequirement,
    principal: Optional[Principal],
    resolver: Optional[PermissionResolver],
    *,
    anonymous_allowed: bool = False,
) -> AuthorizationResult:
    """Evaluate one requirement for one principal. See module docstring."""
    if anonymous_allowed:
        return ALLOWED

    if principal is None or not principal.is_authenticated:
        return _unauthenticated("unauthenticated")

    if resolver is None:
        return _internal("permission resolver unavailable")

    user_id = resolve_user_id(principal)
    if user_id is None:
        return _unauthenticated("unauthenticated")

    tenant_id = requirement.tenant_id if requirement.tenant_id is not None else principal.tenant_id

    try:
        if requirement.permissions:
            result = check_permissions(resolver, user_id, requirement.permissions, tenant_id)
            if not result.allowed:
                return result

        if requirement.roles:
            result = check_roles(resolver, user_id, requirement.roles)
            if not result.allowed:
                return result
    except Exception as exc:  # resolver failures are reported, never raised to the view
        return _internal(f"permission lookup failed: {exc.__class__.__name__}")

    return ALLOWED
