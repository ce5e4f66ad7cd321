# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Role-Based Permission Resolution with Multi-Tenant Support

Permissions are global codes; roles are tenant-scoped and linked to
permissions via RolePermission. A user's permissions are the union of the
permissions of all roles assigned to them.

DESIGN PRINCIPLES:
- Fail closed: unknown users, inactive users and foreign tenants get nothing
- Lookups never raise for "not found"; absence of a grant is False
- Tenant isolation: a tenant-scoped check only sees roles of that tenant
"""

from ..extensions import db
from ..models import User, UserRole, Role, RolePermission, Permission
from ..permissions import PERMISSION_DEFINITIONS, DEFAULT_ROLE_PERMISSIONS


def _active_user(user_id: int) -> User | None:
    return db.session.query(User).filter_by(id=user_id, is_active=True).first()


def get_user_permissions(user_id: int, tenant_id: int | None = None) -> set[str]:
    """
    Get all permission codes for a user.

    Returns set of permission codes (e.g., {"CREATE_SALE", "VIEW_SALES"}).
    When tenant_id is given and the user belongs to another tenant, the
    result is empty.
    """
    user = _active_user(user_id)
    if user is None:
        return set()
    if tenant_id is not None and user.tenant_id != tenant_id:
        return set()

    rows = (
        db.session.query(Permission.code)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .join(Role, Role.id == RolePermission.role_id)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user_id, Role.tenant_id == user.tenant_id)
        .all()
    )
    return {code for (code,) in rows}


def user_has_permission(user_id: int, permission_code: str, tenant_id: int | None = None) -> bool:
    return permission_code in get_user_permissions(user_id, tenant_id)


def get_user_role_names(user_id: int) -> list[str]:
    """Role names held by a user within the user's own tenant."""
    user = db.session.get(User, user_id)
    if user is None:
        return []

    rows = (
        db.session.query(Role.name)
        .join(UserRole, UserRole.role_id == Role.id)
        .filter(UserRole.user_id == user_id, Role.tenant_id == user.tenant_id)
        .order_by(Role.name)
        .all()
    )
    return [name for (name,) in rows]


def user_in_role(user_id: int, role_name: str) -> bool:
    """Case-insensitive role membership for an active user."""
    if _active_user(user_id) is None:
        return False
    wanted = role_name.lower()
    return any(name.lower() == wanted for name in get_user_role_names(user_id))


class DatabasePermissionResolver:
    """
    Permission lookup collaborator used by the authorization decorators.

    User ids arrive as claim strings; anything that is not a numeric id
    simply has no grants.
    """

    @staticmethod
    def _parse_user_id(user_id: str) -> int | None:
        try:
            return int(user_id)
        except (TypeError, ValueError):
            return None

    def has_permission(self, user_id: str, permission: str, tenant_id: int | None = None) -> bool:
        uid = self._parse_user_id(user_id)
        if uid is None:
            return False
        return user_has_permission(uid, permission, tenant_id)

    def is_in_role(self, user_id: str, role: str) -> bool:
        uid = self._parse_user_id(user_id)
        if uid is None:
            return False
        return user_in_role(uid, role)


def initialize_permissions() -> int:
    """
    Create Permission rows for every code in PERMISSION_DEFINITIONS.

    Idempotent: Safe to run multiple times. Returns number created.
    """
    created_count = 0

    for code, name, description, category in PERMISSION_DEFINITIONS:
        existing = db.session.query(Permission).filter_by(code=code).first()

        if not existing:
            db.session.add(Permission(
                code=code,
                name=name,
                description=description,
                category=category
            ))
            created_count += 1

    db.session.commit()
    return created_count


def assign_default_role_permissions(tenant_id: int) -> int:
    """
    Link a tenant's default roles to their DEFAULT_ROLE_PERMISSIONS.

    Idempotent: existing links are skipped; missing roles/permissions too.
    """
    created_count = 0

    for role_name, permission_codes in DEFAULT_ROLE_PERMISSIONS.items():
        role = db.session.query(Role).filter_by(tenant_id=tenant_id, name=role_name).first()
        if not role:
            continue

        for permission_code in permission_codes:
            permission = db.session.query(Permission).filter_by(code=permission_code).first()
            if not permission:
                continue

            existing = db.session.query(RolePermission).filter_by(
                role_id=role.id,
                permission_id=permission.id
            ).first()

            if not existing:
                db.session.add(RolePermission(role_id=role.id, permission_id=permission.id))
                created_count += 1

    db.session.commit()
    return created_count


def grant_permission_to_role(tenant_id: int, role_name: str, permission_code: str) -> RolePermission:
    role = db.session.query(Role).filter_by(tenant_id=tenant_id, name=role_name).first()
    if not role:
        raise ValueError(f"Role '{role_name}' not found")

    permission = db.session.query(Permission).filter_by(code=permission_code).first()
    if not permission:
        raise ValueError(f"Permission '{permission_code}' not found")

    existing = db.session.query(RolePermission).filter_by(
        role_id=role.id,
        permission_id=permission.id
    ).first()

    if existing:
        return existing

    role_permission = RolePermission(role_id=role.id, permission_id=permission.id)
    db.session.add(role_permission)
    db.session.commit()
    return role_permission


def revoke_permission_from_role(tenant_id: int, role_name: str, permission_code: str) -> bool:
    """Returns False if the permission wasn't granted in the first place."""
    role = db.session.query(Role).filter_by(tenant_id=tenant_id, name=role_name).first()
    if not role:
        raise ValueError(f"Role '{role_name}' not found")

    permission = db.session.query(Permission).filter_by(code=permission_code).first()
    if not permission:
        raise ValueError(f"Permission '{permission_code}' not found")

    role_permission = db.session.query(RolePermission).filter_by(
        role_id=role.id,
        permission_id=permission.id
    ).first()

    if role_permission is None:
        return False

    db.session.delete(role_permission)
    db.session.commit()
    return True
