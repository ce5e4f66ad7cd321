# Overview: Service-layer operations for employees (tenant user accounts).

from __future__ import annotations

from ..extensions import db
from ..models import Role, User, UserRole
from ..validation import ConflictError, ValidationError
from . import auth_service, permission_service, session_service
from umipos.time_utils import utcnow

EMPLOYEE_MUTABLE_FIELDS = {"email", "full_name", "role", "password"}


def employee_to_dict(user: User) -> dict:
    data = user.to_dict()
    data["roles"] = permission_service.get_user_role_names(user.id)
    return data


def list_employees(tenant_id: int, include_inactive: bool = False) -> list[User]:
    q = db.session.query(User).filter(User.tenant_id == tenant_id)
    if not include_inactive:
        q = q.filter(User.is_active.is_(True))
    return q.order_by(User.username.asc()).all()


def create_employee(
    *,
    tenant_id: int,
    username: str,
    email: str,
    password: str,
    role_name: str,
    full_name: str | None = None,
) -> User:
    """
    Create a user in the tenant and give it one role.

    The role is checked before the user row is written.

    Raises:
        ValueError: unknown role, duplicate username/email
        PasswordValidationError: weak password
    """
    role = db.session.query(Role).filter_by(tenant_id=tenant_id, name=role_name).first()
    if role is None:
        raise ValueError(f"Role {role_name} not found")

    user = auth_service.create_user(
        username=username,
        email=email,
        password=password,
        tenant_id=tenant_id,
        full_name=full_name,
    )
    auth_service.assign_role(user.id, role_name)
    return user


def deactivate_employee(*, tenant_id: int, user_id: int, acting_user_id: int) -> User | None:
    """
    Soft-delete an employee and revoke all of their sessions.

    Returns None if the user is not an active member of the tenant.
    Raises ConflictError when a user tries to deactivate themselves.
    """
    if user_id == acting_user_id:
        raise ConflictError("You cannot deactivate your own account")

    user = db.session.query(User).filter_by(id=user_id, tenant_id=tenant_id, is_active=True).first()
    if user is None:
        return None

    user.is_active = False
    user.updated_at = utcnow()
    db.session.commit()

    session_service.revoke_all_user_sessions(user.id, reason="Account deactivated")
    return user


def get_employee(tenant_id: int, user_id: int) -> User | None:
    """Any account of the tenant, active or not."""
    return db.session.query(User).filter_by(id=user_id, tenant_id=tenant_id).first()


def update_employee(
    *,
    tenant_id: int,
    user_id: int,
    acting_user_id: int,
    patch: dict,
) -> User | None:
    """
    Apply an edit to an employee.

    patch may carry email, full_name, role and password. A new role replaces
    every role the user held. A new password revokes the user's sessions.
    Everything is checked before the row is touched.
    Returns None if the user is not in the tenant.

    Raises:
        ValidationError: unknown field, blank email, unknown role
        ConflictError: email taken in the tenant, or a user changing their own role
        PasswordValidationError: weak password
    """
    unknown = set(patch) - EMPLOYEE_MUTABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

    user = get_employee(tenant_id, user_id)
    if user is None:
        return None

    email = None
    if "email" in patch:
        email = str(patch["email"] or "").strip()
        if not email:
            raise ValidationError("email cannot be blank")
        taken = db.session.query(User).filter(
            User.tenant_id == tenant_id,
            User.id != user.id,
            db.or_(User.email == email, User.username == email),
        ).first()
        if taken is not None:
            raise ConflictError("Email already exists in this tenant")

    role = None
    if "role" in patch:
        if user.id == acting_user_id:
            raise ConflictError("You cannot change your own role")
        role = db.session.query(Role).filter_by(tenant_id=tenant_id, name=patch["role"]).first()
        if role is None:
            raise ValidationError(f"Role {patch['role']} not found")

    password_hash = None
    if patch.get("password"):
        password_hash = auth_service.hash_password(patch["password"])

    if email is not None:
        user.email = email
    if "full_name" in patch:
        user.full_name = str(patch["full_name"] or "").strip() or None
    if password_hash is not None:
        user.password_hash = password_hash
    if role is not None:
        db.session.query(UserRole).filter_by(user_id=user.id).delete(synchronize_session=False)
        db.session.add(UserRole(user_id=user.id, role_id=role.id))

    user.updated_at = utcnow()
    db.session.commit()

    if password_hash is not None:
        session_service.revoke_all_user_sessions(user.id, reason="Password changed")
    return user


def set_employee_status(*, tenant_id: int, user_id: int, acting_user_id: int, is_active: bool) -> User | None:
    """
    Reactivate or deactivate an employee. Deactivation revokes their sessions.

    Returns None if the user is not in the tenant.
    Raises ConflictError when a user tries to deactivate themselves.
    """
    if not is_active and user_id == acting_user_id:
        raise ConflictError("You cannot deactivate your own account")

    user = get_employee(tenant_id, user_id)
    if user is None:
        return None

    if user.is_active != is_active:
        user.is_active = is_active
        user.updated_at = utcnow()
        db.session.commit()

    if not is_active:
        session_service.revoke_all_user_sessions(user.id, reason="Account deactivated")
    return user
