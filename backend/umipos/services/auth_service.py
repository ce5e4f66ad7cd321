# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service with Multi-Tenant Support

MULTI-TENANT: Users belong to exactly one tenant (tenant_id).
Username/email uniqueness is tenant-scoped.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor BCRYPT_ROUNDS)
- Minimum 8 characters, upper, lower, digit and special char
- Session tokens managed separately (see session_service.py)
- Authentication fails for inactive users and inactive tenants
"""

import re

import bcrypt

from ..extensions import db
from ..models import User, Role, UserRole, Tenant
from ..permissions import DEFAULT_ROLES
from umipos.time_utils import utcnow


BCRYPT_ROUNDS = 12


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class TenantRequiredError(Exception):
    """Raised when a login name matches accounts in more than one tenant."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then bcrypt-hash the password."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    username: str,
    email: str,
    password: str,
    tenant_id: int,
    full_name: str | None = None,
) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValueError: If tenant doesn't exist/is inactive, or user exists in tenant
        PasswordValidationError: If password doesn't meet requirements
    """
    tenant = db.session.query(Tenant).filter_by(id=tenant_id).first()
    if not tenant:
        raise ValueError("Tenant not found")
    if not tenant.is_active:
        raise ValueError("Tenant is not active")

    existing = db.session.query(User).filter(
        User.tenant_id == tenant_id,
        db.or_(User.username == username, User.email == email)
    ).first()

    if existing:
        raise ValueError("Username or email already exists in this tenant")

    password_hash = hash_password(password)

    user = User(
        tenant_id=tenant_id,
        username=username,
        email=email,
        full_name=full_name,
        password_hash=password_hash,
    )

    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str, tenant_id: int | None = None) -> User | None:
    """
    Authenticate by username (or email) and password.

    If tenant_id is given the lookup is scoped to that tenant.
    Returns the User on success (and stamps last_login_at), None otherwise.

    Raises:
        TenantRequiredError: no tenant_id and the name exists in several tenants
    """
    query = db.session.query(User).filter(
        db.or_(User.username == username, User.email == username),
        User.is_active.is_(True),
    )

    if tenant_id is not None:
        query = query.filter(User.tenant_id == tenant_id)

    matches = query.order_by(User.id).all()
    if tenant_id is None and len({u.tenant_id for u in matches}) > 1:
        raise TenantRequiredError("tenant_code required")

    user = matches[0] if matches else None

    if not user:
        return None

    tenant = db.session.query(Tenant).filter_by(id=user.tenant_id).first()
    if not tenant or not tenant.is_active:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def assign_role(user_id: int, role_name: str) -> UserRole:
    """Assign a role from the user's own tenant."""
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise ValueError("User not found")

    role = db.session.query(Role).filter_by(tenant_id=user.tenant_id, name=role_name).first()
    if not role:
        raise ValueError(f"Role {role_name} not found")

    existing = db.session.query(UserRole).filter_by(
        user_id=user_id,
        role_id=role.id
    ).first()

    if existing:
        return existing

    user_role = UserRole(user_id=user_id, role_id=role.id)

    db.session.add(user_role)
    db.session.commit()
    return user_role


def create_default_roles(tenant_id: int) -> list[Role]:
    """Create the standard roles for a tenant if they don't exist."""
    roles = []
    for name, desc in DEFAULT_ROLES:
        role = db.session.query(Role).filter_by(tenant_id=tenant_id, name=name).first()
        if not role:
            role = Role(tenant_id=tenant_id, name=name, description=desc)
            db.session.add(role)
        roles.append(role)

    db.session.commit()
    return roles
