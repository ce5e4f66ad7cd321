# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service with Multi-Tenant Support

Tokens are random, stored only as SHA-256 hashes, and time-limited.
Sessions capture tenant_id at creation time; that tenant context is
immutable for the session lifetime.

SECURITY FEATURES:
- 32 bytes of entropy per token (secrets.token_hex)
- 24-hour absolute timeout (SESSION_ABSOLUTE_TIMEOUT)
- 2-hour idle timeout (SESSION_IDLE_TIMEOUT)
- Revocable on logout or account deactivation
- Expired and revoked rows are purged by cleanup_expired_sessions()
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta

from ..extensions import db
from ..models import SessionToken, User, Tenant
from umipos.time_utils import utcnow

logger = logging.getLogger(__name__)

SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)  # Maximum session length
SESSION_IDLE_TIMEOUT = timedelta(hours=2)        # Activity timeout


@dataclass
class SessionContext:
    """Identity and tenant context of a validated session."""
    user: User
    session: SessionToken
    tenant_id: int


def generate_token() -> str:
    return secrets.token_hex(32)  # 32 bytes = 64 hex characters


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy, so a fast hash is sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create a session for the user, capturing the user's tenant.

    Returns (session_record, plaintext_token). Only the hash is stored.
    Raises ValueError if the user or its tenant is missing/inactive.
    """
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user:
        raise ValueError("User not found")

    tenant = db.session.query(Tenant).filter_by(id=user.tenant_id).first()
    if not tenant or not tenant.is_active:
        raise ValueError("Tenant is not active")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user_id,
        tenant_id=user.tenant_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason


def validate_session(token: str) -> SessionContext | None:
    """
    Validate a plaintext token and return its SessionContext.

    Returns None if the token is unknown, revoked, past its absolute or
    idle timeout, or belongs to an inactive user/tenant (the latter three
    also revoke the session). Refreshes last_used_at on success.
    """
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        _revoke(session, "Idle timeout")
        db.session.commit()
        return None

    user = session.user
    if not user or not user.is_active:
        _revoke(session, "User account deactivated")
        db.session.commit()
        return None

    tenant = session.tenant
    if not tenant or not tenant.is_active:
        _revoke(session, "Tenant deactivated")
        db.session.commit()
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(user=user, session=session, tenant_id=session.tenant_id)


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Revoke one session. Returns False if no active session matches."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    db.session.commit()
    return True


def revoke_all_user_sessions(user_id: int, reason: str = "Revoke all sessions") -> int:
    """Revoke every active session of a user. Returns the count."""
    sessions = db.session.query(SessionToken).filter_by(
        user_id=user_id,
        is_revoked=False
    ).all()

    for session in sessions:
        _revoke(session, reason)

    db.session.commit()
    return len(sessions)


def cleanup_expired_sessions() -> int:
    """
    Delete sessions that are past expires_at or revoked.

    Returns count of sessions deleted. Called by the background cleanup
    worker and by `flask sessions cleanup`.
    """
    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at <= utcnow(),
            SessionToken.is_revoked.is_(True),
        )
    ).delete(synchronize_session=False)

    db.session.commit()

    if deleted:
        logger.info("Cleaned up %d expired sessions", deleted)
    return deleted


def _active_sessions_query(user_id: int):
    now = utcnow()
    return db.session.query(SessionToken).filter(
        SessionToken.user_id == user_id,
        SessionToken.is_revoked.is_(False),
        SessionToken.expires_at > now,
        SessionToken.last_used_at >= now - SESSION_IDLE_TIMEOUT,
    )


def get_active_sessions(user_id: int) -> list[SessionToken]:
    """Live sessions of a user, newest first."""
    return _active_sessions_query(user_id).order_by(
        SessionToken.created_at.desc(), SessionToken.id.desc()
    ).all()


def get_active_session_count(user_id: int) -> int:
    return _active_sessions_query(user_id).count()


def is_device_limit_reached(user_id: int, max_devices: int) -> bool:
    """
    True when the user already holds max_devices live sessions.

    A max_devices of 0 or less means no limit.
    """
    if max_devices <= 0:
        return False
    return get_active_session_count(user_id) >= max_devices


def revoke_user_session(user_id: int, session_id: int, reason: str = "Revoked by user") -> bool:
    """Revoke one of the user's own sessions by id. Returns False if none matches."""
    session = db.session.query(SessionToken).filter_by(
        id=session_id,
        user_id=user_id,
        is_revoked=False
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    db.session.commit()
    return True
