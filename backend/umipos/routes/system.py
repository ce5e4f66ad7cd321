# backend/umipos/routes/system.py
"""
System health and version endpoints. Both are public.
"""

import sys
import time

from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..decorators import allow_anonymous
from ..extensions import db
from ..models import Permission, SessionToken, Tenant
from ..services.session_cleanup import EXTENSION_KEY as SESSION_CLEANUP_KEY
from umipos.time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)

API_VERSION = "1.0.0"


def check_database_health() -> dict:
    start_time = time.time()
    try:
        tenant_count = db.session.query(Tenant).count()
        permission_count = db.session.query(Permission).count()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy" if permission_count > 0 else "degraded",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "tenants": tenant_count,
                "permissions_initialized": permission_count > 0,
            },
        }
    except SQLAlchemyError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_session_health() -> dict:
    """Session table reachable; reports rows waiting for the cleanup worker."""
    try:
        pending_cleanup = db.session.query(SessionToken).filter(
            db.or_(
                SessionToken.expires_at <= utcnow(),
                SessionToken.is_revoked.is_(True),
            )
        ).count()
    except SQLAlchemyError:
        current_app.logger.exception("Session health check failed")
        return {"status": "unhealthy", "error": "Session store error"}

    worker = current_app.extensions.get(SESSION_CLEANUP_KEY)
    return {
        "status": "healthy",
        "details": {
            "pending_cleanup": pending_cleanup,
            "cleanup_worker_running": bool(worker and worker.is_running),
        },
    }


@system_bp.get("/health")
@allow_anonymous
def health():
    """
    Returns:
    - 200: healthy or degraded (e.g. permissions not seeded yet)
    - 503: a dependency is unhealthy
    """
    checks = {
        "database": check_database_health(),
        "sessions": check_session_health(),
    }

    statuses = {check["status"] for check in checks.values()}
    if "unhealthy" in statuses:
        overall, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall, http_status = "degraded", 200
    else:
        overall, http_status = "healthy", 200

    return {
        "status": overall,
        "timestamp": to_utc_z(utcnow()),
        "checks": checks,
    }, http_status


@system_bp.get("/version")
@allow_anonymous
def version():
    env = "production" if not current_app.debug else "development"
    return {
        "api_version": API_VERSION,
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
