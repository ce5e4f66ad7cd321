"""
Session expiry, revocation and the background cleanup worker.
"""

import threading
from datetime import timedelta

from umipos.extensions import db
from umipos.models import SessionToken
from umipos.services import session_service
from umipos.services.session_cleanup import (
    EXTENSION_KEY,
    SessionCleanupWorker,
    start_session_cleanup,
)
from umipos.time_utils import utcnow


class TestCleanupExpiredSessions:

    def test_deletes_expired_and_revoked_only(self, db_session, admin_a):
        live, live_token = session_service.create_session(admin_a.id)
        expired, _ = session_service.create_session(admin_a.id)
        revoked, revoked_token = session_service.create_session(admin_a.id)

        expired.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()
        session_service.revoke_session(revoked_token)

        assert session_service.cleanup_expired_sessions() == 2

        remaining = db.session.query(SessionToken).all()
        assert [s.id for s in remaining] == [live.id]
        assert session_service.validate_session(live_token) is not None

    def test_nothing_to_delete(self, db_session, admin_a):
        session_service.create_session(admin_a.id)
        assert session_service.cleanup_expired_sessions() == 0


class TestSessionValidation:

    def test_idle_timeout_revokes(self, db_session, admin_a):
        session, token = session_service.create_session(admin_a.id)
        session.last_used_at = utcnow() - session_service.SESSION_IDLE_TIMEOUT - timedelta(minutes=1)
        db_session.commit()

        assert session_service.validate_session(token) is None
        assert db.session.get(SessionToken, session.id).is_revoked

    def test_deactivated_user_rejected(self, db_session, admin_a):
        _, token = session_service.create_session(admin_a.id)
        admin_a.is_active = False
        db_session.commit()
        assert session_service.validate_session(token) is None

    def test_context_carries_tenant(self, db_session, admin_a):
        _, token = session_service.create_session(admin_a.id)
        context = session_service.validate_session(token)
        assert context.tenant_id == admin_a.tenant_id
        assert context.user.id == admin_a.id


class TestActiveSessions:

    def test_only_live_sessions_count(self, db_session, admin_a, cashier_a):
        live, _ = session_service.create_session(admin_a.id)
        expired, _ = session_service.create_session(admin_a.id)
        idle, _ = session_service.create_session(admin_a.id)
        _, revoked_token = session_service.create_session(admin_a.id)
        session_service.create_session(cashier_a.id)

        expired.expires_at = utcnow() - timedelta(minutes=1)
        idle.last_used_at = utcnow() - session_service.SESSION_IDLE_TIMEOUT - timedelta(minutes=1)
        db_session.commit()
        session_service.revoke_session(revoked_token)

        assert [s.id for s in session_service.get_active_sessions(admin_a.id)] == [live.id]
        assert session_service.get_active_session_count(admin_a.id) == 1

    def test_device_limit(self, db_session, admin_a):
        assert not session_service.is_device_limit_reached(admin_a.id, 2)
        session_service.create_session(admin_a.id)
        session_service.create_session(admin_a.id)
        assert session_service.is_device_limit_reached(admin_a.id, 2)
        assert not session_service.is_device_limit_reached(admin_a.id, 3)

    def test_zero_limit_is_unlimited(self, db_session, admin_a):
        session_service.create_session(admin_a.id)
        assert not session_service.is_device_limit_reached(admin_a.id, 0)


class TestSessionCleanupWorker:

    def test_run_once_returns_count(self, app):
        worker = SessionCleanupWorker(app, interval_seconds=60, cleanup=lambda: 3)
        assert worker.run_once() == 3
        assert worker.ticks == 1

    def test_failure_is_logged_and_swallowed(self, app, caplog):
        def boom():
            raise RuntimeError("database is locked")

        worker = SessionCleanupWorker(app, interval_seconds=60, cleanup=boom)
        assert worker.run_once() is None
        assert "Error occurred during session cleanup." in caplog.text

    def test_loop_survives_failures(self, app):
        calls = []
        done = threading.Event()

        def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("transient")
            if len(calls) >= 3:
                done.set()
            return 0

        worker = SessionCleanupWorker(app, interval_seconds=0.01, cleanup=flaky)
        worker.start()
        try:
            assert done.wait(5)
        finally:
            worker.stop(timeout=5)

        assert len(calls) >= 3
        assert not worker.is_running

    def test_stop_wakes_sleeping_worker(self, app):
        started = threading.Event()

        def cleanup():
            started.set()
            return 0

        worker = SessionCleanupWorker(app, interval_seconds=3600, cleanup=cleanup)
        worker.start()
        assert started.wait(5)
        worker.stop(timeout=5)
        assert not worker.is_running

    def test_disabled_by_config(self, app):
        # The test app runs with SESSION_CLEANUP_ENABLED = False
        assert start_session_cleanup(app) is None
        assert EXTENSION_KEY not in app.extensions
