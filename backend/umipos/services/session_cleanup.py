# Overview: Background worker that periodically purges expired and revoked sessions.

"""
Session Cleanup Worker

Runs session_service.cleanup_expired_sessions() on a fixed interval
(SESSION_CLEANUP_INTERVAL_MINUTES, default 15) in a daemon thread,
independent of request traffic.

- Each tick runs inside its own application context
- A failing tick is logged and the loop carries on
- stop() wakes the thread immediately instead of waiting out the interval
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from flask import Flask

from . import session_service
from umipos.time_utils import utcnow

logger = logging.getLogger(__name__)

EXTENSION_KEY = "umipos.session_cleanup"


class SessionCleanupWorker:
    def __init__(
        self,
        app: Flask,
        interval_seconds: float,
        cleanup: Optional[Callable[[], int]] = None,
    ):
        self.app = app
        self.interval_seconds = interval_seconds
        self._cleanup = cleanup or session_service.cleanup_expired_sessions
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.ticks = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> Optional[int]:
        """Run one cleanup pass. Returns rows deleted, or None if it failed."""
        self.ticks += 1
        try:
            with self.app.app_context():
                deleted = self._cleanup()
        except Exception:
            logger.exception("Error occurred during session cleanup.")
            return None
        logger.debug("Session cleanup completed at %s", utcnow().isoformat())
        return deleted

    def _run(self) -> None:
        logger.info("Session cleanup worker is starting.")
        while not self._stop_event.is_set():
            self.run_once()
            self._stop_event.wait(self.interval_seconds)
        logger.info("Session cleanup worker is stopping.")

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="session-cleanup", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


def start_session_cleanup(app: Flask) -> Optional[SessionCleanupWorker]:
    """
    Start the worker for this app if SESSION_CLEANUP_ENABLED.

    The worker is kept in app.extensions so it is started at most once.
    """
    if not app.config.get("SESSION_CLEANUP_ENABLED", False):
        return None

    worker = app.extensions.get(EXTENSION_KEY)
    if worker is None:
        minutes = app.config.get("SESSION_CLEANUP_INTERVAL_MINUTES", 15)
        worker = SessionCleanupWorker(app, interval_seconds=minutes * 60)
        app.extensions[EXTENSION_KEY] = worker

    worker.start()
    return worker
