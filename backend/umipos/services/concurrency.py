# Overview: Service-layer helpers for row locking and retrying contended writes.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking (SELECT ... FOR UPDATE).

    NOTE: SQLite ignores FOR UPDATE; concurrent writers are then serialized
    only by the database's own transaction isolation.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation, retrying on OperationalError (deadlocks, locks).

    The session is rolled back before each retry.
    """
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
