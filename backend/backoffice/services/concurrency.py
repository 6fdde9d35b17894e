# Overview: Row locking and retry for stock writes that may race.

"""
Stock writes (leaflet orders, manual stock edits) read a Leaflet row, check
its value and write it back. Two screens doing that at once must not both
win:

- lock_for_update() asks the database for a row lock (SELECT ... FOR UPDATE)
- Leaflet.version_id makes a lost update fail with StaleDataError where
  the database cannot lock (SQLite)
- run_with_retry() rolls back and replays the whole unit of work
"""

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Call func(), replaying it after a lock timeout or a stale version.

    func must re-read every row it touches. Domain errors it raises are
    not retried. The last conflict is re-raised once attempts run out.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt == attempts:
                raise
            current_app.logger.warning(
                "Concurrent stock write (%s), retry %s/%s", type(exc).__name__, attempt, attempts - 1
            )
            time.sleep(backoff_base * 2 ** (attempt - 1))
