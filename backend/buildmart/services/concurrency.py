# Overview: Row locking and retry helpers for write paths that race.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError

from ..extensions import db


def lock_for_update(query):
    """SELECT ... FOR UPDATE on engines that support it (SQLite ignores it)."""
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Call func(), retrying when the database reports a lock conflict.

    Only OperationalError (deadlock, "database is locked") is retried, with
    exponential backoff; the session is rolled back before each retry and
    the last failure is re-raised. Other errors are not caught here.
    """
    attempt = 1
    while True:
        try:
            return func()
        except OperationalError:
            db.session.rollback()
            if attempt == attempts:
                raise
            current_app.logger.warning("Lock conflict, retry %d of %d", attempt, attempts - 1)
            time.sleep(backoff_base * 2 ** (attempt - 1))
            attempt += 1
