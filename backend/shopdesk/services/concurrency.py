# Overview: Row locking and retry helpers for read-modify-write sequences.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Ask the database for a row lock on the selected documents.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, so on SQLite two overlapping
    stock updates can still lose one write. Other databases honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run a unit of DB work, rolling back and retrying on transient failures.

    Retries on OperationalError (database locked, deadlocks) and
    StaleDataError. Anything else propagates on the first failure.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
