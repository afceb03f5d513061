# Overview: Transaction boundary helpers shared by every ledger-mutating service.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; unit_of_work() takes the
    database write lock up front there instead.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, "database is locked") and
    StaleDataError (optimistic version conflicts). Anything else
    propagates immediately.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Concurrency conflict (attempt %s/%s): %s", attempt + 1, attempts, exc.__class__.__name__
            )
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def _begin_write():
    db.session.rollback()
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def unit_of_work(func, *, attempts: int | None = None):
    """
    Run ``func`` as one atomic unit: every read and write it makes is
    committed together, or none of them are.

    - The session starts clean; on SQLite the write lock is reserved with
      BEGIN IMMEDIATE so stock/balance re-checks see committed state.
    - Any exception rolls the whole unit back and is re-raised.
    - Lock and version conflicts re-run ``func`` from scratch.
    """
    if attempts is None:
        attempts = current_app.config.get("UNIT_OF_WORK_ATTEMPTS", 3)

    def _attempt():
        _begin_write()
        try:
            result = func()
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return result

    return run_with_retry(_attempt, attempts=attempts)
