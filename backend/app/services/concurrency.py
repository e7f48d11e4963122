# Overview: Transaction helpers shared by services: row locking and bounded retry of a unit of work.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


class OrderNumberCollision(Exception):
    """Another transaction claimed the generated order number first."""


RETRYABLE_ERRORS = (OperationalError, StaleDataError, OrderNumberCollision)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, retry_on=RETRYABLE_ERRORS):
    """
    Execute a unit of work, re-running it from scratch on concurrency failures.

    The session is rolled back after every failure. Errors outside retry_on
    propagate immediately; retryable errors propagate once attempts run out.
    """
    for attempt in range(attempts):
        try:
            return func()
        except retry_on as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Retrying unit of work after %s (attempt %d of %d)",
                type(exc).__name__, attempt + 1, attempts,
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
