# Overview: Retry helper for storage-level contention (locked database, stale rows).

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


logger = logging.getLogger(__name__)

# SQLite "database is locked" surfaces as OperationalError
RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def run_with_retry(func, *, attempts: int = 5, backoff_base: float = 0.05):
    """
    Run one unit of work that ends in its own commit, retrying on contention.

    The session is rolled back before every retry so func starts from a clean
    transaction. Business errors raised by func propagate on the first attempt.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt == attempts:
                logger.error("Giving up after %d attempts: %s", attempts, exc)
                raise
            delay = backoff_base * (2 ** (attempt - 1))
            logger.warning("Storage contention on attempt %d, retrying in %.2fs: %s", attempt, delay, exc)
            time.sleep(delay)
