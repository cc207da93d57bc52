# ticketing/db/unit_of_work.py
"""
Explicit transaction boundary for service-layer operations.

Services never call ``db.commit()`` directly inside their business logic.
They hand a callable to ``run_in_transaction`` (or open ``transaction(db)``)
so that every write made by the callable is committed together or rolled
back together.
"""

import logging
import time
from contextlib import contextmanager
from typing import Callable, TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures worth retrying: lock timeouts, deadlocks, serialization failures
# and optimistic-locking conflicts.
RETRYABLE_ERRORS = (OperationalError, StaleDataError)


@contextmanager
def transaction(db: Session):
    """Commit on success, roll back on any exception and re-raise it."""
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_in_transaction(
    db: Session,
    func: Callable[[Session], T],
    *,
    attempts: int = 1,
    backoff_base: float = 0.05,
) -> T:
    """
    Run ``func(db)`` inside one transaction, retrying on concurrency failures.

    Each attempt starts from a clean session state, so ``func`` must re-read
    everything it depends on. Non-retryable exceptions propagate after the
    rollback; the last retryable exception propagates once attempts run out.
    """
    for attempt in range(attempts):
        try:
            with transaction(db):
                return func(db)
        except RETRYABLE_ERRORS as exc:
            if attempt >= attempts - 1:
                raise
            delay = backoff_base * (2 ** attempt)
            logger.warning(
                f"Transaction conflict ({type(exc).__name__}), retrying in {delay:.2f}s "
                f"(attempt {attempt + 1}/{attempts})"
            )
            time.sleep(delay)
    raise RuntimeError("run_in_transaction called with attempts < 1")
