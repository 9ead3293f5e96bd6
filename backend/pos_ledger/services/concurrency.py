# Overview: Locking and retry helpers shared by the inventory, sales and refund services.

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError

from ..extensions import db

logger = logging.getLogger(__name__)

# Serializes every read-modify-write on products and sales within the process.
_write_lock = threading.RLock()


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def serialized_write():
    """
    Run one mutating operation as a single atomic unit.

    Holds the process-wide write lock for the duration and rolls the session
    back if the block raises, so a failed validate-then-commit never leaves
    partial changes pending in the session. The block is responsible for
    committing on success.
    """
    with _write_lock:
        try:
            yield db.session
        except Exception:
            db.session.rollback()
            raise


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a read-only DB operation with retry on transient failures.

    Mutations must not go through here: after an indeterminate failure a
    retried checkout or refund could apply twice.
    """
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            delay = backoff_base * (2 ** attempt)
            logger.warning("Transient database error, retrying in %.2fs (attempt %d/%d)", delay, attempt + 1, attempts)
            time.sleep(delay)
