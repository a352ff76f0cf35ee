"""
Transaction boundary for engine operations.

Every mutating operation runs its read-validate-write sequence inside ``atomic``:
one commit on success, rollback on any failure. Uniqueness violations raised by
the store (the partial indexes backing the one-open-session and one-overtime-per-day
rules) and stale version checks become ConflictError; every other database error
propagates untouched.
"""
import logging
from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import ConflictError

logger = logging.getLogger(__name__)

_UNIQUE_MARKERS = ("unique constraint", "duplicate key")


def is_unique_violation(exc: IntegrityError) -> bool:
    """True for UNIQUE failures on SQLite ('UNIQUE constraint failed') and PostgreSQL (SQLSTATE 23505)."""
    if getattr(exc.orig, "pgcode", None) == "23505":
        return True
    msg = str(exc.orig).lower()
    return any(marker in msg for marker in _UNIQUE_MARKERS)


@contextmanager
def atomic(db: Session, conflict_code: str, **context: Any) -> Iterator[Session]:
    """
    Run the enclosed block as one transaction.

    Args:
        db: Database session
        conflict_code: ConflictError code reported when the store rejects the write as a duplicate
        context: Identifiers attached to that ConflictError
    """
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if not is_unique_violation(exc):
            raise
        logger.info("store rejected write: code=%s context=%s", conflict_code, context)
        raise ConflictError(conflict_code, **context) from exc
    except StaleDataError as exc:
        db.rollback()
        logger.info("concurrent modification detected: context=%s", context)
        raise ConflictError("concurrent_modification", **context) from exc
    except Exception:
        db.rollback()
        raise
