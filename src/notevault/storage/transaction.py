"""Transaction boundary for note and version writes.

Everything the engine does to the database happens inside ``transaction()``:
it commits when the block finishes, and on any exception (including
KeyboardInterrupt or a cancelled request) it rolls back before re-raising, so
a note is never left with a half-written snapshot or a half-applied change.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from notevault.exceptions import ContentionError, StorageError
from notevault.models.db_models import WRITE_TRANSACTION_OPTION

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATEs that mean "someone else holds the lock, try again"
_PG_CONTENTION_CODES = {
    "55P03",  # lock_not_available (lock_timeout / NOWAIT)
    "40001",  # serialization_failure
    "40P01",  # deadlock_detected
}


def is_contention_error(error: DBAPIError) -> bool:
    """Whether a driver error means a lock wait gave up rather than a real fault."""
    orig = getattr(error, "orig", None)
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode in _PG_CONTENTION_CODES:
        return True
    message = str(orig or error).lower()
    return "database is locked" in message or "database table is locked" in message


@contextmanager
def transaction(
    session_factory: sessionmaker,
    write: bool = False,
    lock_timeout: float = 5.0,
) -> Iterator[Session]:
    """Run a block of repository calls as one atomic transaction.

    Args:
        session_factory: Factory bound to the engine.
        write: Open a write transaction. On SQLite this begins with
            BEGIN IMMEDIATE (the database write lock is held for the whole
            transaction); on PostgreSQL row locks are bounded by
            ``SET LOCAL lock_timeout``.
        lock_timeout: Seconds to wait for locks (PostgreSQL; SQLite uses the
            engine's connect timeout).

    Yields:
        The session; repositories bind to it for the duration of the block.

    Raises:
        ContentionError: A lock could not be acquired in time.
        StorageError: Any other database failure.
    """
    session = session_factory()
    try:
        if write:
            conn = session.connection(
                execution_options={WRITE_TRANSACTION_OPTION: True}
            )
            if conn.dialect.name == "postgresql":
                session.execute(
                    text(f"SET LOCAL lock_timeout = {int(lock_timeout * 1000)}")
                )
        yield session
        session.commit()
    except OperationalError as e:
        session.rollback()
        if is_contention_error(e):
            logger.warning(f"Lock contention, transaction rolled back: {e.orig}")
            raise ContentionError(original_error=e) from e
        logger.error(f"Database error, transaction rolled back: {e}")
        raise StorageError(
            "Database operation failed",
            operation="write" if write else "read",
            original_error=e,
        ) from e
    except BaseException:
        session.rollback()
        raise
    finally:
        session.close()
