"""
Shared transaction helper for module services (``supply_modules._transaction``).

Responsibility
--------------
Module services own their transaction boundary: commit on success,
rollback on any exception.  Storage outages surface as
``StorageUnavailableError`` (transient, safe to retry the whole call
because nothing was committed); every other exception is re-raised as is.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from supply_kernel.exceptions import StorageUnavailableError
from supply_kernel.logging_config import get_logger

logger = get_logger("modules.transaction")


@contextmanager
def owned_transaction(session: Session, operation: str) -> Iterator[Session]:
    """Commit the session when the block succeeds, roll back when it raises."""
    try:
        yield session
        session.commit()
    except OperationalError as exc:
        session.rollback()
        logger.warning(
            "transaction_storage_unavailable",
            extra={"operation": operation},
            exc_info=True,
        )
        raise StorageUnavailableError(operation, str(exc.orig or exc)) from exc
    except Exception:
        session.rollback()
        logger.info("transaction_rolled_back", extra={"operation": operation})
        raise
