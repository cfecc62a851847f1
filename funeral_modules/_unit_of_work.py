"""
Transaction helper shared by module services (``funeral_modules._unit_of_work``).

Every public service method that writes owns its transaction: commit on
success, roll back and re-raise on any exception.  A failing commit is
reported as ``PersistenceError``.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from funeral_kernel.exceptions import PersistenceError
from funeral_kernel.logging_config import get_logger

logger = get_logger("modules.unit_of_work")


@contextmanager
def unit_of_work(session: Session, operation: str) -> Iterator[Session]:
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("transaction_rolled_back", extra={
            "operation": operation,
            "error": str(exc),
        })
        raise PersistenceError(f"{operation} failed: {exc}") from exc
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", extra={"operation": operation})
        raise
