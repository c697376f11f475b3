"""One command, one transaction.

Every mutating service method runs its reads and writes inside
``unit_of_work``: the session commits once at the end, and any failure
rolls the whole command back. Constraint violations (a second current row,
a second baseline, a duplicate lineage version) surface as ConflictError so
the losing concurrent writer can retry.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import ConflictError, PersistenceError

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(db: Session, resource_id: str = "") -> Iterator[Session]:
    try:
        yield db
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(
            "Write rejected by a uniqueness constraint",
            extra={"resource_id": resource_id, "error": str(e.orig)},
        )
        raise ConflictError(resource_id) from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Database operation failed", extra={"resource_id": resource_id}, exc_info=True)
        raise PersistenceError("Database operation failed", original_error=e) from e
    except Exception:
        db.rollback()
        raise
