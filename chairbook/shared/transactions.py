"""Transaction helpers shared by the domain services"""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import SchedulingError, StoreError

logger = logging.getLogger(__name__)


@contextmanager
def guarded_write(db: Session, action: str):
    """
    Roll the session back if the enclosed write fails.

    Domain errors are re-raised as they are; database errors are logged and
    surface as ``StoreError`` so the API answers with the usual error body.
    """
    try:
        yield
    except SchedulingError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(f"Failed to {action}; transaction rolled back")
        raise StoreError(f"Failed to {action}", cause=exc) from exc
