import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from classroom.core.errors import DatabaseError

logger = logging.getLogger(__name__)


@contextmanager
def transaction(db: Session):
    """
    Run a block of writes as one unit on the given session.

    Commits when the block finishes and rolls back when anything inside it
    raises, so no partial multi-row write is ever visible. Integrity errors
    are re-raised untouched for the caller to classify; other SQLAlchemy
    errors surface as DatabaseError.

    Usage:
        with transaction(db):
            db.add(row)
    """
    try:
        yield db
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Transaction rolled back: {str(e)}")
        raise DatabaseError("Database operation failed") from e
    except Exception:
        db.rollback()
        raise
