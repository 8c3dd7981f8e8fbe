import logging
from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm import Session

from cashlog.core.errors import ConflictError, StoreUnavailableError

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(s: Session, conflict_code: str = "conflict", conflict_message: str | None = None):
    """Commit on success, roll back everything on any failure.

    Store-level failures are translated into the service error taxonomy;
    everything else propagates unchanged.
    """
    try:
        yield s
        s.commit()
    except IntegrityError as e:
        s.rollback()
        raise ConflictError(conflict_message or "Conflicting record exists", code=conflict_code) from e
    except OperationalError as e:
        s.rollback()
        logger.error("store unavailable: %s", e.orig)
        raise StoreUnavailableError() from e
    except DBAPIError as e:
        s.rollback()
        if e.connection_invalidated:
            raise StoreUnavailableError() from e
        raise
    except BaseException:
        s.rollback()
        raise
