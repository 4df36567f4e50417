import contextlib
import logging

from sqlalchemy.orm import sessionmaker

from database.repository import AdmissionRepository

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def admission_uow(session_factory: sessionmaker):
    """Per-unit-of-work transaction scope.

    Yields an AdmissionRepository bound to a fresh Session. Commits on
    success, rolls back on exception, always closes.

    Usage:
        with admission_uow(session_factory) as repo:
            application = repo.applications.get_by_id(application_id)
            # perform operations...
        # commit happens automatically on successful exit
    """
    session = session_factory()
    try:
        repo = AdmissionRepository(session)
        yield repo
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
