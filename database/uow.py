import contextlib

from sqlalchemy.orm import sessionmaker

from database.database import db_session_scope
from database.repository import DispatchRepository


@contextlib.contextmanager
def dispatch_uow(session_factory: sessionmaker = None):
    """Per-unit-of-work transaction scope.

    Yields a DispatchRepository bound to a fresh Session. Commits on success,
    rolls back on exception, always closes.

    Usage:
        with dispatch_uow() as repo:
            repo.notifications.create_notification(...)
        # commit happens automatically on successful exit
    """
    with db_session_scope(session_factory) as session:
        yield DispatchRepository(session)
