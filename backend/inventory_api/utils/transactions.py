from contextlib import contextmanager
from typing import Callable, Iterator

from sqlalchemy.orm import Session


@contextmanager
def transaction_scope(session_factory: Callable[[], Session]) -> Iterator[Session]:
    """
    Open a dedicated session, run the block inside a single transaction and
    always close the session afterwards.

    The transaction commits when the block exits normally and rolls back when
    it raises, so callers never see a transaction left half-open.
    Usage:
        with transaction_scope(SessionLocal) as db:
            ... DB work ...
    """
    session = session_factory()
    try:
        with session.begin():
            yield session
    finally:
        session.close()


@contextmanager
def read_scope(session_factory: Callable[[], Session]) -> Iterator[Session]:
    """Short-lived session for read-only queries."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
