"""Sessions: the per-request ``get_db`` dependency and ``session_scope`` for scripts."""

from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session, sessionmaker

from llm_gateway.db.engine import get_engine

_session_factory: sessionmaker[Session] | None = None


def get_session_factory() -> sessionmaker[Session]:
    global _session_factory
    if _session_factory is None:
        # Rows stay readable after commit; the chat stream keeps using them.
        _session_factory = sessionmaker(
            bind=get_engine(), autoflush=False, expire_on_commit=False
        )
    return _session_factory


def reset_session_factory() -> None:
    """Forget the factory so the next session binds to a fresh engine."""
    global _session_factory
    _session_factory = None


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Session for work outside a request, such as seeding the model catalogue.

    Commits on normal exit and rolls back if the block raises.
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request, closed afterwards."""
    with get_session_factory()() as session:
        yield session
