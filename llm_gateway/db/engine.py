"""
Engine for the conversation store.

SQLite is the default store; a server database works by pointing
``DATABASE_URL`` at it. The engine is built once from ``Settings`` and
disposed at shutdown.
"""

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, make_url, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError

from llm_gateway.config import Settings, get_settings
from llm_gateway.core import get_logger

logger = get_logger(__name__)

_engine: Engine | None = None


def engine_options(url: URL, debug: bool = False) -> dict[str, Any]:
    """Keyword arguments for ``create_engine`` suited to ``url``'s backend."""
    options: dict[str, Any] = {"echo": debug, "pool_pre_ping": True}
    if url.get_backend_name() == "sqlite":
        # Streams write from the event loop thread; requests may use others.
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(pool_size=5, max_overflow=10)
    return options


def _ensure_sqlite_directory(url: URL) -> None:
    database = url.database
    if url.get_backend_name() != "sqlite" or not database or database == ":memory:":
        return
    directory = Path(database).parent
    if not directory.exists():
        directory.mkdir(parents=True, exist_ok=True)
        logger.info("Created database directory", data={"path": str(directory)})


def get_engine(settings: Settings | None = None) -> Engine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        settings = settings or get_settings()
        url = make_url(settings.database_url)
        _ensure_sqlite_directory(url)
        _engine = create_engine(url, **engine_options(url, settings.debug))
        logger.info("Database engine created", data={"dialect": _engine.dialect.name})
    return _engine


def verify_database_connection() -> bool:
    """True when the store answers a trivial query; used by startup and /readyz."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        logger.error("Database connection failed", data={"error": str(exc)})
        return False
    return True


def dispose_engine() -> None:
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None
        logger.info("Database engine disposed")
