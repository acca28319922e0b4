"""
Database setup. One SQLite file (database.path) unless a URL is passed in.
"""
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()

DEFAULT_DB_PATH = Path.home() / ".ramadhan_tracker" / "tracker.db"

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def database_url(config_data: Optional[Dict[str, Any]] = None) -> str:
    """SQLite URL for database.path, creating its directory."""
    path = ((config_data or {}).get("database") or {}).get("path") or DEFAULT_DB_PATH
    path = Path(path).expanduser().resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{path}"


def init_db(config_data: Optional[Dict[str, Any]] = None, db_url: Optional[str] = None) -> None:
    """Create the engine and tables. A second call is a no-op until dispose_db()."""
    global _engine, _session_factory

    if _engine is not None:
        logger.debug("Database already initialized")
        return

    url = db_url or database_url(config_data)
    connect_args = {}
    if url.startswith("sqlite"):
        # Timer threads and the API thread share the engine
        connect_args["check_same_thread"] = False
    _engine = create_engine(url, connect_args=connect_args)

    # Registers the tables on Base
    from ramadhan_tracker.core import models  # noqa: F401

    Base.metadata.create_all(_engine)
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)
    logger.info(f"Database initialized: {url.split('?')[0]}")


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """One unit of work: commit on success, roll back on error."""
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def dispose_db() -> None:
    """Release the engine so init_db() can run again (shutdown, tests)."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
        logger.debug("Database engine disposed")
    _engine = None
    _session_factory = None
