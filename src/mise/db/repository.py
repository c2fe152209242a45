"""SQLite engine and session lifecycle for the Mise store.

One engine is kept per process for the configured database file. Sessions come
from :func:`session_scope`, which commits on success and rolls back on error.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker

from mise.config import get_settings
from mise.db.models import Base

logger = logging.getLogger(__name__)

# Seconds a connection waits on a locked database before raising.
_BUSY_TIMEOUT = 30


@dataclass
class _Store:
    path: Path
    engine: Engine
    sessions: sessionmaker[Session]


_store: Optional[_Store] = None


def _on_connect(dbapi_connection, connection_record) -> None:  # noqa: ARG001
    # SQLite ignores ON DELETE clauses unless this is set per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _create_schema(engine: Engine) -> None:
    try:
        Base.metadata.create_all(engine)
    except OperationalError as exc:
        # Another process created the tables between the existence check and CREATE.
        if "already exists" not in str(exc).lower():
            raise
        logger.debug("Schema created concurrently: %s", exc)


def _open_store(path: Path) -> _Store:
    path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False, "timeout": _BUSY_TIMEOUT},
    )
    event.listen(engine, "connect", _on_connect)
    _create_schema(engine)
    logger.debug("Opened SQLite database at %s", path)
    return _Store(path=path, engine=engine, sessions=sessionmaker(bind=engine, autoflush=False))


def get_engine(database_path: Path | None = None) -> Engine:
    """Engine for ``database_path`` (default: ``MISE_DATABASE_PATH``), opened on first use."""

    global _store

    path = database_path or get_settings().database_path
    if _store is not None and _store.path != path:
        reset_repository_state()
    if _store is None:
        _store = _open_store(path)
    return _store.engine


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Yield a session inside a transaction; commit on exit, roll back on error."""

    if _store is None:
        get_engine()
    with _store.sessions.begin() as session:
        yield session


def reset_repository_state() -> None:
    """Dispose of the cached engine so the next call reopens from settings."""

    global _store
    if _store is not None:
        _store.engine.dispose()
    _store = None


__all__ = ["get_engine", "session_scope", "reset_repository_state"]
