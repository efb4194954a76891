"""SQLAlchemy engine/session helpers for the finance database.

Usage
-----
from db.client import session_scope

with session_scope(database_url=settings.database_url) as s:
    s.execute(...)

Engines are created lazily and cached per URL, so a process (or test run)
can talk to more than one database without rebuilding connection pools.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

_LOCK = threading.Lock()
_ENGINES: dict[str, Engine] = {}
_SESSION_MAKERS: dict[str, sessionmaker[Session]] = {}


def _require_url(database_url: str | None) -> str:
    if not database_url:
        raise RuntimeError("database_url is required; set DATABASE_URL or pass --database-url")
    return database_url


def get_engine(*, database_url: str | None) -> Engine:
    """Return the shared engine for ``database_url``, creating it on first use."""

    url = _require_url(database_url)
    with _LOCK:
        engine = _ENGINES.get(url)
        if engine is None:
            engine = create_engine(url, pool_pre_ping=True)
            _ENGINES[url] = engine
            _SESSION_MAKERS[url] = sessionmaker(
                bind=engine, expire_on_commit=False, class_=Session
            )
        return engine


def get_session(*, database_url: str | None) -> Session:
    """Return a new session bound to the engine for ``database_url``."""

    get_engine(database_url=database_url)
    return _SESSION_MAKERS[_require_url(database_url)]()


@contextmanager
def session_scope(*, database_url: str | None) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = get_session(database_url=database_url)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def dispose_all() -> None:
    """Dispose every cached engine (used by tests and at process exit)."""

    with _LOCK:
        for engine in _ENGINES.values():
            engine.dispose()
        _ENGINES.clear()
        _SESSION_MAKERS.clear()


__all__ = [
    "dispose_all",
    "get_engine",
    "get_session",
    "session_scope",
]
