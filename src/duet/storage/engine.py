"""Database engine, sessions and bootstrap for Duet snapshots.

A Duet database is one SQLite file (or an in-memory database, or any
SQLAlchemy URL) holding a ``snapshots`` row per persist key and a
``_duet_meta`` row recording the table layout version.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session

from duet.storage.schema import Base, DuetMetaRow

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1"

# Snapshot saves are small and frequent; a second process may be reading.
_SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA busy_timeout=5000",
)


def database_url(db_path: str) -> str:
    """SQLAlchemy URL for a snapshot file path (``":memory:"`` stays in memory)."""
    if db_path == ":memory:":
        return "sqlite://"
    return f"sqlite:///{db_path}"


def _apply_sqlite_pragmas(dbapi_conn, _record) -> None:  # type: ignore[no-untyped-def]
    cursor = dbapi_conn.cursor()
    try:
        for pragma in _SQLITE_PRAGMAS:
            cursor.execute(pragma)
    finally:
        cursor.close()


def create_duet_engine(db_path: str = ":memory:", *, url: str | None = None) -> Engine:
    """Open an engine for snapshot storage.

    *url* wins over *db_path* when given. SQLite connections get WAL
    journaling and a busy timeout; other backends are left as configured.
    """
    engine = create_engine(url or database_url(db_path))
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _apply_sqlite_pragmas)
    logger.debug("Opened snapshot store at %s", engine.url)
    return engine


def open_session(engine: Engine) -> Session:
    """A session whose loaded rows stay readable after commit."""
    return Session(engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create the snapshot tables and stamp ``schema_version`` once."""
    Base.metadata.create_all(engine)
    with open_session(engine) as session:
        if session.get(DuetMetaRow, "schema_version") is None:
            session.add(DuetMetaRow(key="schema_version", value=SCHEMA_VERSION))
            session.commit()
