"""SQLAlchemy engine and transaction helpers.

The service targets PostgreSQL in production but supports SQLite for local
development and CI. No declarative models are defined here; this module only
manages connection lifecycle.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from bookforge.config import get_config
from bookforge.errors import TransientStoreFailure

logger = logging.getLogger(__name__)


def _db_url() -> str:
    return (
        os.getenv("TEST_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or get_config().database.dsn
    )


# Module-level cached Engine to ensure a single shared connection/engine
_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None


def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
    # pysqlite defers BEGIN until the first DML statement; take over
    # transaction control so reads under lock_parent are inside it
    dbapi_connection.isolation_level = None
    # Cascade deletes for chapters/blocks/grants rely on FK enforcement
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def _begin_sqlite_immediate(conn: Connection) -> None:
    """Start every SQLite transaction holding the database write lock.

    Concurrent transactions queue on BEGIN (up to the driver busy timeout),
    so an access check and the write it guards see one snapshot.
    """
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def get_engine(url: str | None = None) -> Engine:
    """Return a singleton SQLAlchemy Engine for the given URL.

    Reuses a module-level Engine so repositories share the same connection.
    For SQLite in-memory URLs, use a StaticPool to keep a single connection
    alive across sessions and threads during tests.
    """
    global _ENGINE, _ENGINE_URL
    resolved_url = url or _db_url()

    if _ENGINE is None or _ENGINE_URL != resolved_url:
        kwargs: dict = {"future": True, "pool_pre_ping": True}
        if resolved_url.startswith("sqlite") and ":memory:" in resolved_url:
            # Keep a single in-memory DB connection shared across the process
            kwargs.update({
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            })
        elif resolved_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
        engine = create_engine(resolved_url, **kwargs)
        if engine.dialect.name == "sqlite":
            event.listen(engine, "connect", _configure_sqlite_connection)
            event.listen(engine, "begin", _begin_sqlite_immediate)
        if _ENGINE is not None:
            _ENGINE.dispose()
        _ENGINE = engine
        _ENGINE_URL = resolved_url
        logger.info("db.engine.created dialect=%s", engine.dialect.name)

    return _ENGINE


@contextmanager
def transaction() -> Iterator[Connection]:
    """Yield a connection inside a single transaction.

    Commits on normal exit and rolls back on any exception. Persistence
    errors surface as ``TransientStoreFailure`` so callers can decide
    whether to retry the whole operation; nothing is retried here.
    """
    eng = get_engine()
    try:
        with eng.begin() as conn:
            yield conn
    except SQLAlchemyError as exc:
        logger.error("db.transaction.rolled_back error=%s", type(exc).__name__, exc_info=True)
        raise TransientStoreFailure(str(exc)) from exc
