"""Idempotent schema bootstrap.

Executes ``schema.sql`` (``CREATE ... IF NOT EXISTS`` only) against an
engine. There is no versioning or journal: the file is safe to run on every
startup and in test sessions.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


def _strip_comments(sql: str) -> str:
    """Drop ``--`` line comments so text inside them never reaches the splitter.

    The schema holds no string literals containing ``--``.
    """
    return "\n".join(ln.split("--", 1)[0].rstrip() for ln in sql.splitlines())


def _iter_statements(sql: str):
    """Yield individual statements, skipping comments and blank segments."""
    for stmt in _strip_comments(sql).split(";"):
        lines = [ln for ln in stmt.splitlines() if ln.strip()]
        s = "\n".join(lines).strip()
        if s:
            yield s


def _exec_sql_compat(conn: Connection, sql: str) -> None:
    """Execute SQL text one statement at a time.

    SQLite's DB-API (pysqlite) does not allow multiple statements in a single
    execute() call, so statements are always split on ';'.
    """
    for stmt in _iter_statements(sql):
        conn.exec_driver_sql(stmt)


def apply_schema(engine: Engine, schema_path: str | os.PathLike[str] | None = None) -> None:
    path = Path(schema_path) if schema_path else SCHEMA_PATH
    sql = path.read_text(encoding="utf-8")
    with engine.begin() as conn:
        _exec_sql_compat(conn, sql)
    logger.info("db.schema.applied path=%s dialect=%s", path.name, engine.dialect.name)


__all__ = ["apply_schema", "SCHEMA_PATH"]
