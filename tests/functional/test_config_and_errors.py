"""Configuration precedence, schema bootstrap and error-to-problem mapping."""

from __future__ import annotations

import pytest
from pydantic import ValidationError
from sqlalchemy import create_engine, inspect
from sqlalchemy.pool import StaticPool

from bookforge.config import load_config
from bookforge.db.schema_bootstrap import SCHEMA_PATH, _iter_statements, apply_schema
from bookforge.errors import (
    AccessDenied,
    InvariantViolation,
    NotFoundOrDenied,
    PositionOutOfRange,
    TransientStoreFailure,
    ValidationFailed,
)
from bookforge.http.problem import problem_for


def test_environment_overrides_defaults(monkeypatch):
    monkeypatch.setenv("ORDERING_VERIFY_AFTER_WRITE", "false")
    monkeypatch.setenv("BOOKS_PAGE_LIMIT_MAX", "25")

    cfg = load_config()

    assert cfg.ordering.verify_after_write is False
    assert cfg.books.page_limit_max == 25
    assert cfg.books.page_limit_default == 10
    assert cfg.database.dsn.startswith("sqlite")


def test_invalid_limit_is_rejected(monkeypatch):
    monkeypatch.setenv("BOOKS_PAGE_LIMIT_DEFAULT", "0")

    with pytest.raises(ValidationError):
        load_config()


def _fresh_engine():
    return create_engine("sqlite+pysqlite:///:memory:", poolclass=StaticPool)


def test_schema_bootstrap_builds_a_fresh_database_and_reruns_cleanly():
    engine = _fresh_engine()

    apply_schema(engine, SCHEMA_PATH)
    apply_schema(engine, SCHEMA_PATH)

    inspector = inspect(engine)
    assert set(inspector.get_table_names()) == {"books", "book_collaborators", "chapters", "blocks"}
    unique = {
        ix["name"]: ix["column_names"]
        for table in ("book_collaborators", "chapters", "blocks")
        for ix in inspector.get_indexes(table)
        if ix["unique"]
    }
    assert unique == {
        "uq_book_collaborators_book_user": ["book_id", "user_id"],
        "uq_chapters_book_position": ["book_id", "position"],
        "uq_blocks_chapter_position": ["chapter_id", "position"],
    }
    engine.dispose()


def test_schema_comments_may_contain_statement_separators(tmp_path):
    schema = tmp_path / "schema.sql"
    schema.write_text(
        "-- notes; with a separator\n"
        "CREATE TABLE IF NOT EXISTS notes (\n"
        "    id TEXT PRIMARY KEY, -- key; never reused\n"
        "    body TEXT\n"
        ");\n",
        encoding="utf-8",
    )
    engine = _fresh_engine()

    apply_schema(engine, schema)

    assert inspect(engine).get_table_names() == ["notes"]
    assert list(_iter_statements(schema.read_text(encoding="utf-8"))) == [
        "CREATE TABLE IF NOT EXISTS notes (\n    id TEXT PRIMARY KEY,\n    body TEXT\n)"
    ]
    engine.dispose()


@pytest.mark.parametrize(
    "exc, status, code",
    [
        (AccessDenied("u1", "b1", "write"), 403, "ACCESS_DENIED"),
        (NotFoundOrDenied("book", "b1"), 404, "NOT_FOUND_OR_DENIED"),
        (PositionOutOfRange(7, 3), 422, "POSITION_OUT_OF_RANGE"),
        (ValidationFailed("bad"), 422, "VALIDATION_FAILED"),
        (TransientStoreFailure("connection reset"), 503, "STORE_UNAVAILABLE"),
        (InvariantViolation("gap"), 500, "INVARIANT_VIOLATION"),
    ],
)
def test_problem_mapping(exc, status, code):
    problem = problem_for(exc)

    assert problem["status"] == status
    assert problem["code"] == code


def test_store_failure_details_are_not_exposed():
    problem = problem_for(TransientStoreFailure("password authentication failed for user app"))

    assert "password" not in problem["detail"]
