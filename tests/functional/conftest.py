from __future__ import annotations

"""Functional test bootstrap.

Points the service at a file-backed SQLite database under ``tmp/`` before
anything from ``bookforge`` is imported, applies the schema once per
session and empties every table between tests. Seeding goes through the
services so fixtures exercise the same write paths as the API.
"""

import os
import pathlib
from typing import Any, Callable, Dict, List

import pytest
from sqlalchemy import text as sql_text

from helpers import OWNER

_ROOT = pathlib.Path(__file__).resolve().parents[2]
_DB_FILE = _ROOT / "tmp" / "functional_tests.db"
_DB_FILE.parent.mkdir(parents=True, exist_ok=True)
if _DB_FILE.exists():
    _DB_FILE.unlink()

os.environ["TEST_DATABASE_URL"] = f"sqlite:///{_DB_FILE}"
os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]
# The session fixture applies the schema explicitly
os.environ["AUTO_APPLY_SCHEMA"] = "0"


@pytest.fixture(scope="session", autouse=True)
def functional_sqlite_bootstrap():
    """Session-level bootstrap: create the schema once on the shared DB."""
    from bookforge.db.base import get_engine
    from bookforge.db.schema_bootstrap import apply_schema

    apply_schema(get_engine(os.environ["TEST_DATABASE_URL"]))
    yield


@pytest.fixture(autouse=True)
def clean_tables():
    from bookforge.db.base import get_engine

    yield
    with get_engine().begin() as conn:
        for table in ("blocks", "chapters", "book_collaborators", "books"):
            conn.execute(sql_text(f"DELETE FROM {table}"))


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from bookforge.main import create_app

    with TestClient(create_app()) as c:
        yield c


@pytest.fixture
def make_book() -> Callable[..., Dict[str, Any]]:
    """Create a book owned by ``owner`` with optional grants: ``{user: role}``."""
    from bookforge.logic import books as book_service
    from bookforge.logic import collaborators as collaborator_service

    def _make(
        owner: str = OWNER,
        *,
        title: str = "Field Guide",
        is_public: bool = False,
        grants: Dict[str, str] | None = None,
    ) -> Dict[str, Any]:
        book = book_service.create_book(owner, {"title": title, "is_public": is_public})
        for user_id, role in (grants or {}).items():
            collaborator_service.grant_collaborator(owner, book["id"], user_id, role)
        return book

    return _make


@pytest.fixture
def make_chapters() -> Callable[..., List[Dict[str, Any]]]:
    from bookforge.logic import chapters as chapter_service

    def _make(book_id: str, titles: List[str], actor: str = OWNER) -> List[Dict[str, Any]]:
        return [chapter_service.create_chapter(actor, book_id, {"title": t}) for t in titles]

    return _make


@pytest.fixture
def make_blocks() -> Callable[..., List[Dict[str, Any]]]:
    from bookforge.logic import blocks as block_service

    def _make(chapter_id: str, labels: List[str], actor: str = OWNER) -> List[Dict[str, Any]]:
        return [
            block_service.create_block(actor, chapter_id, {"type": "text", "content": {"text": label}})
            for label in labels
        ]

    return _make