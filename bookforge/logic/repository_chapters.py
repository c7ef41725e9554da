"""Chapter and block data access helpers.

Reads and non-positional updates for chapters and blocks. Anything that
writes a ``position`` value lives in ``bookforge.logic.ordering``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from bookforge.logic.repository_books import lock_clause
from bookforge.models.entities import Block, Chapter, encode_json, utc_now

logger = logging.getLogger(__name__)

CHAPTER_COLUMNS = "id, book_id, title, description, position, settings, created_at, updated_at"
BLOCK_COLUMNS = "id, chapter_id, type, content, style, position, created_at, updated_at"


def get_chapter(conn: Connection, chapter_id: str, lock: Optional[str] = None) -> Chapter | None:
    row = conn.execute(
        sql_text(f"SELECT {CHAPTER_COLUMNS} FROM chapters WHERE id = :cid" + lock_clause(conn, lock)),
        {"cid": chapter_id},
    ).mappings().fetchone()
    return Chapter.from_row(row) if row else None


def list_chapter_summaries(conn: Connection, book_id: str) -> List[Dict[str, Any]]:
    """Return chapters of a book ordered by position, each with ``blocks_count``."""
    rows = conn.execute(
        sql_text(
            "SELECT c.id, c.book_id, c.title, c.description, c.position, c.settings, c.created_at, c.updated_at, "
            "(SELECT COUNT(*) FROM blocks b WHERE b.chapter_id = c.id) AS blocks_count "
            "FROM chapters c WHERE c.book_id = :bid ORDER BY c.position ASC"
        ),
        {"bid": book_id},
    ).mappings().fetchall()
    summaries: List[Dict[str, Any]] = []
    for r in rows:
        item = Chapter.from_row(r).to_dict()
        item["blocks_count"] = int(r["blocks_count"])
        summaries.append(item)
    return summaries


def update_chapter(conn: Connection, chapter_id: str, fields: Dict[str, Any]) -> None:
    allowed = {"title", "description", "settings"}
    params: Dict[str, Any] = {"cid": chapter_id, "now": utc_now()}
    assignments = ["updated_at = :now"]
    for key, value in fields.items():
        if key not in allowed:
            continue
        if key == "title" and value is None:
            continue
        params[key] = encode_json(value) if key == "settings" else value
        assignments.append(f"{key} = :{key}")
    conn.execute(sql_text(f"UPDATE chapters SET {', '.join(assignments)} WHERE id = :cid"), params)


def get_block(conn: Connection, block_id: str) -> Block | None:
    row = conn.execute(
        sql_text(f"SELECT {BLOCK_COLUMNS} FROM blocks WHERE id = :bid"),
        {"bid": block_id},
    ).mappings().fetchone()
    return Block.from_row(row) if row else None


def list_blocks(conn: Connection, chapter_id: str) -> List[Block]:
    rows = conn.execute(
        sql_text(f"SELECT {BLOCK_COLUMNS} FROM blocks WHERE chapter_id = :cid ORDER BY position ASC"),
        {"cid": chapter_id},
    ).mappings().fetchall()
    return [Block.from_row(r) for r in rows]


def update_block(conn: Connection, block_id: str, fields: Dict[str, Any]) -> None:
    allowed = {"type", "content", "style"}
    params: Dict[str, Any] = {"bid": block_id, "now": utc_now()}
    assignments = ["updated_at = :now"]
    for key, value in fields.items():
        if key not in allowed:
            continue
        if key == "type" and value is None:
            continue
        params[key] = encode_json(value) if key in ("content", "style") else value
        assignments.append(f"{key} = :{key}")
    conn.execute(sql_text(f"UPDATE blocks SET {', '.join(assignments)} WHERE id = :bid"), params)


__all__ = [
    "CHAPTER_COLUMNS",
    "BLOCK_COLUMNS",
    "get_chapter",
    "list_chapter_summaries",
    "update_chapter",
    "get_block",
    "list_blocks",
    "update_block",
]
