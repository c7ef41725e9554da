"""Book and collaborator-grant data access helpers.

These functions encapsulate SQL for books and grants so services and route
handlers stay free of persistence details. Every helper takes the caller's
connection; none opens its own transaction.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging
import uuid

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from bookforge.errors import InvariantViolation
from bookforge.models.entities import Book, CollaboratorGrant, encode_json, utc_now
from bookforge.models.roles import GrantStatus

logger = logging.getLogger(__name__)

_BOOK_COLUMNS = "id, owner_id, title, description, visibility, is_public, settings, created_at, updated_at"
_GRANT_COLUMNS = "id, book_id, user_id, role, status, invited_by, created_at"


def lock_clause(conn: Connection, lock: Optional[str]) -> str:
    """Return a row-lock suffix for ``lock`` ('share' or 'update').

    Only PostgreSQL gets a clause; SQLite serialises writers database-wide
    and does not accept FOR UPDATE/FOR SHARE.
    """
    if not lock or conn.dialect.name != "postgresql":
        return ""
    return {"share": " FOR SHARE", "update": " FOR UPDATE"}[lock]


def get_book(conn: Connection, book_id: str, lock: Optional[str] = None) -> Book | None:
    row = conn.execute(
        sql_text(f"SELECT {_BOOK_COLUMNS} FROM books WHERE id = :bid" + lock_clause(conn, lock)),
        {"bid": book_id},
    ).mappings().fetchone()
    return Book.from_row(row) if row else None


def insert_book(
    conn: Connection,
    *,
    owner_id: str,
    title: str,
    description: Optional[str],
    visibility: str,
    is_public: bool,
    settings: Dict[str, Any],
) -> str:
    book_id = str(uuid.uuid4())
    now = utc_now()
    conn.execute(
        sql_text(
            "INSERT INTO books (id, owner_id, title, description, visibility, is_public, settings, created_at, updated_at) "
            "VALUES (:id, :owner, :title, :descr, :vis, :pub, :settings, :now, :now)"
        ),
        {
            "id": book_id,
            "owner": owner_id,
            "title": title,
            "descr": description,
            "vis": visibility,
            "pub": bool(is_public),
            "settings": encode_json(settings),
            "now": now,
        },
    )
    return book_id


def update_book(conn: Connection, book_id: str, fields: Dict[str, Any]) -> None:
    """Apply a partial metadata update. Ownership is never changed here."""
    allowed = {"title", "description", "visibility", "is_public", "settings"}
    params: Dict[str, Any] = {"bid": book_id, "now": utc_now()}
    assignments = ["updated_at = :now"]
    for key, value in fields.items():
        if key not in allowed:
            continue
        if key in ("title", "visibility", "is_public") and value is None:
            continue
        if key == "settings":
            value = encode_json(value)
        elif key == "is_public":
            value = bool(value)
        assignments.append(f"{key} = :{key}")
        params[key] = value
    conn.execute(sql_text(f"UPDATE books SET {', '.join(assignments)} WHERE id = :bid"), params)


def delete_book(conn: Connection, book_id: str) -> int:
    # Chapters, blocks and grants go with it via ON DELETE CASCADE
    return conn.execute(sql_text("DELETE FROM books WHERE id = :bid"), {"bid": book_id}).rowcount


def list_books_for_actor(
    conn: Connection,
    actor_id: str,
    *,
    visibility: Optional[str],
    limit: int,
    offset: int,
) -> tuple[List[Book], int]:
    """Books the actor owns or holds an active grant on, newest first, plus total."""
    where = (
        "(b.owner_id = :actor OR EXISTS (SELECT 1 FROM book_collaborators c "
        "WHERE c.book_id = b.id AND c.user_id = :actor AND c.status = :active))"
    )
    params: Dict[str, Any] = {"actor": actor_id, "active": GrantStatus.ACTIVE}
    if visibility:
        where += " AND b.visibility = :vis"
        params["vis"] = visibility
    total = conn.execute(sql_text(f"SELECT COUNT(*) FROM books b WHERE {where}"), params).scalar_one()
    rows = conn.execute(
        sql_text(
            f"SELECT b.id, b.owner_id, b.title, b.description, b.visibility, b.is_public, b.settings, "
            f"b.created_at, b.updated_at FROM books b WHERE {where} "
            "ORDER BY b.created_at DESC, b.id ASC LIMIT :limit OFFSET :offset"
        ),
        {**params, "limit": limit, "offset": offset},
    ).mappings().fetchall()
    return [Book.from_row(r) for r in rows], int(total)


def get_grant(conn: Connection, book_id: str, user_id: str) -> CollaboratorGrant | None:
    row = conn.execute(
        sql_text(f"SELECT {_GRANT_COLUMNS} FROM book_collaborators WHERE book_id = :bid AND user_id = :uid"),
        {"bid": book_id, "uid": user_id},
    ).mappings().fetchone()
    return CollaboratorGrant.from_row(row) if row else None


def list_grants(conn: Connection, book_id: str) -> List[CollaboratorGrant]:
    rows = conn.execute(
        sql_text(
            f"SELECT {_GRANT_COLUMNS} FROM book_collaborators WHERE book_id = :bid "
            "ORDER BY created_at ASC, user_id ASC"
        ),
        {"bid": book_id},
    ).mappings().fetchall()
    return [CollaboratorGrant.from_row(r) for r in rows]


def upsert_grant(
    conn: Connection,
    *,
    book_id: str,
    user_id: str,
    role: str,
    invited_by: str,
    status: str = GrantStatus.ACTIVE,
) -> CollaboratorGrant:
    """Create the (book, user) grant or change its role; one grant per pair."""
    existing = get_grant(conn, book_id, user_id)
    if existing is not None:
        conn.execute(
            sql_text("UPDATE book_collaborators SET role = :role, status = :status WHERE id = :gid"),
            {"role": role, "status": status, "gid": existing.id},
        )
    else:
        conn.execute(
            sql_text(
                "INSERT INTO book_collaborators (id, book_id, user_id, role, status, invited_by, created_at) "
                "VALUES (:id, :bid, :uid, :role, :status, :inv, :now)"
            ),
            {
                "id": str(uuid.uuid4()),
                "bid": book_id,
                "uid": user_id,
                "role": role,
                "status": status,
                "inv": invited_by,
                "now": utc_now(),
            },
        )
    grant = get_grant(conn, book_id, user_id)
    if grant is None:
        raise InvariantViolation("grant missing after write", book_id=book_id, user_id=user_id)
    return grant


def delete_grant(conn: Connection, book_id: str, user_id: str) -> int:
    return conn.execute(
        sql_text("DELETE FROM book_collaborators WHERE book_id = :bid AND user_id = :uid"),
        {"bid": book_id, "uid": user_id},
    ).rowcount


__all__ = [
    "lock_clause",
    "get_book",
    "insert_book",
    "update_book",
    "delete_book",
    "list_books_for_actor",
    "get_grant",
    "list_grants",
    "upsert_grant",
    "delete_grant",
]
