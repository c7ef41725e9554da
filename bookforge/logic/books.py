"""Book services: create, read, list, update, delete and public view.

Each call runs in one transaction; access is resolved inside that same
transaction before anything is written.
"""

from __future__ import annotations

from typing import Any, Dict, Optional
import logging

from bookforge.config import get_config
from bookforge.db.base import transaction
from bookforge.errors import NotFoundOrDenied, ValidationFailed
from bookforge.logic import repository_books as books_repo
from bookforge.logic import repository_chapters as chapters_repo
from bookforge.logic.access import (
    BookPermissions,
    Tier,
    can_write,
    load_book_for_owner,
    load_book_for_read,
    load_book_for_write,
    resolve,
)
from bookforge.models.entities import Book
from bookforge.models.roles import Visibility

logger = logging.getLogger(__name__)


def _book_details(conn, book: Book, tier: Tier) -> Dict[str, Any]:
    chapters = chapters_repo.list_chapter_summaries(conn, book.id)
    grants = books_repo.list_grants(conn, book.id)
    details = book.to_dict()
    details["chapters"] = chapters
    details["chapters_count"] = len(chapters)
    # Grant lists name other users; only tiers that can edit the book see them
    details["collaborators"] = [g.to_dict() for g in grants] if can_write(tier) else []
    details["tier"] = tier.name
    details["permissions"] = BookPermissions.for_tier(tier).to_dict()
    return details


def create_book(actor_id: Optional[str], payload: Dict[str, Any]) -> Dict[str, Any]:
    """Create a book owned by ``actor_id`` and return its details."""
    if not actor_id:
        raise ValidationFailed("an authenticated actor is required to create a book")
    visibility = payload.get("visibility") or Visibility.PRIVATE
    if visibility not in Visibility.ALL:
        raise ValidationFailed(f"unknown visibility {visibility!r}", visibility=visibility)
    with transaction() as conn:
        book_id = books_repo.insert_book(
            conn,
            owner_id=actor_id,
            title=str(payload["title"]),
            description=payload.get("description"),
            visibility=visibility,
            is_public=bool(payload.get("is_public", False)),
            settings=payload.get("settings") or {},
        )
        book, tier = load_book_for_read(conn, actor_id, book_id)
        details = _book_details(conn, book, tier)
    logger.info("book.create actor=%s book=%s", actor_id, book_id)
    return details


def get_book(actor_id: Optional[str], book_id: str) -> Dict[str, Any]:
    with transaction() as conn:
        book, tier = load_book_for_read(conn, actor_id, book_id)
        return _book_details(conn, book, tier)


def list_books(
    actor_id: Optional[str],
    *,
    page: int = 1,
    limit: Optional[int] = None,
    visibility: Optional[str] = None,
) -> Dict[str, Any]:
    """Books the actor owns or collaborates on, with pagination metadata."""
    if not actor_id:
        raise ValidationFailed("an authenticated actor is required to list books")
    cfg = get_config().books
    page = max(int(page or 1), 1)
    limit = min(int(limit or cfg.page_limit_default), cfg.page_limit_max)
    with transaction() as conn:
        books, total = books_repo.list_books_for_actor(
            conn, actor_id, visibility=visibility, limit=limit, offset=(page - 1) * limit
        )
        items = []
        for book in books:
            tier = resolve(conn, actor_id, book)
            item = book.to_dict()
            item["tier"] = tier.name
            item["permissions"] = BookPermissions.for_tier(tier).to_dict()
            items.append(item)
    total_pages = (total + limit - 1) // limit if total else 0
    return {
        "books": items,
        "pagination": {"page": page, "limit": limit, "total": total, "total_pages": total_pages},
    }


def update_book(actor_id: Optional[str], book_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    """Update book metadata; requires a writing tier."""
    visibility = fields.get("visibility")
    if visibility is not None and visibility not in Visibility.ALL:
        raise ValidationFailed(f"unknown visibility {visibility!r}", visibility=visibility)
    with transaction() as conn:
        load_book_for_write(conn, actor_id, book_id, lock="update")
        books_repo.update_book(conn, book_id, fields)
        book, tier = load_book_for_read(conn, actor_id, book_id)
        details = _book_details(conn, book, tier)
    logger.info("book.update actor=%s book=%s fields=%s", actor_id, book_id, sorted(fields))
    return details


def delete_book(actor_id: Optional[str], book_id: str) -> None:
    """Delete a book; owner only. Chapters, blocks and grants cascade."""
    with transaction() as conn:
        load_book_for_owner(conn, actor_id, book_id, "delete", lock="update")
        books_repo.delete_book(conn, book_id)
    logger.info("book.delete actor=%s book=%s", actor_id, book_id)


def get_public_book(book_id: str) -> Dict[str, Any]:
    """Return a public book with nested ordered chapters and blocks."""
    with transaction() as conn:
        book = books_repo.get_book(conn, book_id)
        if book is None or not book.is_public:
            raise NotFoundOrDenied("book", book_id)
        chapters = chapters_repo.list_chapter_summaries(conn, book_id)
        for chapter in chapters:
            chapter["blocks"] = [b.to_dict() for b in chapters_repo.list_blocks(conn, chapter["id"])]
    details = book.to_dict()
    details["chapters"] = chapters
    details["chapters_count"] = len(chapters)
    details["permissions"] = BookPermissions.for_tier(Tier.PUBLIC_READER).to_dict()
    return details


__all__ = [
    "create_book",
    "get_book",
    "list_books",
    "update_book",
    "delete_book",
    "get_public_book",
]
