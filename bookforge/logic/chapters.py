"""Chapter services.

Write paths follow one sequence inside a single transaction: lock the book
row (the chapter group's parent), resolve the actor's tier, validate the
target position against the current count, then call the ordering engine.
A denied or invalid request therefore never shifts anything.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging

from bookforge.db.base import transaction
from bookforge.errors import NotFoundOrDenied
from bookforge.logic import ordering
from bookforge.logic import repository_chapters as chapters_repo
from bookforge.logic.access import load_book_for_read, load_book_for_write
from bookforge.logic.ordering import CHAPTERS
from bookforge.logic.validation import validate_insert_position, validate_move_position

logger = logging.getLogger(__name__)


def _chapter_with_blocks(conn, chapter_id: str) -> Dict[str, Any]:
    chapter = chapters_repo.get_chapter(conn, chapter_id)
    if chapter is None:
        raise NotFoundOrDenied("chapter", chapter_id)
    data = chapter.to_dict()
    data["blocks"] = [b.to_dict() for b in chapters_repo.list_blocks(conn, chapter_id)]
    return data


def _locked_chapter_for_write(conn, actor_id: Optional[str], chapter_id: str):
    """Resolve a chapter for a write, holding its book's ordering lock."""
    chapter = chapters_repo.get_chapter(conn, chapter_id)
    if chapter is None:
        raise NotFoundOrDenied("chapter", chapter_id)
    if not ordering.lock_parent(conn, CHAPTERS, chapter.book_id):
        raise NotFoundOrDenied("chapter", chapter_id)
    load_book_for_write(conn, actor_id, chapter.book_id)
    # Re-read under the lock; a concurrent delete may have removed it
    locked = chapters_repo.get_chapter(conn, chapter_id)
    if locked is None:
        raise NotFoundOrDenied("chapter", chapter_id)
    return locked


def create_chapter(actor_id: Optional[str], book_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Insert a chapter at ``payload['position']`` or append it."""
    with transaction() as conn:
        if not ordering.lock_parent(conn, CHAPTERS, book_id):
            raise NotFoundOrDenied("book", book_id)
        load_book_for_write(conn, actor_id, book_id)
        count = ordering.count_members(conn, CHAPTERS, book_id)
        position = validate_insert_position(payload.get("position"), count)
        chapter_id, assigned = ordering.insert_at(
            conn,
            CHAPTERS,
            book_id,
            {
                "title": payload["title"],
                "description": payload.get("description"),
                "settings": payload.get("settings") or {},
            },
            position,
        )
        result = _chapter_with_blocks(conn, chapter_id)
    logger.info("chapter.create actor=%s book=%s chapter=%s position=%s", actor_id, book_id, chapter_id, assigned)
    return result


def list_chapters(actor_id: Optional[str], book_id: str) -> List[Dict[str, Any]]:
    """Chapters of a readable book ordered by position, with block counts."""
    with transaction() as conn:
        load_book_for_read(conn, actor_id, book_id)
        return chapters_repo.list_chapter_summaries(conn, book_id)


def get_chapter(actor_id: Optional[str], chapter_id: str) -> Dict[str, Any]:
    with transaction() as conn:
        chapter = chapters_repo.get_chapter(conn, chapter_id)
        if chapter is None:
            raise NotFoundOrDenied("chapter", chapter_id)
        try:
            load_book_for_read(conn, actor_id, chapter.book_id)
        except NotFoundOrDenied:
            # Report the chapter, not its book, so nothing about the book leaks
            raise NotFoundOrDenied("chapter", chapter_id) from None
        return _chapter_with_blocks(conn, chapter_id)


def update_chapter(actor_id: Optional[str], chapter_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    with transaction() as conn:
        _locked_chapter_for_write(conn, actor_id, chapter_id)
        chapters_repo.update_chapter(conn, chapter_id, fields)
        result = _chapter_with_blocks(conn, chapter_id)
    logger.info("chapter.update actor=%s chapter=%s fields=%s", actor_id, chapter_id, sorted(fields))
    return result


def reorder_chapter(actor_id: Optional[str], chapter_id: str, new_position: int) -> Dict[str, Any]:
    """Move a chapter within its book; equal positions are a no-op."""
    with transaction() as conn:
        chapter = _locked_chapter_for_write(conn, actor_id, chapter_id)
        count = ordering.count_members(conn, CHAPTERS, chapter.book_id)
        target = validate_move_position(new_position, count)
        ordering.move_to(conn, CHAPTERS, chapter_id, target)
        result = _chapter_with_blocks(conn, chapter_id)
    logger.info("chapter.reorder actor=%s chapter=%s from=%s to=%s", actor_id, chapter_id, chapter.position, target)
    return result


def delete_chapter(actor_id: Optional[str], chapter_id: str) -> None:
    """Delete a chapter (its blocks cascade) and compact the book's chapters."""
    with transaction() as conn:
        _locked_chapter_for_write(conn, actor_id, chapter_id)
        position = ordering.delete_and_compact(conn, CHAPTERS, chapter_id)
    logger.info("chapter.delete actor=%s chapter=%s position=%s", actor_id, chapter_id, position)


__all__ = [
    "create_chapter",
    "list_chapters",
    "get_chapter",
    "update_chapter",
    "reorder_chapter",
    "delete_chapter",
]
