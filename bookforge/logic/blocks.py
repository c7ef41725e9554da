"""Block services.

Locks are always taken book first, then chapter: the book row is read
``FOR SHARE`` (so a concurrent grant revoke waits for this write) and the
chapter row ``FOR UPDATE`` (the block group's ordering lock). Blocks in
different chapters of the same book do not wait on each other.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging

from bookforge.db.base import transaction
from bookforge.errors import NotFoundOrDenied, ValidationFailed
from bookforge.logic import ordering
from bookforge.logic import repository_chapters as chapters_repo
from bookforge.logic.access import load_book_for_read, load_book_for_write
from bookforge.logic.ordering import BLOCKS
from bookforge.logic.validation import validate_insert_position, validate_move_position
from bookforge.models.entities import Chapter

logger = logging.getLogger(__name__)


def _chapter_for_block_write(conn, actor_id: Optional[str], chapter_id: str) -> Chapter:
    chapter = chapters_repo.get_chapter(conn, chapter_id)
    if chapter is None:
        raise NotFoundOrDenied("chapter", chapter_id)
    load_book_for_write(conn, actor_id, chapter.book_id, lock="share")
    if not ordering.lock_parent(conn, BLOCKS, chapter_id):
        raise NotFoundOrDenied("chapter", chapter_id)
    return chapter


def _block_for_write(conn, actor_id: Optional[str], block_id: str):
    block = chapters_repo.get_block(conn, block_id)
    if block is None:
        raise NotFoundOrDenied("block", block_id)
    _chapter_for_block_write(conn, actor_id, block.chapter_id)
    locked = chapters_repo.get_block(conn, block_id)
    if locked is None:
        raise NotFoundOrDenied("block", block_id)
    return locked


def _get_block_dict(conn, block_id: str) -> Dict[str, Any]:
    block = chapters_repo.get_block(conn, block_id)
    if block is None:
        raise NotFoundOrDenied("block", block_id)
    return block.to_dict()


def create_block(actor_id: Optional[str], chapter_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Insert a block at ``payload['position']`` or append it."""
    with transaction() as conn:
        _chapter_for_block_write(conn, actor_id, chapter_id)
        count = ordering.count_members(conn, BLOCKS, chapter_id)
        position = validate_insert_position(payload.get("position"), count)
        block_id, assigned = ordering.insert_at(
            conn,
            BLOCKS,
            chapter_id,
            {
                "type": payload["type"],
                "content": payload.get("content") or {},
                "style": payload.get("style") or {},
            },
            position,
        )
        result = _get_block_dict(conn, block_id)
    logger.info("block.create actor=%s chapter=%s block=%s position=%s", actor_id, chapter_id, block_id, assigned)
    return result


def list_blocks(actor_id: Optional[str], chapter_id: str) -> List[Dict[str, Any]]:
    with transaction() as conn:
        chapter = chapters_repo.get_chapter(conn, chapter_id)
        if chapter is None:
            raise NotFoundOrDenied("chapter", chapter_id)
        try:
            load_book_for_read(conn, actor_id, chapter.book_id)
        except NotFoundOrDenied:
            raise NotFoundOrDenied("chapter", chapter_id) from None
        return [b.to_dict() for b in chapters_repo.list_blocks(conn, chapter_id)]


def get_block(actor_id: Optional[str], block_id: str) -> Dict[str, Any]:
    with transaction() as conn:
        block = chapters_repo.get_block(conn, block_id)
        if block is None:
            raise NotFoundOrDenied("block", block_id)
        chapter = chapters_repo.get_chapter(conn, block.chapter_id)
        if chapter is None:
            raise NotFoundOrDenied("block", block_id)
        try:
            load_book_for_read(conn, actor_id, chapter.book_id)
        except NotFoundOrDenied:
            raise NotFoundOrDenied("block", block_id) from None
        return block.to_dict()


def update_block(actor_id: Optional[str], block_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    with transaction() as conn:
        _block_for_write(conn, actor_id, block_id)
        chapters_repo.update_block(conn, block_id, fields)
        result = _get_block_dict(conn, block_id)
    logger.info("block.update actor=%s block=%s fields=%s", actor_id, block_id, sorted(fields))
    return result


def reorder_block(actor_id: Optional[str], block_id: str, new_position: int) -> Dict[str, Any]:
    with transaction() as conn:
        block = _block_for_write(conn, actor_id, block_id)
        count = ordering.count_members(conn, BLOCKS, block.chapter_id)
        target = validate_move_position(new_position, count)
        ordering.move_to(conn, BLOCKS, block_id, target)
        result = _get_block_dict(conn, block_id)
    logger.info("block.reorder actor=%s block=%s from=%s to=%s", actor_id, block_id, block.position, target)
    return result


def delete_block(actor_id: Optional[str], block_id: str) -> None:
    with transaction() as conn:
        _block_for_write(conn, actor_id, block_id)
        position = ordering.delete_and_compact(conn, BLOCKS, block_id)
    logger.info("block.delete actor=%s block=%s position=%s", actor_id, block_id, position)


def bulk_update_blocks(
    actor_id: Optional[str], chapter_id: str, items: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """Apply several block edits in one transaction; returns updated blocks.

    Items for blocks outside the chapter are ignored. Supplied positions are
    validated across the whole batch before anything is written.
    """
    seen: set[str] = set()
    for item in items:
        bid = str(item.get("id") or "")
        if not bid:
            raise ValidationFailed("every bulk item needs an id")
        if bid in seen:
            raise ValidationFailed(f"block {bid} listed more than once", block_id=bid)
        seen.add(bid)
    with transaction() as conn:
        _chapter_for_block_write(conn, actor_id, chapter_id)
        updated_ids = ordering.bulk_apply(conn, chapter_id, items)
        result = [_get_block_dict(conn, bid) for bid in updated_ids]
    logger.info("block.bulk_update actor=%s chapter=%s updated=%s", actor_id, chapter_id, len(result))
    return result


__all__ = [
    "create_block",
    "list_blocks",
    "get_block",
    "update_block",
    "reorder_block",
    "delete_block",
    "bulk_update_blocks",
]
