"""Shared actors and read-back helpers for functional tests.

Kept free of import-time side effects; ``conftest.py`` owns the database
bootstrap.
"""

from __future__ import annotations

from typing import Dict, List

OWNER = "user-owner"
EDITOR = "user-editor"
ADMIN = "user-admin"
VIEWER = "user-viewer"
STRANGER = "user-stranger"


def as_actor(actor: str | None) -> Dict[str, str]:
    return {"X-Actor-Id": actor} if actor else {}


def chapter_titles(book_id: str) -> List[str]:
    from bookforge.logic import chapters as chapter_service

    return [c["title"] for c in chapter_service.list_chapters(OWNER, book_id)]


def chapter_positions(book_id: str) -> List[int]:
    from bookforge.logic import chapters as chapter_service

    return [c["position"] for c in chapter_service.list_chapters(OWNER, book_id)]


def block_labels(chapter_id: str) -> List[str]:
    from bookforge.logic import blocks as block_service

    return [b["content"]["text"] for b in block_service.list_blocks(OWNER, chapter_id)]


def block_positions(chapter_id: str) -> List[int]:
    from bookforge.logic import blocks as block_service

    return [b["position"] for b in block_service.list_blocks(OWNER, chapter_id)]
