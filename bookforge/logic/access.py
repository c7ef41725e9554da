"""Access resolution for books.

Every read and write path asks this module for the actor's tier on a book
before touching chapters or blocks. Resolution order (first match wins):

1. actor is the book owner                        -> OWNER
2. active grant with role ``editor`` or ``admin``  -> EDITOR
3. active grant with role ``viewer``               -> VIEWER
4. book is flagged public                          -> PUBLIC_READER
5. otherwise                                       -> NONE

``resolve`` never raises access errors; it only returns a tier. The
``load_book_for_*`` helpers are what services call: they fetch the book in
the caller's transaction, resolve, and raise ``NotFoundOrDenied`` or
``AccessDenied`` so that the check and the mutation share one snapshot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from sqlalchemy.engine import Connection

from bookforge.errors import AccessDenied, NotFoundOrDenied
from bookforge.logic.repository_books import get_book, get_grant
from bookforge.models.entities import Book
from bookforge.models.roles import CollaboratorRole, GrantStatus

logger = logging.getLogger(__name__)


class Tier(IntEnum):
    """Effective permission level of an actor on one book."""

    NONE = 0
    PUBLIC_READER = 1
    VIEWER = 2
    EDITOR = 3
    OWNER = 4


def resolve(conn: Connection, actor_id: Optional[str], book: Book) -> Tier:
    if actor_id and actor_id == book.owner_id:
        return Tier.OWNER
    if actor_id:
        grant = get_grant(conn, book.id, actor_id)
        if grant is not None and grant.status == GrantStatus.ACTIVE:
            if grant.role in CollaboratorRole.WRITERS:
                return Tier.EDITOR
            if grant.role == CollaboratorRole.VIEWER:
                return Tier.VIEWER
    if book.is_public:
        return Tier.PUBLIC_READER
    return Tier.NONE


def can_read(tier: Tier) -> bool:
    return tier != Tier.NONE


def can_write(tier: Tier) -> bool:
    """Create/update/move/delete chapters or blocks, update book metadata."""
    return tier in (Tier.OWNER, Tier.EDITOR)


def can_delete_book(tier: Tier) -> bool:
    return tier == Tier.OWNER


def can_share_book(tier: Tier) -> bool:
    """Manage collaborator grants."""
    return tier == Tier.OWNER


@dataclass(frozen=True)
class BookPermissions:
    can_edit: bool
    can_delete: bool
    can_share: bool

    @classmethod
    def for_tier(cls, tier: Tier) -> "BookPermissions":
        return cls(
            can_edit=can_write(tier),
            can_delete=can_delete_book(tier),
            can_share=can_share_book(tier),
        )

    def to_dict(self) -> dict:
        return {"can_edit": self.can_edit, "can_delete": self.can_delete, "can_share": self.can_share}


def load_book_for_read(
    conn: Connection, actor_id: Optional[str], book_id: str, lock: Optional[str] = None
) -> tuple[Book, Tier]:
    """Return (book, tier) or raise NotFoundOrDenied.

    Absent and unreadable books are reported identically.
    """
    book = get_book(conn, book_id, lock=lock)
    if book is None:
        raise NotFoundOrDenied("book", book_id)
    tier = resolve(conn, actor_id, book)
    if not can_read(tier):
        logger.warning("access.read.denied actor=%s book=%s", actor_id, book_id)
        raise NotFoundOrDenied("book", book_id)
    return book, tier


def load_book_for_write(
    conn: Connection, actor_id: Optional[str], book_id: str, lock: Optional[str] = None
) -> tuple[Book, Tier]:
    """Return (book, tier) when the actor may write, else raise.

    A missing book raises NotFoundOrDenied; an existing book the actor
    cannot write raises AccessDenied.
    """
    book = get_book(conn, book_id, lock=lock)
    if book is None:
        raise NotFoundOrDenied("book", book_id)
    tier = resolve(conn, actor_id, book)
    if not can_write(tier):
        logger.warning("access.write.denied actor=%s book=%s tier=%s", actor_id, book_id, tier.name)
        raise AccessDenied(actor_id, book_id, "write")
    return book, tier


def load_book_for_owner(
    conn: Connection, actor_id: Optional[str], book_id: str, action: str, lock: Optional[str] = None
) -> tuple[Book, Tier]:
    """Owner-only gate used for book deletion and collaborator management."""
    book = get_book(conn, book_id, lock=lock)
    if book is None:
        raise NotFoundOrDenied("book", book_id)
    tier = resolve(conn, actor_id, book)
    if tier != Tier.OWNER:
        logger.warning("access.owner.denied actor=%s book=%s action=%s tier=%s", actor_id, book_id, action, tier.name)
        raise AccessDenied(actor_id, book_id, action)
    return book, tier


__all__ = [
    "Tier",
    "resolve",
    "can_read",
    "can_write",
    "can_delete_book",
    "can_share_book",
    "BookPermissions",
    "load_book_for_read",
    "load_book_for_write",
    "load_book_for_owner",
]
