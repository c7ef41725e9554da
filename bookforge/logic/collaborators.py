"""Collaborator grant management. Only the book owner may share a book."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging

from bookforge.db.base import transaction
from bookforge.errors import AccessDenied, NotFoundOrDenied, ValidationFailed
from bookforge.logic import repository_books as books_repo
from bookforge.logic.access import can_write, load_book_for_owner, load_book_for_read
from bookforge.models.roles import CollaboratorRole

logger = logging.getLogger(__name__)


def list_collaborators(actor_id: Optional[str], book_id: str) -> List[Dict[str, Any]]:
    """Grants on the book, visible to the owner and editors."""
    with transaction() as conn:
        _, tier = load_book_for_read(conn, actor_id, book_id)
        if not can_write(tier):
            raise AccessDenied(actor_id, book_id, "list collaborators")
        return [g.to_dict() for g in books_repo.list_grants(conn, book_id)]


def grant_collaborator(actor_id: Optional[str], book_id: str, user_id: str, role: str) -> Dict[str, Any]:
    """Create or change the grant for ``user_id``; returns the stored grant."""
    if role not in CollaboratorRole.ALL:
        raise ValidationFailed(f"unknown collaborator role {role!r}", role=role)
    with transaction() as conn:
        # Locking the book row orders this grant change against in-flight writes
        book, _ = load_book_for_owner(conn, actor_id, book_id, "share", lock="update")
        if user_id == book.owner_id:
            raise ValidationFailed("the owner cannot be granted a collaborator role", user_id=user_id)
        grant = books_repo.upsert_grant(
            conn, book_id=book_id, user_id=user_id, role=role, invited_by=str(actor_id)
        )
    logger.info("collaborator.grant actor=%s book=%s user=%s role=%s", actor_id, book_id, user_id, role)
    return grant.to_dict()


def revoke_collaborator(actor_id: Optional[str], book_id: str, user_id: str) -> None:
    with transaction() as conn:
        load_book_for_owner(conn, actor_id, book_id, "share", lock="update")
        removed = books_repo.delete_grant(conn, book_id, user_id)
        if not removed:
            raise NotFoundOrDenied("collaborator", user_id)
    logger.info("collaborator.revoke actor=%s book=%s user=%s", actor_id, book_id, user_id)


__all__ = ["list_collaborators", "grant_collaborator", "revoke_collaborator"]
