"""Entity, constant and request-payload types shared across the core."""

from bookforge.models.entities import Block, Book, Chapter, CollaboratorGrant, encode_json, utc_now
from bookforge.models.roles import CollaboratorRole, GrantStatus, Visibility

__all__ = [
    "Book",
    "CollaboratorGrant",
    "Chapter",
    "Block",
    "encode_json",
    "utc_now",
    "CollaboratorRole",
    "GrantStatus",
    "Visibility",
]
