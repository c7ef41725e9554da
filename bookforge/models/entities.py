"""Dataclass entities for books, collaborator grants, chapters and blocks.

Entities are plain containers built from result rows. Positions are only
meaningful relative to the parent (book for chapters, chapter for blocks).
JSON columns are stored as text and decoded here.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional


def _decode_json(raw: Any, default: Any) -> Any:
    if raw is None or raw == "":
        return default
    if isinstance(raw, (dict, list)):
        return raw
    return json.loads(raw)


def encode_json(value: Any) -> str:
    return json.dumps(value if value is not None else {}, ensure_ascii=False, separators=(",", ":"))


@dataclass
class Book:
    """Top-level container owned by exactly one user."""
    id: str
    owner_id: str
    title: str
    description: Optional[str] = None
    visibility: str = "private"  # 'private', 'school', 'public'
    is_public: bool = False
    settings: dict = field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Book":
        return cls(
            id=str(row["id"]),
            owner_id=str(row["owner_id"]),
            title=str(row["title"]),
            description=row["description"],
            visibility=str(row["visibility"]),
            is_public=bool(row["is_public"]),
            settings=_decode_json(row["settings"], {}),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CollaboratorGrant:
    """(book, user, role) grant; at most one per (book, user)."""
    id: str
    book_id: str
    user_id: str
    role: str  # 'viewer', 'editor', 'admin'
    invited_by: str
    status: str = "active"  # 'active', 'pending'
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "CollaboratorGrant":
        return cls(
            id=str(row["id"]),
            book_id=str(row["book_id"]),
            user_id=str(row["user_id"]),
            role=str(row["role"]),
            invited_by=str(row["invited_by"]),
            status=str(row["status"]),
            created_at=row["created_at"],
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Chapter:
    id: str
    book_id: str
    title: str
    position: int
    description: Optional[str] = None
    settings: dict = field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Chapter":
        return cls(
            id=str(row["id"]),
            book_id=str(row["book_id"]),
            title=str(row["title"]),
            position=int(row["position"]),
            description=row["description"],
            settings=_decode_json(row["settings"], {}),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Block:
    id: str
    chapter_id: str
    type: str
    position: int
    content: dict = field(default_factory=dict)
    style: dict = field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Block":
        return cls(
            id=str(row["id"]),
            chapter_id=str(row["chapter_id"]),
            type=str(row["type"]),
            position=int(row["position"]),
            content=_decode_json(row["content"], {}),
            style=_decode_json(row["style"], {}),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_dict(self) -> dict:
        return asdict(self)


def utc_now() -> str:
    """ISO-8601 UTC timestamp without fractional seconds (e.g. 2024-01-01T00:00:00Z)."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


__all__ = ["Book", "CollaboratorGrant", "Chapter", "Block", "encode_json", "utc_now"]
