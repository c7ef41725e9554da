"""Pydantic models for write payloads.

Declares request shapes for the book, collaborator, chapter and block write
routes without coupling them to the route modules. Position range checks
need the current sibling count and are performed by the services.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


def _non_blank(v: Optional[str]) -> Optional[str]:
    if v is not None and not v.strip():
        raise ValueError("must not be blank")
    return v.strip() if v is not None else v


class BookCreate(BaseModel):
    title: str = Field(max_length=255)
    description: Optional[str] = None
    visibility: Literal["private", "school", "public"] = "private"
    is_public: bool = False
    settings: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return _non_blank(v)


class BookUpdate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    visibility: Optional[Literal["private", "school", "public"]] = None
    is_public: Optional[bool] = None
    settings: Optional[Dict[str, Any]] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return _non_blank(v)


class CollaboratorGrantIn(BaseModel):
    role: Literal["viewer", "editor", "admin"] = "viewer"


class ChapterCreate(BaseModel):
    title: str = Field(max_length=255)
    description: Optional[str] = None
    position: Optional[int] = None
    settings: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return _non_blank(v)


class ChapterUpdate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: Optional[str]) -> Optional[str]:
        return _non_blank(v)


class PositionUpdate(BaseModel):
    position: int


class BlockCreate(BaseModel):
    type: str = Field(min_length=1, max_length=50)
    content: Dict[str, Any]
    style: Dict[str, Any] = Field(default_factory=dict)
    position: Optional[int] = None


class BlockUpdate(BaseModel):
    type: Optional[str] = Field(default=None, min_length=1, max_length=50)
    content: Optional[Dict[str, Any]] = None
    style: Optional[Dict[str, Any]] = None


class BlockBulkItem(BaseModel):
    id: str
    content: Optional[Dict[str, Any]] = None
    style: Optional[Dict[str, Any]] = None
    position: Optional[int] = Field(default=None, ge=0)


class BlockBulkUpdate(BaseModel):
    blocks: List[BlockBulkItem] = Field(min_length=1)


__all__ = [
    "BookCreate",
    "BookUpdate",
    "CollaboratorGrantIn",
    "ChapterCreate",
    "ChapterUpdate",
    "PositionUpdate",
    "BlockCreate",
    "BlockUpdate",
    "BlockBulkItem",
    "BlockBulkUpdate",
]
