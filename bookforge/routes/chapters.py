"""Chapter routes."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Response

from bookforge.http.actor import current_actor
from bookforge.logic import chapters as chapter_service
from bookforge.models.requests import ChapterCreate, ChapterUpdate, PositionUpdate

router = APIRouter()


@router.get("/books/{book_id}/chapters")
def list_chapters(book_id: str, actor: Optional[str] = Depends(current_actor)) -> dict:
    return {"chapters": chapter_service.list_chapters(actor, book_id)}


@router.post("/books/{book_id}/chapters", status_code=201)
def create_chapter(book_id: str, body: ChapterCreate, actor: Optional[str] = Depends(current_actor)) -> dict:
    return chapter_service.create_chapter(actor, book_id, body.model_dump())


@router.get("/chapters/{chapter_id}")
def get_chapter(chapter_id: str, actor: Optional[str] = Depends(current_actor)) -> dict:
    return chapter_service.get_chapter(actor, chapter_id)


@router.patch("/chapters/{chapter_id}")
def update_chapter(chapter_id: str, body: ChapterUpdate, actor: Optional[str] = Depends(current_actor)) -> dict:
    return chapter_service.update_chapter(actor, chapter_id, body.model_dump(exclude_unset=True))


@router.put("/chapters/{chapter_id}/position")
def reorder_chapter(chapter_id: str, body: PositionUpdate, actor: Optional[str] = Depends(current_actor)) -> dict:
    return chapter_service.reorder_chapter(actor, chapter_id, body.position)


@router.delete("/chapters/{chapter_id}", status_code=204)
def delete_chapter(chapter_id: str, actor: Optional[str] = Depends(current_actor)) -> Response:
    chapter_service.delete_chapter(actor, chapter_id)
    return Response(status_code=204)


__all__ = ["router"]
