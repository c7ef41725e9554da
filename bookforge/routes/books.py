"""Book, public-book and collaborator routes.

Handlers are thin: they parse the payload, pass the actor through to the
services and let the problem+json handlers render core errors.
"""

from __future__ import annotations

from typing import Optional
from fastapi import APIRouter, Depends, Query, Response

from bookforge.http.actor import current_actor
from bookforge.logic import books as book_service
from bookforge.logic import collaborators as collaborator_service
from bookforge.models.requests import BookCreate, BookUpdate, CollaboratorGrantIn

router = APIRouter()


@router.post("/books", status_code=201)
def create_book(body: BookCreate, actor: Optional[str] = Depends(current_actor)) -> dict:
    return book_service.create_book(actor, body.model_dump())


@router.get("/books")
def list_books(
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    visibility: Optional[str] = Query(default=None, pattern="^(private|school|public)$"),
    actor: Optional[str] = Depends(current_actor),
) -> dict:
    return book_service.list_books(actor, page=page, limit=limit, visibility=visibility)


@router.get("/books/{book_id}")
def get_book(book_id: str, actor: Optional[str] = Depends(current_actor)) -> dict:
    return book_service.get_book(actor, book_id)


@router.patch("/books/{book_id}")
def update_book(book_id: str, body: BookUpdate, actor: Optional[str] = Depends(current_actor)) -> dict:
    return book_service.update_book(actor, book_id, body.model_dump(exclude_unset=True))


@router.delete("/books/{book_id}", status_code=204)
def delete_book(book_id: str, actor: Optional[str] = Depends(current_actor)) -> Response:
    book_service.delete_book(actor, book_id)
    return Response(status_code=204)


@router.get("/public/books/{book_id}")
def get_public_book(book_id: str) -> dict:
    return book_service.get_public_book(book_id)


@router.get("/books/{book_id}/collaborators")
def list_collaborators(book_id: str, actor: Optional[str] = Depends(current_actor)) -> dict:
    return {"collaborators": collaborator_service.list_collaborators(actor, book_id)}


@router.put("/books/{book_id}/collaborators/{user_id}")
def grant_collaborator(
    book_id: str,
    user_id: str,
    body: CollaboratorGrantIn,
    actor: Optional[str] = Depends(current_actor),
) -> dict:
    return collaborator_service.grant_collaborator(actor, book_id, user_id, body.role)


@router.delete("/books/{book_id}/collaborators/{user_id}", status_code=204)
def revoke_collaborator(book_id: str, user_id: str, actor: Optional[str] = Depends(current_actor)) -> Response:
    collaborator_service.revoke_collaborator(actor, book_id, user_id)
    return Response(status_code=204)


__all__ = ["router"]
