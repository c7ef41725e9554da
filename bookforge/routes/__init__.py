"""APIRouter registration for the book authoring service."""

from __future__ import annotations

from fastapi import APIRouter

from bookforge.routes.blocks import router as blocks_router
from bookforge.routes.books import router as books_router
from bookforge.routes.chapters import router as chapters_router

api_router = APIRouter()
api_router.include_router(books_router, tags=["Books", "Collaborators"])
api_router.include_router(chapters_router, tags=["Chapters"])
api_router.include_router(blocks_router, tags=["Blocks"])

__all__ = ["api_router"]
