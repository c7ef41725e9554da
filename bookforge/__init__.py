"""Bookforge: book authoring service.

Exposes the FastAPI application factory. Ordering and access rules live in
`bookforge/logic/`, HTTP handlers in `bookforge/routes/`.
"""

from __future__ import annotations

from bookforge.main import create_app

__all__ = ["create_app"]
