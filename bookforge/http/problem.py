"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type, the single mapping from core error classes
to HTTP status and code, and the handler callables registered on the app.
"""

from __future__ import annotations

from typing import Any, Dict
import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from bookforge.errors import (
    AccessDenied,
    BookforgeError,
    InvariantViolation,
    NotFoundOrDenied,
    PositionOutOfRange,
    TransientStoreFailure,
    ValidationFailed,
)

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)

# Checked in order; subclasses must precede their bases
ERROR_MAP: list[tuple[type[BookforgeError], Dict[str, Any]]] = [
    (AccessDenied, {"title": "Forbidden", "status": 403}),
    (NotFoundOrDenied, {"title": "Not Found", "status": 404}),
    (PositionOutOfRange, {"title": "Unprocessable Entity", "status": 422}),
    (ValidationFailed, {"title": "Unprocessable Entity", "status": 422}),
    (TransientStoreFailure, {"title": "Service Unavailable", "status": 503}),
    (InvariantViolation, {"title": "Internal Server Error", "status": 500}),
]


def problem_for(exc: BookforgeError) -> Dict[str, Any]:
    """Build the problem body for a core error."""
    meta = {"title": "Internal Server Error", "status": 500}
    for cls, candidate in ERROR_MAP:
        if isinstance(exc, cls):
            meta = candidate
            break
    problem: Dict[str, Any] = {
        "type": "about:blank",
        "title": meta["title"],
        "status": meta["status"],
        "code": exc.code,
        "detail": exc.message,
    }
    # Internal details stay in the logs; store errors and invariant breaks
    # are reported to clients without context
    if isinstance(exc, PositionOutOfRange):
        problem["errors"] = [{"path": "$.position", "code": "out_of_range", "max": exc.upper}]
    elif isinstance(exc, (TransientStoreFailure, InvariantViolation)):
        problem["detail"] = meta["title"]
    return problem


async def handle_core_error(request: Request, exc: BookforgeError) -> JSONResponse:  # noqa: D401
    problem = problem_for(exc)
    status = int(problem["status"])
    if status >= 500:
        logger.error("error_handler.handle code=%s path=%s", exc.code, request.url.path, exc_info=exc)
    else:
        logger.info("error_handler.handle code=%s status=%s path=%s", exc.code, status, request.url.path)
    return JSONResponse(problem, status_code=status, media_type=PROBLEM_MEDIA_TYPE)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    detail = exc.detail if isinstance(exc.detail, dict) else {
        "title": "Error",
        "status": int(exc.status_code or 500),
        "detail": str(exc.detail or ""),
    }
    return JSONResponse(
        detail,
        status_code=int(exc.status_code or 500),
        media_type=PROBLEM_MEDIA_TYPE,
        headers=dict(exc.headers) if exc.headers else None,
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    errors = [
        {"path": "$." + ".".join(str(p) for p in err.get("loc", ())[1:]), "code": err.get("type"), "message": err.get("msg")}
        for err in exc.errors()
    ]
    problem = {
        "type": "about:blank",
        "title": "Unprocessable Entity",
        "status": 422,
        "code": "VALIDATION_FAILED",
        "detail": "Request validation failed",
        "errors": errors,
    }
    return JSONResponse(problem, status_code=422, media_type=PROBLEM_MEDIA_TYPE)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return JSONResponse(
        {"type": "about:blank", "title": "Internal Server Error", "status": 500},
        status_code=500,
        media_type=PROBLEM_MEDIA_TYPE,
    )


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "ERROR_MAP",
    "problem_for",
    "handle_core_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
