from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from bookforge.config import get_config
from bookforge.db.base import get_engine
from bookforge.db.schema_bootstrap import apply_schema
from bookforge.errors import BookforgeError
from bookforge.http.problem import (
    handle_core_error,
    handle_http_exception,
    handle_request_validation_error,
    handle_unexpected_error,
)
from bookforge.http.request_id import RequestIdMiddleware
from bookforge.logging_setup import configure_logging
from bookforge.routes import api_router

logger = logging.getLogger(__name__)


def _health_check() -> Callable[[], dict]:
    def check() -> dict:
        try:
            with get_engine().connect() as conn:
                conn.execute(sql_text("SELECT 1"))
            return {"status": "ok", "db": True}
        except SQLAlchemyError as e:
            logger.error("Health DB check failed", exc_info=True)
            return {"status": "degraded", "db": False, "reason": type(e).__name__}

    return check


@asynccontextmanager
async def _lifespan(app: FastAPI):  # type: ignore[no-untyped-def]
    cfg = get_config()
    engine = get_engine()
    if cfg.database.auto_apply_schema:
        apply_schema(engine)
    else:
        logger.info("AUTO_APPLY_SCHEMA disabled; skipping schema bootstrap at startup")
    yield


def create_app() -> FastAPI:
    """Build the HTTP application.

    Logging is configured before the app exists so import-time loggers in
    route and logic modules share the same handlers.
    """
    configure_logging()
    app = FastAPI(title="Bookforge", lifespan=_lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(BookforgeError, handle_core_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.include_router(api_router, prefix="/api/v1")

    health_check = _health_check()

    @app.get("/health")
    def health():  # pragma: no cover - trivial
        return health_check()

    return app


# Intentionally do not instantiate the app at import time to prevent side effects.
