"""Configuration utilities.

This module loads application configuration with the following rules:
- Primary source: `bookforge_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("bookforge_config.json")
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


def _truthy(value: Optional[str]) -> bool:
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


class DatabaseConfig(BaseModel):
    dsn: str
    auto_apply_schema: bool = Field(default=True)

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class OrderingConfig(BaseModel):
    # Re-read each touched sibling group after a write and fail the
    # transaction if positions are not exactly 0..N-1
    verify_after_write: bool = Field(default=True)


class BooksConfig(BaseModel):
    page_limit_default: int = Field(default=10, gt=0)
    page_limit_max: int = Field(default=50, gt=0)


class AppConfig(BaseModel):
    database: DatabaseConfig
    ordering: OrderingConfig
    books: BooksConfig


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:  # pragma: no cover - defensive
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) bookforge_config.json at project root (primary base)
    4) Safe defaults for development
    """

    base = _read_json_file(ROOT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    dsn = (
        _env("TEST_DATABASE_URL")
        or _env("DATABASE_URL")
        or _read_config_file("database.url")
        or _base("database.dsn")
        or "sqlite+pysqlite:///:memory:"
    )
    auto_schema = _env("AUTO_APPLY_SCHEMA") or _read_config_file("database.auto_apply_schema") or _base("database.auto_apply_schema", "true")
    verify_text = _env("ORDERING_VERIFY_AFTER_WRITE") or _read_config_file("ordering.verify_after_write") or _base("ordering.verify_after_write", "true")
    limit_default = _env("BOOKS_PAGE_LIMIT_DEFAULT") or _read_config_file("books.page_limit_default") or _base("books.page_limit_default", "10")
    limit_max = _env("BOOKS_PAGE_LIMIT_MAX") or _read_config_file("books.page_limit_max") or _base("books.page_limit_max", "50")

    try:
        cfg = AppConfig(
            database=DatabaseConfig(dsn=dsn, auto_apply_schema=_truthy(auto_schema)),
            ordering=OrderingConfig(verify_after_write=_truthy(verify_text)),
            books=BooksConfig(
                page_limit_default=int(str(limit_default).strip()),
                page_limit_max=int(str(limit_max).strip()),
            ),
        )
        return cfg
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Return the process-wide configuration, loaded once."""
    return load_config()


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "OrderingConfig",
    "BooksConfig",
    "load_config",
    "get_config",
]
