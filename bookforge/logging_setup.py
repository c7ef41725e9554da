"""Central logging configuration.

Installs one stdout handler on the root logger so every ``bookforge.*``
module logger emits without per-module setup. The level comes from
``LOG_LEVEL`` (default INFO). Reloaders call this more than once, so a root
logger that already has handlers is left alone.
"""
from __future__ import annotations

import logging
import os
from logging.config import dictConfig


def _build_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s:%(name)s:%(message)s",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "default",
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": level, "handlers": ["console"]},
        "loggers": {
            "bookforge": {"level": level, "propagate": True},
            # Per-statement SQL logging is far too chatty at INFO
            "sqlalchemy.engine": {"level": "WARNING", "propagate": True},
            "uvicorn.error": {"level": "INFO", "handlers": ["console"], "propagate": False},
            "uvicorn.access": {"level": "INFO", "handlers": ["console"], "propagate": False},
        },
    }


def configure_logging(level: str | None = None) -> None:
    root = logging.getLogger()
    if root.handlers:
        return
    resolved = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    if resolved not in logging.getLevelNamesMapping():
        resolved = "INFO"
    dictConfig(_build_config(resolved))


__all__ = ["configure_logging"]
