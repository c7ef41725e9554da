"""Database bootstrap utilities.

Exposes engine construction, the per-operation transaction helper and the
idempotent schema bootstrap. The DB layer does not leak ORM models into
route handlers.
"""

from bookforge.db.base import get_engine, transaction
from bookforge.db.schema_bootstrap import apply_schema

__all__ = [
    "get_engine",
    "transaction",
    "apply_schema",
]
