"""Caller-side position validation.

The ordering engine assumes ``0 <= position <= count`` for inserts and
``0 <= position < count`` for moves. Services call these helpers before
invoking the engine so out-of-range values are rejected as input errors
and never reach a shift.
"""

from __future__ import annotations

from typing import Any, Optional

from bookforge.errors import PositionOutOfRange, ValidationFailed


def _as_int(position: Any) -> int:
    if isinstance(position, bool) or not isinstance(position, int):
        raise ValidationFailed("position must be an integer", position=position)
    return position


def validate_insert_position(position: Optional[Any], count: int) -> Optional[int]:
    """Return the validated slot, or None to append at the end."""
    if position is None:
        return None
    pos = _as_int(position)
    if pos < 0 or pos > count:
        raise PositionOutOfRange(pos, count)
    return pos


def validate_move_position(position: Any, count: int) -> int:
    pos = _as_int(position)
    if pos < 0 or pos > count - 1:
        raise PositionOutOfRange(pos, max(count - 1, 0))
    return pos


__all__ = ["validate_insert_position", "validate_move_position"]
