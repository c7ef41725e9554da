"""Sibling ordering engine for chapters and blocks.

Provides the single source of truth for ``position`` values. Within a
sibling group (the chapters of one book, or the blocks of one chapter)
positions are exactly ``0..N-1`` after every committed operation.

All functions run on a caller-supplied connection that is already inside a
transaction; the caller has resolved access and validated the target
position (``0 <= position <= count`` for inserts, ``< count`` for moves)
before calling in. Nothing here opens, commits or retries a transaction.

Range shifts are written in two phases so the unique ``(parent, position)``
index holds after every statement: shifted rows are first parked at
distinct negative positions, then restored to their final value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional
import logging
import uuid

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from bookforge.config import get_config
from bookforge.errors import InvariantViolation, ValidationFailed
from bookforge.logic.repository_books import lock_clause
from bookforge.models.entities import encode_json, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SiblingGroup:
    """Where a sibling group lives: member table, parent column, parent table."""

    table: str
    parent_column: str
    parent_table: str
    columns: tuple[str, ...]
    json_columns: tuple[str, ...] = ()


CHAPTERS = SiblingGroup(
    table="chapters",
    parent_column="book_id",
    parent_table="books",
    columns=("title", "description", "settings"),
    json_columns=("settings",),
)

BLOCKS = SiblingGroup(
    table="blocks",
    parent_column="chapter_id",
    parent_table="chapters",
    columns=("type", "content", "style"),
    json_columns=("content", "style"),
)


def lock_parent(conn: Connection, group: SiblingGroup, parent_id: str) -> bool:
    """Serialise writers on one sibling group; return whether the parent exists.

    Takes a row lock on the parent on PostgreSQL so concurrent operations on
    the same group queue up while other parents stay unblocked.
    """
    row = conn.execute(
        sql_text(f"SELECT id FROM {group.parent_table} WHERE id = :pid" + lock_clause(conn, "update")),
        {"pid": parent_id},
    ).fetchone()
    return row is not None


def count_members(conn: Connection, group: SiblingGroup, parent_id: str) -> int:
    return int(
        conn.execute(
            sql_text(f"SELECT COUNT(*) FROM {group.table} WHERE {group.parent_column} = :pid"),
            {"pid": parent_id},
        ).scalar_one()
    )


def list_members(conn: Connection, group: SiblingGroup, parent_id: str) -> List[Mapping[str, Any]]:
    """Return ``(id, position)`` rows of a group ordered by position ascending."""
    return list(
        conn.execute(
            sql_text(
                f"SELECT id, position FROM {group.table} WHERE {group.parent_column} = :pid ORDER BY position ASC"
            ),
            {"pid": parent_id},
        ).mappings().fetchall()
    )


def _member_position(conn: Connection, group: SiblingGroup, member_id: str) -> Optional[tuple[str, int]]:
    row = conn.execute(
        sql_text(f"SELECT {group.parent_column}, position FROM {group.table} WHERE id = :mid"),
        {"mid": member_id},
    ).fetchone()
    if not row:
        return None
    return str(row[0]), int(row[1])


def _shift_range(
    conn: Connection,
    group: SiblingGroup,
    parent_id: str,
    lo: int,
    hi: Optional[int],
    delta: int,
) -> int:
    """Add ``delta`` to every position in ``[lo, hi]`` (``hi=None``: unbounded).

    Phase 1 parks each row at ``-(position + delta) - 1``; phase 2 maps
    every negative position back with ``-position - 1``. Returns the number
    of rows shifted.
    """
    where = f"{group.parent_column} = :pid AND position >= :lo"
    params: Dict[str, Any] = {"pid": parent_id, "lo": lo, "delta": delta}
    if hi is not None:
        where += " AND position <= :hi"
        params["hi"] = hi
    shifted = conn.execute(
        sql_text(f"UPDATE {group.table} SET position = -(position + :delta) - 1 WHERE {where}"),
        params,
    ).rowcount
    if shifted:
        conn.execute(
            sql_text(
                f"UPDATE {group.table} SET position = -position - 1, updated_at = :now "
                f"WHERE {group.parent_column} = :pid AND position < 0"
            ),
            {"pid": parent_id, "now": utc_now()},
        )
    return int(shifted or 0)


def verify_dense(conn: Connection, group: SiblingGroup, parent_id: str) -> None:
    """Raise InvariantViolation unless positions are exactly ``0..N-1``."""
    positions = [int(r["position"]) for r in list_members(conn, group, parent_id)]
    if positions != list(range(len(positions))):
        logger.error(
            "ordering.invariant.violated table=%s parent=%s positions=%s",
            group.table,
            parent_id,
            positions,
        )
        raise InvariantViolation(
            f"{group.table} under {parent_id} are not densely ordered",
            table=group.table,
            parent_id=parent_id,
            positions=positions,
        )


def _maybe_verify(conn: Connection, group: SiblingGroup, parent_id: str, verify: Optional[bool]) -> None:
    if verify is None:
        verify = get_config().ordering.verify_after_write
    if verify:
        verify_dense(conn, group, parent_id)


def insert_at(
    conn: Connection,
    group: SiblingGroup,
    parent_id: str,
    values: Mapping[str, Any],
    desired_position: Optional[int] = None,
    *,
    verify: Optional[bool] = None,
) -> tuple[str, int]:
    """Insert a new member and return ``(member_id, assigned_position)``.

    Without ``desired_position`` the member is appended at ``count``.
    Otherwise every member at or after the slot moves up by one first.
    """
    count = count_members(conn, group, parent_id)
    if desired_position is None:
        position = count
    else:
        position = int(desired_position)
        _shift_range(conn, group, parent_id, position, None, 1)

    member_id = str(uuid.uuid4())
    now = utc_now()
    params: Dict[str, Any] = {"id": member_id, "pid": parent_id, "pos": position, "now": now}
    for col in group.columns:
        value = values.get(col)
        params[col] = encode_json(value) if col in group.json_columns else value
    cols = ", ".join(group.columns)
    binds = ", ".join(f":{c}" for c in group.columns)
    conn.execute(
        sql_text(
            f"INSERT INTO {group.table} (id, {group.parent_column}, {cols}, position, created_at, updated_at) "
            f"VALUES (:id, :pid, {binds}, :pos, :now, :now)"
        ),
        params,
    )
    _maybe_verify(conn, group, parent_id, verify)
    logger.info(
        "ordering.insert table=%s parent=%s member=%s position=%s count_before=%s",
        group.table,
        parent_id,
        member_id,
        position,
        count,
    )
    return member_id, position


def move_to(
    conn: Connection,
    group: SiblingGroup,
    member_id: str,
    new_position: int,
    *,
    verify: Optional[bool] = None,
) -> int:
    """Move a member within its group and return its final position.

    Moving later shifts ``(old, new]`` down by one; moving earlier shifts
    ``[new, old)`` up by one. Equal positions are a no-op.
    """
    located = _member_position(conn, group, member_id)
    if located is None:
        raise InvariantViolation(f"{group.table} member {member_id} vanished mid-transaction", member_id=member_id)
    parent_id, old_position = located
    new_position = int(new_position)
    if new_position == old_position:
        return old_position

    # Park the moving member outside the range the shift can produce
    park = -(count_members(conn, group, parent_id) + 1)
    conn.execute(
        sql_text(f"UPDATE {group.table} SET position = :park WHERE id = :mid"),
        {"park": park, "mid": member_id},
    )
    if new_position > old_position:
        _shift_range(conn, group, parent_id, old_position + 1, new_position, -1)
    else:
        _shift_range(conn, group, parent_id, new_position, old_position - 1, 1)
    conn.execute(
        sql_text(f"UPDATE {group.table} SET position = :pos, updated_at = :now WHERE id = :mid"),
        {"pos": new_position, "now": utc_now(), "mid": member_id},
    )
    _maybe_verify(conn, group, parent_id, verify)
    logger.info(
        "ordering.move table=%s parent=%s member=%s from=%s to=%s",
        group.table,
        parent_id,
        member_id,
        old_position,
        new_position,
    )
    return new_position


def delete_and_compact(
    conn: Connection,
    group: SiblingGroup,
    member_id: str,
    *,
    verify: Optional[bool] = None,
) -> int:
    """Remove a member and close the gap; return the position it held."""
    located = _member_position(conn, group, member_id)
    if located is None:
        raise InvariantViolation(f"{group.table} member {member_id} vanished mid-transaction", member_id=member_id)
    parent_id, deleted_position = located
    conn.execute(sql_text(f"DELETE FROM {group.table} WHERE id = :mid"), {"mid": member_id})
    shifted = _shift_range(conn, group, parent_id, deleted_position + 1, None, -1)
    _maybe_verify(conn, group, parent_id, verify)
    logger.info(
        "ordering.delete table=%s parent=%s member=%s position=%s compacted=%s",
        group.table,
        parent_id,
        member_id,
        deleted_position,
        shifted,
    )
    return deleted_position


def _validate_bulk_positions(current: Dict[str, int], requested: Dict[str, int]) -> None:
    final = dict(current)
    final.update(requested)
    ordered = sorted(final.values())
    if ordered != list(range(len(final))):
        raise ValidationFailed(
            "bulk positions must leave the chapter densely ordered",
            requested=requested,
        )


def bulk_apply(
    conn: Connection,
    chapter_id: str,
    updates: Iterable[Mapping[str, Any]],
    *,
    verify: Optional[bool] = None,
) -> List[str]:
    """Apply per-block content/style/position updates within one chapter.

    Items naming blocks outside the chapter are skipped. Positions that are
    supplied must, together with the unlisted blocks, form ``0..N-1``; the
    whole batch is rejected with ValidationFailed before any write if not.
    Returns the ids that were updated, in request order.
    """
    items = list(updates)
    members = {str(r["id"]): int(r["position"]) for r in list_members(conn, BLOCKS, chapter_id)}
    known = [item for item in items if str(item["id"]) in members]
    skipped = len(items) - len(known)

    requested = {
        str(item["id"]): int(item["position"]) for item in known if item.get("position") is not None
    }
    # Only moved blocks need to go through the parking step
    moving = {bid: pos for bid, pos in requested.items() if members[bid] != pos}
    if moving:
        _validate_bulk_positions(members, requested)
        for idx, bid in enumerate(sorted(moving)):
            conn.execute(
                sql_text("UPDATE blocks SET position = :park WHERE id = :bid"),
                {"park": -(idx + 1), "bid": bid},
            )
        for bid, pos in moving.items():
            conn.execute(
                sql_text("UPDATE blocks SET position = :pos WHERE id = :bid"),
                {"pos": pos, "bid": bid},
            )

    now = utc_now()
    updated: List[str] = []
    for item in known:
        params: Dict[str, Any] = {"bid": str(item["id"]), "now": now}
        assignments = ["updated_at = :now"]
        for col in ("content", "style"):
            if item.get(col) is not None:
                assignments.append(f"{col} = :{col}")
                params[col] = encode_json(item[col])
        conn.execute(sql_text(f"UPDATE blocks SET {', '.join(assignments)} WHERE id = :bid"), params)
        updated.append(str(item["id"]))

    _maybe_verify(conn, BLOCKS, chapter_id, verify)
    logger.info(
        "ordering.bulk_apply chapter=%s updated=%s moved=%s skipped=%s",
        chapter_id,
        len(updated),
        len(moving),
        skipped,
    )
    return updated


__all__ = [
    "SiblingGroup",
    "CHAPTERS",
    "BLOCKS",
    "lock_parent",
    "count_members",
    "list_members",
    "verify_dense",
    "insert_at",
    "move_to",
    "delete_and_compact",
    "bulk_apply",
]
