"""Access resolver tiers and the write/read gates built on them."""

from __future__ import annotations

import pytest

from bookforge.db.base import transaction
from bookforge.errors import AccessDenied, NotFoundOrDenied
from bookforge.logic import repository_books as books_repo
from bookforge.logic.access import (
    BookPermissions,
    Tier,
    can_delete_book,
    can_read,
    can_share_book,
    can_write,
    load_book_for_read,
    load_book_for_write,
    resolve,
)
from bookforge.models.roles import GrantStatus

from helpers import ADMIN, EDITOR, OWNER, STRANGER, VIEWER


def _tier(actor, book_id):
    with transaction() as conn:
        book = books_repo.get_book(conn, book_id)
        return resolve(conn, actor, book)


def test_tiers_follow_resolution_order(make_book):
    book = make_book(grants={EDITOR: "editor", ADMIN: "admin", VIEWER: "viewer"})

    assert _tier(OWNER, book["id"]) is Tier.OWNER
    assert _tier(EDITOR, book["id"]) is Tier.EDITOR
    assert _tier(ADMIN, book["id"]) is Tier.EDITOR
    assert _tier(VIEWER, book["id"]) is Tier.VIEWER
    assert _tier(STRANGER, book["id"]) is Tier.NONE
    assert _tier(None, book["id"]) is Tier.NONE


def test_public_flag_gives_public_reader_to_everyone_else(make_book):
    book = make_book(is_public=True, grants={VIEWER: "viewer"})

    assert _tier(STRANGER, book["id"]) is Tier.PUBLIC_READER
    assert _tier(None, book["id"]) is Tier.PUBLIC_READER
    # A grant outranks the public flag
    assert _tier(VIEWER, book["id"]) is Tier.VIEWER


def test_pending_grant_confers_nothing(make_book):
    book = make_book()
    with transaction() as conn:
        books_repo.upsert_grant(
            conn, book_id=book["id"], user_id=EDITOR, role="editor", invited_by=OWNER, status=GrantStatus.PENDING
        )

    assert _tier(EDITOR, book["id"]) is Tier.NONE


def test_owner_match_wins_over_a_stray_grant_row(make_book):
    book = make_book()
    with transaction() as conn:
        books_repo.upsert_grant(conn, book_id=book["id"], user_id=OWNER, role="viewer", invited_by=OWNER)

    assert _tier(OWNER, book["id"]) is Tier.OWNER


@pytest.mark.parametrize(
    "tier, read, write, delete, share",
    [
        (Tier.NONE, False, False, False, False),
        (Tier.PUBLIC_READER, True, False, False, False),
        (Tier.VIEWER, True, False, False, False),
        (Tier.EDITOR, True, True, False, False),
        (Tier.OWNER, True, True, True, True),
    ],
)
def test_capabilities_per_tier(tier, read, write, delete, share):
    assert can_read(tier) is read
    assert can_write(tier) is write
    assert can_delete_book(tier) is delete
    assert can_share_book(tier) is share
    assert BookPermissions.for_tier(tier).to_dict() == {"can_edit": write, "can_delete": delete, "can_share": share}


def test_tiers_are_totally_ordered():
    assert Tier.NONE < Tier.PUBLIC_READER < Tier.VIEWER < Tier.EDITOR < Tier.OWNER


def test_read_gate_conflates_missing_and_private(make_book):
    book = make_book()

    with transaction() as conn:
        with pytest.raises(NotFoundOrDenied) as hidden:
            load_book_for_read(conn, STRANGER, book["id"])
        with pytest.raises(NotFoundOrDenied) as missing:
            load_book_for_read(conn, STRANGER, "no-such-book")

    assert hidden.value.code == missing.value.code
    assert hidden.value.message == missing.value.message


def test_write_gate_denies_viewer_and_public_reader(make_book):
    book = make_book(is_public=True, grants={VIEWER: "viewer"})

    with transaction() as conn:
        with pytest.raises(AccessDenied):
            load_book_for_write(conn, VIEWER, book["id"])
        with pytest.raises(AccessDenied):
            load_book_for_write(conn, STRANGER, book["id"])
        _, tier = load_book_for_write(conn, OWNER, book["id"])
    assert tier is Tier.OWNER


def test_revoked_grant_takes_effect_immediately(make_book):
    from bookforge.logic import collaborators as collaborator_service

    book = make_book(grants={EDITOR: "editor"})
    assert _tier(EDITOR, book["id"]) is Tier.EDITOR

    collaborator_service.revoke_collaborator(OWNER, book["id"], EDITOR)

    assert _tier(EDITOR, book["id"]) is Tier.NONE
