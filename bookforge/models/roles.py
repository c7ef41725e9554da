"""Book visibility, collaborator role and grant status constants.

Provides simple constants containers instead of Enums so row values read
straight from the store compare without conversion.
"""

from __future__ import annotations


class Visibility:
    PRIVATE = "private"
    SCHOOL = "school"
    PUBLIC = "public"

    ALL = (PRIVATE, SCHOOL, PUBLIC)


class CollaboratorRole:
    VIEWER = "viewer"
    EDITOR = "editor"
    # admin-collaborator: edits like an editor, never gains owner rights
    ADMIN = "admin"

    ALL = (VIEWER, EDITOR, ADMIN)
    WRITERS = (EDITOR, ADMIN)


class GrantStatus:
    ACTIVE = "active"
    PENDING = "pending"

    ALL = (ACTIVE, PENDING)


__all__ = ["Visibility", "CollaboratorRole", "GrantStatus"]
