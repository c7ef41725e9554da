"""Actor extraction.

Authentication happens upstream; by the time a request reaches this
service the gateway has put the authenticated user id in ``X-Actor-Id``.
A missing header means an anonymous actor.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Header

ACTOR_HEADER = "X-Actor-Id"


def current_actor(x_actor_id: Optional[str] = Header(default=None, alias=ACTOR_HEADER)) -> Optional[str]:
    if x_actor_id is None:
        return None
    actor = x_actor_id.strip()
    return actor or None


__all__ = ["ACTOR_HEADER", "current_actor"]
