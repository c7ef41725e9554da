"""Error taxonomy for the ordering and access core.

Services raise these; ``bookforge.http.problem`` maps them to problem+json
responses. The resolver itself never raises access errors, it only returns
a tier.
"""

from __future__ import annotations

from typing import Any


class BookforgeError(Exception):
    """Base class for errors raised by the core."""

    code = "BOOKFORGE_ERROR"

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(message)


class AccessDenied(BookforgeError):
    """Actor's resolved tier is insufficient for the requested write."""

    code = "ACCESS_DENIED"

    def __init__(self, actor_id: str | None, book_id: str, action: str) -> None:
        self.actor_id = actor_id
        self.book_id = book_id
        self.action = action
        super().__init__(
            f"Access denied: {actor_id or 'anonymous'} may not {action} on book {book_id}",
            actor_id=actor_id,
            book_id=book_id,
            action=action,
        )


class NotFoundOrDenied(BookforgeError):
    """Resource is absent or the actor may not read it.

    The two causes are deliberately indistinguishable to the caller.
    """

    code = "NOT_FOUND_OR_DENIED"

    def __init__(self, kind: str, resource_id: str) -> None:
        self.kind = kind
        self.resource_id = resource_id
        super().__init__(f"{kind} not found", kind=kind, resource_id=resource_id)


class ValidationFailed(BookforgeError):
    """Input rejected before any write was attempted."""

    code = "VALIDATION_FAILED"


class PositionOutOfRange(ValidationFailed):
    code = "POSITION_OUT_OF_RANGE"

    def __init__(self, position: int, upper: int) -> None:
        self.position = position
        self.upper = upper
        super().__init__(
            f"position must be between 0 and {upper}, got {position}",
            position=position,
            upper=upper,
        )


class InvariantViolation(BookforgeError):
    """A sibling group was left non-dense. Indicates a bug; never recoverable."""

    code = "INVARIANT_VIOLATION"


class TransientStoreFailure(BookforgeError):
    """Persistence layer failed; the transaction was rolled back."""

    code = "STORE_UNAVAILABLE"


__all__ = [
    "BookforgeError",
    "AccessDenied",
    "NotFoundOrDenied",
    "ValidationFailed",
    "PositionOutOfRange",
    "InvariantViolation",
    "TransientStoreFailure",
]
