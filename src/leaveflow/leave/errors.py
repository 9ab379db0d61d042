"""Leave error taxonomy.

StoreCorruptionError is recovered inside the store and never reaches a
caller. Everything else is scoped to the single call that raised it.
"""

from __future__ import annotations

from typing import Optional


class LeaveError(Exception):
    """Base class for leave domain errors."""


class StoreCorruptionError(LeaveError):
    """Persisted leave data could not be deserialized."""


class NotFoundError(LeaveError, LookupError):
    """No leave record exists with the requested id."""

    def __init__(self, leave_id: str) -> None:
        super().__init__(f"Leave record not found: {leave_id}")
        self.leave_id = leave_id


class InvalidTransitionError(LeaveError, ValueError):
    """A status change is not permitted by the lifecycle."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            f"Invalid status transition: {current} -> {target}"
        )
        self.current = current
        self.target = target


class ValidationError(LeaveError, ValueError):
    """A submission or argument failed validation.

    ``errors`` lists every problem found, not just the first.
    """

    def __init__(self, errors: list[str], message: Optional[str] = None) -> None:
        super().__init__(message or "; ".join(errors))
        self.errors = list(errors)


class PermissionDeniedError(LeaveError):
    """The session's role may not perform the requested action."""
