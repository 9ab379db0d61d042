"""Leave lifecycle — status transition rules.

    PENDING → APPROVED
    PENDING → REJECTED

APPROVED and REJECTED are terminal. Re-applying a record's current
status is allowed and is a state no-op; the repository still refreshes
the processed timestamp.

In permissive mode any status may be set to any other, matching the
legacy client that never enforced a table.

The lifecycle validates but does not apply. The caller mutates the
record once validation passes.
"""

from __future__ import annotations

from leaveflow.leave.errors import InvalidTransitionError, ValidationError
from leaveflow.models.leave import LeaveRecord, LeaveStatus

TRANSITIONS: dict[LeaveStatus, frozenset[LeaveStatus]] = {
    LeaveStatus.PENDING: frozenset({LeaveStatus.APPROVED, LeaveStatus.REJECTED}),
    LeaveStatus.APPROVED: frozenset(),
    LeaveStatus.REJECTED: frozenset(),
}


def coerce_status(status: LeaveStatus | str) -> LeaveStatus:
    """Turn a status value into a LeaveStatus or raise ValidationError."""
    if isinstance(status, LeaveStatus):
        return status
    try:
        return LeaveStatus(str(status).strip().lower())
    except ValueError:
        valid = ", ".join(s.value for s in LeaveStatus)
        raise ValidationError(
            [f"Unknown leave status: {status!r} (expected one of: {valid})"]
        ) from None


class LeaveLifecycle:
    """Validates status changes against the transition table."""

    def __init__(self, enforce: bool = True) -> None:
        self._enforce = enforce

    @property
    def enforcing(self) -> bool:
        return self._enforce

    def allowed_targets(self, current: LeaveStatus) -> frozenset[LeaveStatus]:
        if not self._enforce:
            return frozenset(LeaveStatus)
        return TRANSITIONS[current] | {current}

    def is_allowed(self, current: LeaveStatus, target: LeaveStatus) -> bool:
        return target in self.allowed_targets(current)

    def validate(self, record: LeaveRecord, target: LeaveStatus | str) -> LeaveStatus:
        """Return the coerced target status, or raise.

        Raises ValidationError for an unknown status value and
        InvalidTransitionError for a change the table forbids.
        """
        target_status = coerce_status(target)
        if not self.is_allowed(record.status, target_status):
            raise InvalidTransitionError(
                record.status.value, target_status.value,
            )
        return target_status
