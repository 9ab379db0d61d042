"""Leave data models — leave types, statuses, records, submissions.

A leave record is one leave request with its review status. Records are
created PENDING by the repository and resolved by a reviewer to APPROVED
or REJECTED. Records are never deleted.

Wire layout:
- The persisted shape uses the camelCase keys of the original browser
  store (``leaveType``, ``startDate``, ``appliedDate`` ...), so a store
  written by another client loads unchanged.
- Timestamps are ISO-8601 UTC with millisecond precision and a ``Z``
  suffix, e.g. ``2023-10-10T00:00:00.000Z``.
- Keys this model does not know about are carried in ``extra`` and
  written back on save.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

# Applicant used when a submission arrives without a username.
DEFAULT_APPLICANT = "Employee"

_KNOWN_KEYS = {
    "id", "applicant", "leaveType", "startDate", "endDate",
    "reason", "status", "appliedDate", "processedDate",
}


class LeaveType(str, enum.Enum):
    """Kinds of leave an employee can apply for."""
    CASUAL = "casual"
    SICK = "sick"
    EARNED = "earned"
    EMERGENCY = "emergency"


class LeaveStatus(str, enum.Enum):
    """Review status of a leave record.

    PENDING → APPROVED | REJECTED
    """
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def format_timestamp(ts: datetime) -> str:
    """Render a timestamp as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ts.microsecond // 1000:03d}Z"


def parse_timestamp(raw: str) -> datetime:
    """Parse a persisted timestamp into an aware UTC datetime.

    Accepts the millisecond ``Z`` form and any offset form that
    ``datetime.fromisoformat`` understands. Raises ValueError for
    anything else, including non-string values.
    """
    if not isinstance(raw, str):
        raise ValueError(f"Timestamp must be a string, got {raw!r}")
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


@dataclass(frozen=True)
class LeaveSubmission:
    """The fields an applicant fills in when applying for leave."""
    leave_type: str
    start_date: str
    end_date: str
    reason: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> LeaveSubmission:
        """Build from form data using either camelCase or snake_case keys.

        Missing fields become empty strings; validation is the caller's
        (or the repository's, when enabled) concern.
        """
        def pick(camel: str, snake: str) -> str:
            value = data.get(camel, data.get(snake, ""))
            if isinstance(value, enum.Enum):
                value = value.value
            return "" if value is None else str(value)

        return cls(
            leave_type=pick("leaveType", "leave_type"),
            start_date=pick("startDate", "start_date"),
            end_date=pick("endDate", "end_date"),
            reason=pick("reason", "reason"),
        )


@dataclass
class LeaveRecord:
    """A single leave request and its review state.

    ``leave_type`` holds a LeaveType for well-formed records; when
    submission validation is disabled an unrecognised raw string is kept
    as-is rather than rejected.
    """
    leave_id: str
    applicant: str
    leave_type: LeaveType | str
    start_date: str
    end_date: str
    reason: str = ""
    status: LeaveStatus = LeaveStatus.PENDING
    applied_utc: Optional[datetime] = None
    processed_utc: Optional[datetime] = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_processed(self) -> bool:
        return self.processed_utc is not None

    @property
    def leave_type_value(self) -> str:
        if isinstance(self.leave_type, LeaveType):
            return self.leave_type.value
        return str(self.leave_type)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted camelCase layout."""
        data: dict[str, Any] = dict(self.extra)
        data.update({
            "id": self.leave_id,
            "applicant": self.applicant,
            "leaveType": self.leave_type_value,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "reason": self.reason,
            "status": self.status.value,
            "appliedDate": (
                format_timestamp(self.applied_utc)
                if self.applied_utc else None
            ),
        })
        if self.processed_utc is not None:
            data["processedDate"] = format_timestamp(self.processed_utc)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LeaveRecord:
        """Deserialize one persisted record.

        Raises KeyError for a missing id and ValueError for an unknown
        status or an unparseable timestamp.
        """
        raw_type = data.get("leaveType", "")
        try:
            leave_type: LeaveType | str = LeaveType(raw_type)
        except ValueError:
            leave_type = str(raw_type)

        applied = None
        if data.get("appliedDate"):
            applied = parse_timestamp(data["appliedDate"])
        processed = None
        if data.get("processedDate"):
            processed = parse_timestamp(data["processedDate"])

        return cls(
            leave_id=str(data["id"]),
            applicant=data.get("applicant") or DEFAULT_APPLICANT,
            leave_type=leave_type,
            start_date=data.get("startDate", ""),
            end_date=data.get("endDate", ""),
            reason=data.get("reason", ""),
            status=LeaveStatus(data.get("status", LeaveStatus.PENDING.value)),
            applied_utc=applied,
            processed_utc=processed,
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )
