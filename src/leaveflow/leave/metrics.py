"""Derived leave metrics — day spans, balances, date helpers.

Pure computation: no I/O. Dates are ISO calendar dates (YYYY-MM-DD);
a full ISO timestamp is accepted and reduced to the date it names.
Anything else, including a valid date followed by junk, is invalid.

Day span is inclusive of both endpoints:
    day_span("2023-10-15", "2023-10-15") == 1
    day_span("2023-10-15", "2023-10-16") == 2
A reversed range yields a value <= 0; ordering is validated elsewhere.
Unparseable input yields None instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional

from leaveflow.models.leave import LeaveRecord, LeaveStatus

DEFAULT_ALLOWANCE = 18

INVALID_DATE = "Invalid Date"


def parse_date(value: str | date | None) -> Optional[date]:
    """Parse an ISO calendar date, returning None when it cannot."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def day_span(start_date: str | date | None, end_date: str | date | None) -> Optional[int]:
    """Inclusive count of calendar days from start to end."""
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None or end is None:
        return None
    return (end - start).days + 1


def is_valid_date_range(start_date: str | date, end_date: str | date) -> bool:
    """True if both dates parse and end is not before start."""
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None or end is None:
        return False
    return end >= start


def is_future_date(value: str | date, today: Optional[date] = None) -> bool:
    """True if the date is today or later."""
    parsed = parse_date(value)
    if parsed is None:
        return False
    return parsed >= (today or date.today())


def format_date(value: str | date | None) -> str:
    """Render as e.g. 'Oct 15, 2023', or 'Invalid Date'."""
    parsed = parse_date(value)
    if parsed is None:
        return INVALID_DATE
    return f"{parsed.strftime('%b')} {parsed.day}, {parsed.year}"


def record_span(record: LeaveRecord) -> Optional[int]:
    return day_span(record.start_date, record.end_date)


@dataclass(frozen=True)
class LeaveBalance:
    """An applicant's remaining allowance, derived from their records."""
    applicant: str
    allowance: int
    days_used: int
    days_pending: int

    @property
    def remaining(self) -> int:
        return self.allowance - self.days_used - self.days_pending


def compute_balance(
    records: Iterable[LeaveRecord],
    applicant: str,
    allowance: int = DEFAULT_ALLOWANCE,
) -> LeaveBalance:
    """Recompute an applicant's balance from the persisted record set.

    Approved and pending records both consume allowance; rejected ones
    give their days back. Records whose dates do not parse count as zero
    days rather than failing the whole computation.
    """
    used = 0
    pending = 0
    for record in records:
        if record.applicant != applicant:
            continue
        span = record_span(record)
        if span is None or span <= 0:
            continue
        if record.status == LeaveStatus.APPROVED:
            used += span
        elif record.status == LeaveStatus.PENDING:
            pending += span
    return LeaveBalance(
        applicant=applicant,
        allowance=allowance,
        days_used=used,
        days_pending=pending,
    )
