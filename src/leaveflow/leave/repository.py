"""Leave repository — submit, list and review leave records.

The repository is the only writer of the leave store. Every mutation
loads the full sequence, changes it in memory and writes the full
sequence back; there are no row-level writes.

Ordering:
- Within one repository instance, read-modify-write cycles are
  serialized by an asyncio.Lock, so concurrent update_status calls
  cannot lose each other's writes.
- Across repository instances (or processes) sharing one store, the
  last save wins.

Seeding: the first list call against a genuinely empty store (no blob,
an empty string or an empty array) writes one fixed demonstration
dataset. A store holding anything, readable or not, is never seeded.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Optional

from leaveflow.leave.errors import NotFoundError, ValidationError
from leaveflow.leave.lifecycle import LeaveLifecycle
from leaveflow.leave.metrics import parse_date
from leaveflow.models.leave import (
    DEFAULT_APPLICANT,
    LeaveRecord,
    LeaveStatus,
    LeaveSubmission,
    LeaveType,
)
from leaveflow.persistence.leave_store import LeaveStore
from leaveflow.policy.resolver import PolicyResolver

logger = logging.getLogger(__name__)

SEED_RECORDS: tuple[dict[str, Any], ...] = (
    {
        "leaveType": "casual",
        "startDate": "2023-10-15",
        "endDate": "2023-10-16",
        "reason": "Family function",
        "status": "approved",
        "applicant": "john_doe",
        "appliedDate": "2023-10-10T00:00:00.000Z",
    },
    {
        "leaveType": "sick",
        "startDate": "2023-10-20",
        "endDate": "2023-10-21",
        "reason": "Fever and cold",
        "status": "approved",
        "applicant": "jane_smith",
        "appliedDate": "2023-10-18T00:00:00.000Z",
    },
    {
        "leaveType": "emergency",
        "startDate": "2023-11-01",
        "endDate": "2023-11-01",
        "reason": "Urgent personal work",
        "status": "pending",
        "applicant": "john_doe",
        "appliedDate": "2023-10-30T00:00:00.000Z",
    },
)


def validate_submission(
    submission: LeaveSubmission,
    leave_types: Optional[Iterable[LeaveType]] = None,
) -> list[str]:
    """Return every problem with a submission (empty = valid).

    ``leave_types`` restricts the accepted types; default is all of them.
    """
    allowed = tuple(leave_types) if leave_types is not None else tuple(LeaveType)
    errors: list[str] = []
    if not submission.leave_type.strip():
        errors.append("Leave type is required")
    else:
        valid = ", ".join(t.value for t in allowed)
        try:
            leave_type = LeaveType(submission.leave_type.strip().lower())
        except ValueError:
            errors.append(
                f"Unknown leave type: {submission.leave_type!r} "
                f"(expected one of: {valid})"
            )
        else:
            if leave_type not in allowed:
                errors.append(
                    f"Leave type not offered: {leave_type.value!r} "
                    f"(expected one of: {valid})"
                )

    start = end = None
    if not submission.start_date.strip():
        errors.append("Start date is required")
    else:
        start = parse_date(submission.start_date)
        if start is None:
            errors.append(f"Invalid start date: {submission.start_date!r}")
    if not submission.end_date.strip():
        errors.append("End date is required")
    else:
        end = parse_date(submission.end_date)
        if end is None:
            errors.append(f"Invalid end date: {submission.end_date!r}")

    if start is not None and end is not None and end < start:
        errors.append(
            f"End date {submission.end_date} is before start date "
            f"{submission.start_date}"
        )
    if not submission.reason.strip():
        errors.append("Reason is required")
    return errors


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class WriteOutcome:
    """A mutated record and why its save failed, if it did."""
    record: LeaveRecord
    save_error: Optional[str] = None


class LeaveRepository:
    """Async service boundary over the leave store.

    Usage:
        repo = LeaveRepository(LeaveStore(MemoryBlobStore()))
        record = await repo.submit(
            {"leaveType": "casual", "startDate": "2024-01-10",
             "endDate": "2024-01-12", "reason": "Trip"},
            applicant="alice",
        )
        mine = await repo.list_by_applicant("alice")
        await repo.update_status(record.leave_id, "approved")
    """

    def __init__(
        self,
        store: LeaveStore,
        lifecycle: Optional[LeaveLifecycle] = None,
        validate: bool = True,
        seed_on_empty: bool = True,
        latency_seconds: float = 0.0,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Optional[Callable[[], str]] = None,
        leave_types: Optional[Iterable[LeaveType]] = None,
    ) -> None:
        self._store = store
        self._lifecycle = lifecycle or LeaveLifecycle()
        self._validate = validate
        self._leave_types = (
            tuple(leave_types) if leave_types is not None else tuple(LeaveType)
        )
        self._seed_on_empty = seed_on_empty
        self._latency = latency_seconds
        self._clock = clock
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)
        self._lock = asyncio.Lock()

    @classmethod
    def from_policy(
        cls,
        store: LeaveStore,
        resolver: PolicyResolver,
        **kwargs: Any,
    ) -> LeaveRepository:
        """Build a repository configured by leave policy."""
        return cls(
            store,
            lifecycle=LeaveLifecycle(enforce=resolver.enforce_transitions()),
            validate=resolver.validate_submissions(),
            seed_on_empty=resolver.seed_on_empty(),
            latency_seconds=resolver.latency_seconds(),
            leave_types=resolver.leave_types(),
            **kwargs,
        )

    @property
    def store(self) -> LeaveStore:
        return self._store

    @property
    def lifecycle(self) -> LeaveLifecycle:
        return self._lifecycle

    @property
    def leave_types(self) -> tuple[LeaveType, ...]:
        return self._leave_types

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def submit(
        self,
        data: LeaveSubmission | Mapping[str, Any],
        applicant: Optional[str] = None,
    ) -> LeaveRecord:
        """Create a PENDING leave record and persist it.

        Raises ValidationError when validation is enabled and the
        submission is incomplete or inconsistent.
        """
        return (await self.submit_with_outcome(data, applicant)).record

    async def submit_with_outcome(
        self,
        data: LeaveSubmission | Mapping[str, Any],
        applicant: Optional[str] = None,
    ) -> WriteOutcome:
        """As submit(), also reporting whether this write reached the store."""
        submission = (
            data if isinstance(data, LeaveSubmission)
            else LeaveSubmission.from_mapping(data)
        )
        if self._validate:
            errors = validate_submission(submission, self._leave_types)
            if errors:
                raise ValidationError(errors)

        await self._delay()
        async with self._lock:
            records = await self._store.load()
            record = LeaveRecord(
                leave_id=self._fresh_id(records),
                applicant=(applicant or "").strip() or DEFAULT_APPLICANT,
                leave_type=_coerce_type(submission.leave_type),
                start_date=submission.start_date.strip(),
                end_date=submission.end_date.strip(),
                reason=submission.reason,
                status=LeaveStatus.PENDING,
                applied_utc=self._clock(),
            )
            records.append(record)
            save_error = await self._store.save(records)

        logger.info(
            "Leave %s submitted by %s (%s, %s..%s)",
            record.leave_id, record.applicant, record.leave_type_value,
            record.start_date, record.end_date,
        )
        return WriteOutcome(record, save_error)

    async def update_status(
        self,
        leave_id: str,
        status: LeaveStatus | str,
    ) -> LeaveRecord:
        """Set a record's status and stamp its processed time.

        Raises NotFoundError if no record has ``leave_id`` (the store is
        left untouched), ValidationError for an unknown status value and
        InvalidTransitionError for a change the lifecycle forbids.
        """
        return (await self.update_status_with_outcome(leave_id, status)).record

    async def update_status_with_outcome(
        self,
        leave_id: str,
        status: LeaveStatus | str,
    ) -> WriteOutcome:
        """As update_status(), also reporting whether the write landed."""
        await self._delay()
        async with self._lock:
            records = await self._store.load()
            record = _find(records, leave_id)
            if record is None:
                raise NotFoundError(leave_id)

            target = self._lifecycle.validate(record, status)
            previous = record.status
            record.status = target
            record.processed_utc = self._processed_stamp(record)
            save_error = await self._store.save(records)

        logger.info(
            "Leave %s status %s -> %s",
            leave_id, previous.value, target.value,
        )
        return WriteOutcome(record, save_error)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_by_applicant(self, applicant: str) -> list[LeaveRecord]:
        """Records whose applicant equals ``applicant``, in store order."""
        records = await self._load_or_seed()
        return [r for r in records if r.applicant == applicant]

    async def list_all(self) -> list[LeaveRecord]:
        """Every record, in store order."""
        return await self._load_or_seed()

    async def get(self, leave_id: str) -> LeaveRecord:
        """Look up one record. Raises NotFoundError if absent."""
        await self._delay()
        record = _find(await self._store.load(), leave_id)
        if record is None:
            raise NotFoundError(leave_id)
        return record

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _load_or_seed(self) -> list[LeaveRecord]:
        await self._delay()
        async with self._lock:
            records = await self._store.load()
            if records or not self._seed_on_empty:
                return records
            if not await self._store.is_empty():
                return records
            seeded = self._seed_records()
            await self._store.save(seeded)
        logger.info("Seeded empty leave store with %d records", len(seeded))
        return list(seeded)

    def _seed_records(self) -> list[LeaveRecord]:
        seeded: list[LeaveRecord] = []
        for data in SEED_RECORDS:
            seeded.append(LeaveRecord.from_dict(
                {**data, "id": self._fresh_id(seeded)},
            ))
        return seeded

    def _fresh_id(self, existing: list[LeaveRecord]) -> str:
        taken = {r.leave_id for r in existing}
        leave_id = self._id_factory()
        while leave_id in taken:
            leave_id = self._id_factory()
        return leave_id

    def _processed_stamp(self, record: LeaveRecord) -> datetime:
        # Processed time never precedes the application time, even when
        # the clock is behind a seeded or foreign timestamp.
        now = self._clock()
        if record.applied_utc is not None and now < record.applied_utc:
            return record.applied_utc
        return now

    async def _delay(self) -> None:
        if self._latency > 0:
            await asyncio.sleep(self._latency)


def _find(records: list[LeaveRecord], leave_id: str) -> Optional[LeaveRecord]:
    for record in records:
        if record.leave_id == leave_id:
            return record
    return None


def _coerce_type(raw: str) -> LeaveType | str:
    try:
        return LeaveType(raw.strip().lower())
    except ValueError:
        return raw

