"""Role-scoped leave views.

Employees see their own records and their balance. Reviewers see every
record split into pending/approved/rejected partitions with counts. No
pagination and no sorting: everything stays in store insertion order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from leaveflow.leave.metrics import DEFAULT_ALLOWANCE, LeaveBalance, compute_balance
from leaveflow.leave.repository import LeaveRepository
from leaveflow.models.leave import LeaveRecord, LeaveStatus


@dataclass(frozen=True)
class StatusPartition:
    """Records split by status, each list in original relative order."""
    pending: list[LeaveRecord] = field(default_factory=list)
    approved: list[LeaveRecord] = field(default_factory=list)
    rejected: list[LeaveRecord] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {
            LeaveStatus.PENDING.value: len(self.pending),
            LeaveStatus.APPROVED.value: len(self.approved),
            LeaveStatus.REJECTED.value: len(self.rejected),
        }

    @property
    def total(self) -> int:
        return len(self.pending) + len(self.approved) + len(self.rejected)


def partition_by_status(records: Iterable[LeaveRecord]) -> StatusPartition:
    partition = StatusPartition()
    buckets = {
        LeaveStatus.PENDING: partition.pending,
        LeaveStatus.APPROVED: partition.approved,
        LeaveStatus.REJECTED: partition.rejected,
    }
    for record in records:
        buckets[record.status].append(record)
    return partition


def filter_by_applicant(
    records: Iterable[LeaveRecord], applicant: str,
) -> list[LeaveRecord]:
    return [r for r in records if r.applicant == applicant]


def count_by_type(records: Iterable[LeaveRecord]) -> dict[str, int]:
    """Number of records per leave type value."""
    counts: dict[str, int] = {}
    for r in records:
        counts[r.leave_type_value] = counts.get(r.leave_type_value, 0) + 1
    return counts


@dataclass(frozen=True)
class EmployeeView:
    """What an employee sees: their own records and remaining balance."""
    applicant: str
    records: list[LeaveRecord]
    balance: LeaveBalance


@dataclass(frozen=True)
class ReviewerView:
    """What a reviewer sees: all records and the status partitions."""
    records: list[LeaveRecord]
    partition: StatusPartition

    @property
    def pending(self) -> list[LeaveRecord]:
        return self.partition.pending

    @property
    def approved(self) -> list[LeaveRecord]:
        return self.partition.approved

    @property
    def rejected(self) -> list[LeaveRecord]:
        return self.partition.rejected

    def counts(self) -> dict[str, int]:
        return self.partition.counts()


async def employee_view(
    repository: LeaveRepository,
    applicant: str,
    allowance: int = DEFAULT_ALLOWANCE,
) -> EmployeeView:
    records = await repository.list_by_applicant(applicant)
    return EmployeeView(
        applicant=applicant,
        records=records,
        balance=compute_balance(records, applicant, allowance),
    )


async def reviewer_view(repository: LeaveRepository) -> ReviewerView:
    records = await repository.list_all()
    return ReviewerView(records=records, partition=partition_by_status(records))
