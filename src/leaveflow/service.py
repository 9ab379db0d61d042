"""Leave service — unified facade for UI callers.

This is the primary interface for programmatic access to leaveflow.
It orchestrates:
- Applying for leave (validation, persistence, balance)
- Employee views (own records, derived balance)
- Reviewer views (status partitions, counts)
- Review actions (approve, reject)

All operations produce typed results. Domain errors never escape as
exceptions: they come back as ServiceResult(success=False, errors=[...]).
A store write that failed after the in-memory change was made is
reported as a ``warning`` in the result data, not as a failure, because
the store is best-effort.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from leaveflow.leave.errors import (
    InvalidTransitionError,
    LeaveError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from leaveflow.leave.metrics import LeaveBalance, compute_balance, record_span
from leaveflow.leave.queries import (
    count_by_type,
    employee_view,
    partition_by_status,
    reviewer_view,
)
from leaveflow.leave.repository import LeaveRepository
from leaveflow.models.leave import LeaveStatus, LeaveSubmission
from leaveflow.persistence.blob_store import BlobStore, JsonFileBlobStore
from leaveflow.persistence.leave_store import LeaveStore
from leaveflow.policy.resolver import PolicyResolver
from leaveflow.session import Session, login as session_login

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


class LeaveService:
    """Leave management facade.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        service = LeaveService.from_config(resolver, base_dir=Path("."))

        session = service.login("alice", "secret")
        result = await service.apply_leave(session, {
            "leaveType": "casual", "startDate": "2024-01-10",
            "endDate": "2024-01-12", "reason": "Trip",
        })

        admin = service.login("admin_bob", "secret")
        await service.approve_leave(admin, result.data["leave_id"])
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        repository: LeaveRepository,
    ) -> None:
        self._resolver = resolver
        self._repository = repository

    @classmethod
    def from_config(
        cls,
        resolver: PolicyResolver,
        blobs: Optional[BlobStore] = None,
        base_dir: Optional[Path] = None,
        **repository_kwargs: Any,
    ) -> LeaveService:
        """Wire store, repository and service from policy.

        Without an explicit blob store, a JSON file store is opened at the
        configured storage path, relative to ``base_dir`` (default: cwd).
        """
        if blobs is None:
            path = Path(resolver.storage_path())
            if base_dir is not None and not path.is_absolute():
                path = base_dir / path
            blobs = JsonFileBlobStore(path)
        leave_key, users_key = resolver.storage_keys()
        store = LeaveStore(blobs, key=leave_key, users_key=users_key)
        repository = LeaveRepository.from_policy(
            store, resolver, **repository_kwargs,
        )
        return cls(resolver, repository)

    @property
    def repository(self) -> LeaveRepository:
        return self._repository

    def login(self, username: str, password: str, email: str = "") -> Session:
        """Open a session, inferring the role from the configured marker.

        Raises ValidationError for blank credentials.
        """
        return session_login(
            username, password, email=email,
            admin_marker=self._resolver.admin_marker(),
        )

    # ------------------------------------------------------------------
    # Employee operations
    # ------------------------------------------------------------------

    async def apply_leave(
        self,
        session: Session,
        data: LeaveSubmission | Mapping[str, Any],
    ) -> ServiceResult:
        """Submit a leave request on behalf of the session's user."""
        try:
            outcome = await self._repository.submit_with_outcome(
                data, session.username,
            )
        except ValidationError as e:
            return ServiceResult(success=False, errors=e.errors)
        except LeaveError as e:
            logger.error("Leave submission failed for %s: %s", session.username, e)
            return ServiceResult(
                success=False,
                errors=["Error submitting leave application. Please try again."],
            )

        record = outcome.record
        balance = await self._balance_for(session.username)
        result_data: dict[str, Any] = {
            "leave_id": record.leave_id,
            "status": record.status.value,
            "day_span": record_span(record),
            "balance": balance.remaining,
            "record": record.to_dict(),
        }
        return _with_store_warning(result_data, outcome.save_error)

    async def my_leaves(self, session: Session) -> ServiceResult:
        """The session user's own records and balance."""
        view = await employee_view(
            self._repository,
            session.username,
            self._resolver.starting_allowance(),
        )
        return ServiceResult(success=True, data={
            "applicant": view.applicant,
            "records": [r.to_dict() for r in view.records],
            "balance": view.balance.remaining,
        })

    async def leave_balance(self, session: Session) -> ServiceResult:
        balance = await self._balance_for(session.username)
        return ServiceResult(success=True, data={
            "applicant": balance.applicant,
            "allowance": balance.allowance,
            "days_used": balance.days_used,
            "days_pending": balance.days_pending,
            "remaining": balance.remaining,
        })

    # ------------------------------------------------------------------
    # Reviewer operations
    # ------------------------------------------------------------------

    async def review_board(self, session: Session) -> ServiceResult:
        """All records partitioned by status, for reviewers only."""
        denied = self._require_reviewer(session)
        if denied:
            return denied
        view = await reviewer_view(self._repository)
        return ServiceResult(success=True, data={
            "counts": view.counts(),
            "total": len(view.records),
            "pending": [r.to_dict() for r in view.pending],
            "approved": [r.to_dict() for r in view.approved],
            "rejected": [r.to_dict() for r in view.rejected],
        })

    async def approve_leave(self, session: Session, leave_id: str) -> ServiceResult:
        return await self._review(session, leave_id, LeaveStatus.APPROVED)

    async def reject_leave(self, session: Session, leave_id: str) -> ServiceResult:
        return await self._review(session, leave_id, LeaveStatus.REJECTED)

    async def leave_status(self) -> ServiceResult:
        """System-wide leave statistics."""
        records = await self._repository.list_all()
        return ServiceResult(success=True, data={
            "total_records": len(records),
            "by_status": partition_by_status(records).counts(),
            "by_type": count_by_type(records),
        })

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _review(
        self, session: Session, leave_id: str, target: LeaveStatus,
    ) -> ServiceResult:
        denied = self._require_reviewer(session)
        if denied:
            return denied
        try:
            outcome = await self._repository.update_status_with_outcome(
                leave_id, target,
            )
        except (NotFoundError, InvalidTransitionError, ValidationError) as e:
            return ServiceResult(success=False, errors=[str(e)])
        except LeaveError as e:
            logger.error("Review of %s failed: %s", leave_id, e)
            return ServiceResult(
                success=False,
                errors=["Error updating leave status. Please try again."],
            )

        record = outcome.record
        return _with_store_warning({
            "leave_id": record.leave_id,
            "status": record.status.value,
            "record": record.to_dict(),
        }, outcome.save_error)

    def _require_reviewer(self, session: Session) -> Optional[ServiceResult]:
        if session.is_reviewer:
            return None
        err = PermissionDeniedError(
            f"{session.username} is not permitted to review leave"
        )
        return ServiceResult(success=False, errors=[str(err)])

    async def _balance_for(self, applicant: str) -> LeaveBalance:
        records = await self._repository.list_by_applicant(applicant)
        return compute_balance(
            records, applicant, self._resolver.starting_allowance(),
        )


def _with_store_warning(
    data: dict[str, Any], save_error: Optional[str],
) -> ServiceResult:
    if save_error:
        data["warning"] = f"Persistence degraded: {save_error}"
    return ServiceResult(success=True, data=data)
