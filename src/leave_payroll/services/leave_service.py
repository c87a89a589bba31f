"""Leave application workflow - apply, edit, approve, reject, delete."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leave_payroll.calculators.types import WorkingDaysResult
from leave_payroll.calculators.working_days import HolidayCalendar
from leave_payroll.config import Settings
from leave_payroll.errors import (
    InvalidRangeError,
    InvalidStateError,
    NotFoundError,
    OverlapError,
)
from leave_payroll.events import (
    DomainEvent,
    EventEmitter,
    LeaveApplied,
    LeaveApproved,
    LeaveRejected,
    get_emitter,
)
from leave_payroll.models import Employee, LeaveRequest, LeaveType
from leave_payroll.models.base import utcnow
from leave_payroll.services.leave_ledger import LeaveLedger
from leave_payroll.services.state_machine import (
    InvalidTransitionError,
    LeaveRequestStateMachine,
    LeaveRequestStatus,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeaveRequestChanges:
    """Editable fields of a pending leave request."""

    leave_type_id: UUID
    start_date: date
    end_date: date
    reason: str | None = None


class LeaveService:
    """Service for the leave request lifecycle.

    Operations:
    - apply_leave: validate against calendar, overlaps and balance; persist pending
    - update_leave: re-validate and overwrite a pending request
    - approve_leave: consume balance and mark approved in one transaction
    - reject_leave: mark rejected, no balance change
    - delete_leave: remove a pending or rejected request

    The service never commits. Events are queued and published by
    flush_events() once the caller has committed.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        emitter: EventEmitter | None = None,
    ):
        self.session = session
        self.calendar = HolidayCalendar(session)
        self.ledger = LeaveLedger(session, settings)
        self.emitter = emitter or get_emitter()
        self._pending_events: list[DomainEvent] = []

    # ===== Queries =====

    async def get_leave(self, leave_request_id: UUID) -> LeaveRequest:
        """Load a leave request or raise NotFoundError."""
        leave = await self.session.get(LeaveRequest, leave_request_id)
        if leave is None:
            raise NotFoundError("Leave request", leave_request_id)
        return leave

    async def list_leaves(
        self,
        status: str | None = None,
        employee_id: UUID | None = None,
    ) -> list[LeaveRequest]:
        """List leave requests, newest first."""
        query = select(LeaveRequest)
        if status:
            query = query.where(LeaveRequest.status == status.lower())
        if employee_id is not None:
            query = query.where(LeaveRequest.employee_id == employee_id)
        query = query.order_by(LeaveRequest.created_at.desc())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    # ===== Workflow =====

    async def apply_leave(
        self,
        employee_id: UUID,
        leave_type_id: UUID,
        start_date: date,
        end_date: date,
        reason: str | None = None,
    ) -> LeaveRequest:
        """Validate and persist a new pending leave request."""
        self._validate_dates(start_date, end_date)
        if await self.session.get(Employee, employee_id) is None:
            raise NotFoundError("Employee", employee_id)
        leave_type = await self._get_leave_type(leave_type_id)

        await self._check_overlap(employee_id, start_date, end_date)
        days = await self._count_days(leave_type, start_date, end_date)
        await self.ledger.reserve(employee_id, leave_type_id, start_date.year, days)

        leave = LeaveRequest(
            employee_id=employee_id,
            leave_type_id=leave_type_id,
            start_date=start_date,
            end_date=end_date,
            total_days=days,
            status=LeaveRequestStatus.PENDING.value,
            reason=reason,
        )
        self.session.add(leave)
        await self.session.flush()

        logger.info(
            "Leave request %s applied: employee=%s type=%s %s..%s (%s day(s))",
            leave.leave_request_id,
            employee_id,
            leave_type_id,
            start_date,
            end_date,
            days,
        )
        self._queue(
            LeaveApplied(
                leave_request_id=leave.leave_request_id,
                employee_id=employee_id,
                start_date=start_date,
                end_date=end_date,
                total_days=days,
            )
        )
        return leave

    async def update_leave(
        self, leave_request_id: UUID, changes: LeaveRequestChanges
    ) -> LeaveRequest:
        """Overwrite dates, type and reason of a pending request.

        Runs the same validation as apply_leave, with the request itself
        excluded from the overlap check and the pending reservation.
        """
        leave = await self.get_leave(leave_request_id)
        if not LeaveRequestStateMachine.can_modify(leave.status):
            raise InvalidStateError(
                f"Leave request {leave_request_id} is {leave.status}; only pending requests can be edited"
            )

        self._validate_dates(changes.start_date, changes.end_date)
        leave_type = await self._get_leave_type(changes.leave_type_id)
        await self._check_overlap(
            leave.employee_id, changes.start_date, changes.end_date, exclude_id=leave_request_id
        )
        days = await self._count_days(leave_type, changes.start_date, changes.end_date)
        await self.ledger.reserve(
            leave.employee_id,
            changes.leave_type_id,
            changes.start_date.year,
            days,
            exclude_request_id=leave_request_id,
        )

        leave.leave_type_id = changes.leave_type_id
        leave.start_date = changes.start_date
        leave.end_date = changes.end_date
        leave.total_days = days
        leave.reason = changes.reason
        await self.session.flush()

        logger.info("Leave request %s updated (%s day(s))", leave_request_id, days)
        return leave

    async def approve_leave(
        self,
        leave_request_id: UUID,
        approver_id: str,
        comment: str | None = None,
    ) -> LeaveRequest:
        """Approve a pending request, consuming its days from the balance.

        The balance update and the status change are written in the same
        transaction. The status moves through a conditional UPDATE, so a
        request that another approver decided first is refused even when
        this session still holds it as pending.
        """
        leave = await self._load_for_decision(leave_request_id, LeaveRequestStatus.APPROVED)

        await self.ledger.consume(
            leave.employee_id,
            leave.leave_type_id,
            leave.year,
            leave.total_days,
            leave_request_id=leave.leave_request_id,
        )
        await self._record_decision(leave, LeaveRequestStatus.APPROVED, approver_id, comment)

        logger.info("Leave request %s approved by %s", leave_request_id, approver_id)
        self._queue(
            LeaveApproved(
                leave_request_id=leave.leave_request_id,
                employee_id=leave.employee_id,
                approver_id=approver_id,
                total_days=leave.total_days,
            )
        )
        return leave

    async def reject_leave(
        self,
        leave_request_id: UUID,
        approver_id: str,
        comment: str | None = None,
    ) -> LeaveRequest:
        """Reject a pending request. The balance is not touched."""
        leave = await self._load_for_decision(leave_request_id, LeaveRequestStatus.REJECTED)
        await self._record_decision(leave, LeaveRequestStatus.REJECTED, approver_id, comment)

        logger.info("Leave request %s rejected by %s", leave_request_id, approver_id)
        self._queue(
            LeaveRejected(
                leave_request_id=leave.leave_request_id,
                employee_id=leave.employee_id,
                approver_id=approver_id,
            )
        )
        return leave

    async def delete_leave(self, leave_request_id: UUID) -> None:
        """Delete a pending or rejected request."""
        leave = await self.get_leave(leave_request_id)
        if not LeaveRequestStateMachine.can_delete(leave.status):
            raise InvalidStateError(
                f"Leave request {leave_request_id} is approved and cannot be deleted"
            )
        await self.session.delete(leave)
        await self.session.flush()
        logger.info("Leave request %s deleted", leave_request_id)

    # ===== Events =====

    def flush_events(self) -> None:
        """Publish queued events; call after the transaction commits."""
        events, self._pending_events = self._pending_events, []
        for event in events:
            self.emitter.emit(event)

    def discard_events(self) -> None:
        """Drop queued events after a rollback."""
        self._pending_events = []

    def _queue(self, event: DomainEvent) -> None:
        self._pending_events.append(event)

    # ===== Decision helpers =====

    async def _load_for_decision(
        self, leave_request_id: UUID, to_status: LeaveRequestStatus
    ) -> LeaveRequest:
        """Re-read the request from the database, locked where supported."""
        result = await self.session.execute(
            select(LeaveRequest)
            .where(LeaveRequest.leave_request_id == leave_request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        leave = result.scalar_one_or_none()
        if leave is None:
            raise NotFoundError("Leave request", leave_request_id)
        LeaveRequestStateMachine.validate_transition(leave.status, to_status)
        return leave

    async def _record_decision(
        self,
        leave: LeaveRequest,
        to_status: LeaveRequestStatus,
        approver_id: str,
        comment: str | None,
    ) -> None:
        """Move a pending request to its decided status, or fail if it moved first."""
        result = await self.session.execute(
            update(LeaveRequest)
            .where(
                LeaveRequest.leave_request_id == leave.leave_request_id,
                LeaveRequest.status == LeaveRequestStatus.PENDING.value,
            )
            .values(
                status=to_status.value,
                approver_id=approver_id,
                approved_date=utcnow(),
                approver_comments=comment,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.refresh(leave)
        if result.rowcount != 1:
            raise InvalidTransitionError(
                leave.status, to_status.value, "request was decided by another approver"
            )

    # ===== Validation helpers =====

    @staticmethod
    def _validate_dates(start_date: date, end_date: date) -> None:
        if end_date < start_date:
            raise InvalidRangeError(f"End date {end_date} is before start date {start_date}")
        if start_date.year != end_date.year:
            raise InvalidRangeError(
                "Leave cannot span calendar years; split it into one request per year"
            )

    async def _get_leave_type(self, leave_type_id: UUID) -> LeaveType:
        leave_type = await self.session.get(LeaveType, leave_type_id)
        if leave_type is None:
            raise NotFoundError("Leave type", leave_type_id)
        if not leave_type.is_active:
            raise InvalidStateError(f"Leave type '{leave_type.name}' is not active")
        return leave_type

    async def _check_overlap(
        self,
        employee_id: UUID,
        start_date: date,
        end_date: date,
        exclude_id: UUID | None = None,
    ) -> None:
        query = select(LeaveRequest.leave_request_id, LeaveRequest.start_date, LeaveRequest.end_date).where(
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.status != LeaveRequestStatus.REJECTED.value,
            LeaveRequest.start_date <= end_date,
            LeaveRequest.end_date >= start_date,
        )
        if exclude_id is not None:
            query = query.where(LeaveRequest.leave_request_id != exclude_id)
        existing = (await self.session.execute(query.limit(1))).first()
        if existing is not None:
            raise OverlapError(
                f"Leave overlaps existing request {existing.leave_request_id} "
                f"({existing.start_date}..{existing.end_date})"
            )

    async def _count_days(
        self, leave_type: LeaveType, start_date: date, end_date: date
    ) -> Decimal:
        breakdown: WorkingDaysResult = await self.calendar.calculate_working_days(
            start_date, end_date
        )
        if breakdown.working_days <= 0:
            raise InvalidRangeError(
                f"{start_date}..{end_date} contains 0 working days"
            )
        if (
            leave_type.max_consecutive_days is not None
            and breakdown.working_days > leave_type.max_consecutive_days
        ):
            raise InvalidRangeError(
                f"'{leave_type.name}' allows at most {leave_type.max_consecutive_days} "
                f"consecutive day(s); requested {breakdown.working_days}"
            )
        return Decimal(breakdown.working_days)
