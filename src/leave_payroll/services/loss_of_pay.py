"""Attendance and unpaid-leave aggregation for loss-of-pay days."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from leave_payroll.errors import InvalidRangeError
from leave_payroll.models import Attendance, LeaveRequest, LeaveType
from leave_payroll.services.state_machine import LeaveRequestStatus

ABSENT = "absent"


def clipped_days(start: date, end: date, range_start: date, range_end: date) -> int:
    """Calendar days of [start, end] that fall inside [range_start, range_end]."""
    effective_start = max(start, range_start)
    effective_end = min(end, range_end)
    if effective_end < effective_start:
        return 0
    return (effective_end - effective_start).days + 1


class LossOfPayAggregator:
    """Counts absences and approved unpaid leave within a date range."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def count_absent_days(self, employee_id: UUID, start: date, end: date) -> int:
        """Attendance records marked absent in [start, end]."""
        result = await self.session.execute(
            select(func.count())
            .select_from(Attendance)
            .where(
                Attendance.employee_id == employee_id,
                Attendance.work_date >= start,
                Attendance.work_date <= end,
                Attendance.status == ABSENT,
            )
        )
        return int(result.scalar() or 0)

    async def unpaid_leave_days(self, employee_id: UUID, start: date, end: date) -> Decimal:
        """Approved unpaid leave days clipped to [start, end]."""
        result = await self.session.execute(
            select(LeaveRequest.start_date, LeaveRequest.end_date)
            .join(LeaveType, LeaveRequest.leave_type_id == LeaveType.leave_type_id)
            .where(
                LeaveRequest.employee_id == employee_id,
                LeaveRequest.status == LeaveRequestStatus.APPROVED.value,
                LeaveType.is_paid.is_(False),
                LeaveRequest.start_date <= end,
                LeaveRequest.end_date >= start,
            )
        )
        total = Decimal("0")
        for leave_start, leave_end in result.all():
            total += clipped_days(leave_start, leave_end, start, end)
        return total

    async def loss_of_pay_days(
        self, employee_id: UUID, month_start: date, month_end: date
    ) -> Decimal:
        """Absent days plus clipped unpaid leave days."""
        if month_end < month_start:
            raise InvalidRangeError(f"End date {month_end} is before start date {month_start}")
        absent = await self.count_absent_days(employee_id, month_start, month_end)
        unpaid = await self.unpaid_leave_days(employee_id, month_start, month_end)
        return Decimal(absent) + unpaid
