"""Tests for the leave application workflow."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from leave_payroll.errors import (
    InsufficientBalanceError,
    InvalidRangeError,
    InvalidStateError,
    NoBalanceRecordError,
    NotFoundError,
    OverlapError,
)
from leave_payroll.events import LeaveApplied, LeaveApproved, LeaveRejected
from leave_payroll.models import LeaveBalance
from leave_payroll.services.leave_service import LeaveRequestChanges, LeaveService
from tests.conftest import add_holiday, make_balance, make_leave_type

# 2024-06-03 is a Monday
MON, FRI = date(2024, 6, 3), date(2024, 6, 7)
NEXT_MON, NEXT_FRI = date(2024, 6, 10), date(2024, 6, 14)


@pytest.fixture
def service(session, settings, emitter) -> LeaveService:
    return LeaveService(session, settings, emitter)


async def stored_balance(session, balance_id) -> LeaveBalance:
    result = await session.execute(
        select(LeaveBalance)
        .where(LeaveBalance.leave_balance_id == balance_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


class TestApplyLeave:
    """Validation pipeline of a new request."""

    async def test_apply_creates_pending_request(
        self, service, employee, annual_leave, annual_balance
    ):
        leave = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, MON, FRI, "Family trip"
        )

        assert leave.status == "pending"
        assert leave.total_days == Decimal("5")
        assert leave.reason == "Family trip"

    async def test_apply_does_not_touch_balance(
        self, session, service, employee, annual_leave, annual_balance
    ):
        await service.apply_leave(employee.employee_id, annual_leave.leave_type_id, MON, FRI)

        balance = await stored_balance(session, annual_balance.leave_balance_id)
        assert balance.remaining_days == Decimal("10")
        assert balance.used_days == Decimal("0")

    async def test_holidays_reduce_total_days(
        self, session, service, employee, annual_leave, annual_balance
    ):
        await add_holiday(session, date(2024, 6, 5))

        leave = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, MON, date(2024, 6, 9)
        )

        assert leave.total_days == Decimal("4")

    async def test_end_before_start(self, service, employee, annual_leave, annual_balance):
        with pytest.raises(InvalidRangeError):
            await service.apply_leave(employee.employee_id, annual_leave.leave_type_id, FRI, MON)

    async def test_cross_year_rejected(self, service, employee, annual_leave, annual_balance):
        with pytest.raises(InvalidRangeError):
            await service.apply_leave(
                employee.employee_id,
                annual_leave.leave_type_id,
                date(2024, 12, 30),
                date(2025, 1, 2),
            )

    async def test_weekend_only_range_has_no_working_days(
        self, service, employee, annual_leave, annual_balance
    ):
        with pytest.raises(InvalidRangeError):
            await service.apply_leave(
                employee.employee_id,
                annual_leave.leave_type_id,
                date(2024, 6, 8),
                date(2024, 6, 9),
            )

    async def test_overlap_with_pending(self, service, employee, annual_leave, annual_balance):
        await service.apply_leave(employee.employee_id, annual_leave.leave_type_id, MON, FRI)

        with pytest.raises(OverlapError):
            await service.apply_leave(
                employee.employee_id, annual_leave.leave_type_id, FRI, NEXT_MON
            )

    async def test_rejected_request_does_not_block(
        self, service, employee, annual_leave, annual_balance
    ):
        first = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, MON, FRI
        )
        await service.reject_leave(first.leave_request_id, "manager-1")

        second = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, MON, FRI
        )

        assert second.status == "pending"

    async def test_no_balance_record(self, service, employee, annual_leave):
        with pytest.raises(NoBalanceRecordError):
            await service.apply_leave(employee.employee_id, annual_leave.leave_type_id, MON, FRI)

    async def test_pending_requests_reserve_balance(
        self, service, employee, annual_leave, annual_balance
    ):
        await service.apply_leave(employee.employee_id, annual_leave.leave_type_id, MON, FRI)
        await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, NEXT_MON, date(2024, 6, 12)
        )

        # 10 remaining - 8 pending = 2 available
        with pytest.raises(InsufficientBalanceError):
            await service.apply_leave(
                employee.employee_id,
                annual_leave.leave_type_id,
                date(2024, 6, 17),
                date(2024, 6, 19),
            )

    async def test_unknown_employee(self, service, annual_leave):
        with pytest.raises(NotFoundError):
            await service.apply_leave(uuid4(), annual_leave.leave_type_id, MON, FRI)

    async def test_inactive_leave_type(self, session, service, employee):
        retired = await make_leave_type(session, "Retired", is_active=False)
        await make_balance(session, employee, retired)

        with pytest.raises(InvalidStateError):
            await service.apply_leave(employee.employee_id, retired.leave_type_id, MON, FRI)

    async def test_max_consecutive_days(self, session, service, employee):
        capped = await make_leave_type(session, "Casual", max_consecutive_days=3)
        await make_balance(session, employee, capped)

        with pytest.raises(InvalidRangeError):
            await service.apply_leave(employee.employee_id, capped.leave_type_id, MON, FRI)

    async def test_apply_publishes_after_flush_events(
        self, service, published, employee, annual_leave, annual_balance
    ):
        leave = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, MON, FRI
        )
        assert published == []

        service.flush_events()

        assert len(published) == 1
        assert isinstance(published[0], LeaveApplied)
        assert published[0].leave_request_id == leave.leave_request_id


class TestUpdateLeave:
    """Editing a pending request re-runs every check."""

    async def test_update_recomputes_days(self, service, employee, annual_leave, annual_balance):
        leave = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, MON, FRI
        )

        updated = await service.update_leave(
            leave.leave_request_id,
            LeaveRequestChanges(annual_leave.leave_type_id, MON, date(2024, 6, 5), "Shorter"),
        )

        assert updated.total_days == Decimal("3")
        assert updated.end_date == date(2024, 6, 5)
        assert updated.reason == "Shorter"

    async def test_update_may_overlap_itself(
        self, service, employee, annual_leave, annual_balance
    ):
        leave = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, MON, FRI
        )

        updated = await service.update_leave(
            leave.leave_request_id,
            LeaveRequestChanges(annual_leave.leave_type_id, date(2024, 6, 4), NEXT_MON),
        )

        assert updated.total_days == Decimal("5")

    async def test_update_checks_overlap_with_others(
        self, service, employee, annual_leave, annual_balance
    ):
        await service.apply_leave(employee.employee_id, annual_leave.leave_type_id, MON, FRI)
        second = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, NEXT_MON, NEXT_MON
        )

        with pytest.raises(OverlapError):
            await service.update_leave(
                second.leave_request_id,
                LeaveRequestChanges(annual_leave.leave_type_id, FRI, NEXT_MON),
            )

    async def test_update_checks_balance_excluding_itself(
        self, service, employee, annual_leave, annual_balance
    ):
        leave = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, MON, FRI
        )

        # 10 working days: allowed because its own 5 pending days are excluded
        await service.update_leave(
            leave.leave_request_id,
            LeaveRequestChanges(annual_leave.leave_type_id, MON, NEXT_FRI),
        )

        with pytest.raises(InsufficientBalanceError):
            await service.update_leave(
                leave.leave_request_id,
                LeaveRequestChanges(annual_leave.leave_type_id, MON, date(2024, 6, 17)),
            )

    async def test_update_non_pending_rejected(
        self, service, employee, annual_leave, annual_balance
    ):
        leave = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, MON, FRI
        )
        await service.approve_leave(leave.leave_request_id, "manager-1")

        with pytest.raises(InvalidStateError):
            await service.update_leave(
                leave.leave_request_id,
                LeaveRequestChanges(annual_leave.leave_type_id, MON, MON),
            )


class TestApproveReject:
    """Decisions on pending requests."""

    async def test_approve_consumes_balance(
        self, session, service, employee, annual_leave, annual_balance
    ):
        leave = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, MON, FRI
        )

        approved = await service.approve_leave(leave.leave_request_id, "manager-1", "Enjoy")

        assert approved.status == "approved"
        assert approved.approver_id == "manager-1"
        assert approved.approver_comments == "Enjoy"
        assert approved.approved_date is not None
        balance = await stored_balance(session, annual_balance.leave_balance_id)
        assert balance.used_days == Decimal("5")
        assert balance.remaining_days == Decimal("5")

    async def test_approve_twice_rejected(self, service, employee, annual_leave, annual_balance):
        leave = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, MON, FRI
        )
        await service.approve_leave(leave.leave_request_id, "manager-1")

        with pytest.raises(InvalidStateError):
            await service.approve_leave(leave.leave_request_id, "manager-2")

    async def test_approve_rechecks_balance(
        self, session, service, employee, annual_leave, annual_balance
    ):
        first = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, MON, FRI
        )
        second = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, NEXT_MON, NEXT_FRI
        )
        # Balance shrinks after both requests were accepted
        balance = await stored_balance(session, annual_balance.leave_balance_id)
        balance.remaining_days = Decimal("7")
        await session.flush()

        await service.approve_leave(first.leave_request_id, "manager-1")
        with pytest.raises(InsufficientBalanceError):
            await service.approve_leave(second.leave_request_id, "manager-1")

        assert second.status == "pending"

    async def test_reject_leaves_balance_untouched(
        self, session, service, employee, annual_leave, annual_balance
    ):
        leave = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, MON, FRI
        )

        rejected = await service.reject_leave(leave.leave_request_id, "manager-1", "Busy week")

        assert rejected.status == "rejected"
        assert rejected.approver_comments == "Busy week"
        balance = await stored_balance(session, annual_balance.leave_balance_id)
        assert balance.remaining_days == Decimal("10")

    async def test_reject_approved_rejected(
        self, service, employee, annual_leave, annual_balance
    ):
        leave = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, MON, FRI
        )
        await service.approve_leave(leave.leave_request_id, "manager-1")

        with pytest.raises(InvalidStateError):
            await service.reject_leave(leave.leave_request_id, "manager-1")

    async def test_decision_events(
        self, service, published, employee, annual_leave, annual_balance
    ):
        first = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, MON, FRI
        )
        second = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, NEXT_MON, NEXT_MON
        )
        await service.approve_leave(first.leave_request_id, "manager-1")
        await service.reject_leave(second.leave_request_id, "manager-1")

        service.flush_events()

        assert [type(e) for e in published] == [
            LeaveApplied,
            LeaveApplied,
            LeaveApproved,
            LeaveRejected,
        ]
        assert published[2].total_days == Decimal("5")

    async def test_discarded_events_are_not_published(
        self, service, published, employee, annual_leave, annual_balance
    ):
        await service.apply_leave(employee.employee_id, annual_leave.leave_type_id, MON, FRI)

        service.discard_events()
        service.flush_events()

        assert published == []


class TestQueriesAndDelete:
    """Lookup, listing and deletion."""

    async def test_get_unknown(self, service):
        with pytest.raises(NotFoundError):
            await service.get_leave(uuid4())

    async def test_list_filters(self, service, employee, annual_leave, annual_balance):
        first = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, MON, FRI
        )
        await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, NEXT_MON, NEXT_MON
        )
        await service.approve_leave(first.leave_request_id, "manager-1")

        assert len(await service.list_leaves()) == 2
        approved = await service.list_leaves(status="Approved")
        assert [leave.leave_request_id for leave in approved] == [first.leave_request_id]
        assert await service.list_leaves(employee_id=uuid4()) == []

    async def test_delete_pending(self, service, employee, annual_leave, annual_balance):
        leave = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, MON, FRI
        )

        await service.delete_leave(leave.leave_request_id)

        with pytest.raises(NotFoundError):
            await service.get_leave(leave.leave_request_id)

    async def test_delete_approved_refused(
        self, service, employee, annual_leave, annual_balance
    ):
        leave = await service.apply_leave(
            employee.employee_id, annual_leave.leave_type_id, MON, FRI
        )
        await service.approve_leave(leave.leave_request_id, "manager-1")

        with pytest.raises(InvalidStateError):
            await service.delete_leave(leave.leave_request_id)
