"""Tests for absent-day and unpaid-leave aggregation."""

from datetime import date
from decimal import Decimal

import pytest

from leave_payroll.errors import InvalidRangeError
from leave_payroll.models import LeaveRequest
from leave_payroll.services.loss_of_pay import LossOfPayAggregator, clipped_days
from tests.conftest import make_approved_leave, mark_absent

JUNE_START, JUNE_END = date(2024, 6, 1), date(2024, 6, 30)


class TestClippedDays:
    def test_inside_range(self):
        assert clipped_days(date(2024, 6, 3), date(2024, 6, 7), JUNE_START, JUNE_END) == 5

    def test_clipped_at_both_ends(self):
        assert clipped_days(date(2024, 5, 30), date(2024, 7, 2), JUNE_START, JUNE_END) == 30

    def test_outside_range(self):
        assert clipped_days(date(2024, 7, 1), date(2024, 7, 5), JUNE_START, JUNE_END) == 0


class TestLossOfPayAggregator:
    """Absences plus approved unpaid leave, clipped to the month."""

    async def test_counts_only_absent_days_in_range(self, session, employee):
        await mark_absent(session, employee, date(2024, 6, 3), date(2024, 6, 4), date(2024, 7, 1))
        aggregator = LossOfPayAggregator(session)

        assert await aggregator.count_absent_days(
            employee.employee_id, JUNE_START, JUNE_END
        ) == 2

    async def test_unpaid_leave_clipped_to_month(self, session, employee, unpaid_leave):
        # Thu 30 May - Mon 3 Jun: three calendar days fall in June
        await make_approved_leave(
            session, employee, unpaid_leave, date(2024, 5, 30), date(2024, 6, 3), Decimal("3")
        )
        aggregator = LossOfPayAggregator(session)

        assert await aggregator.unpaid_leave_days(
            employee.employee_id, JUNE_START, JUNE_END
        ) == Decimal("3")

    async def test_paid_and_pending_leave_ignored(
        self, session, employee, annual_leave, unpaid_leave
    ):
        await make_approved_leave(
            session, employee, annual_leave, date(2024, 6, 3), date(2024, 6, 7), Decimal("5")
        )
        session.add(
            LeaveRequest(
                employee_id=employee.employee_id,
                leave_type_id=unpaid_leave.leave_type_id,
                start_date=date(2024, 6, 10),
                end_date=date(2024, 6, 11),
                total_days=Decimal("2"),
                status="pending",
            )
        )
        await session.flush()

        lop = await LossOfPayAggregator(session).loss_of_pay_days(
            employee.employee_id, JUNE_START, JUNE_END
        )

        assert lop == Decimal("0")

    async def test_sum_of_absences_and_unpaid_leave(self, session, employee, unpaid_leave):
        await mark_absent(session, employee, date(2024, 6, 20), date(2024, 6, 21))
        await make_approved_leave(
            session, employee, unpaid_leave, date(2024, 6, 10), date(2024, 6, 12), Decimal("3")
        )

        lop = await LossOfPayAggregator(session).loss_of_pay_days(
            employee.employee_id, JUNE_START, JUNE_END
        )

        assert lop == Decimal("5")

    async def test_invalid_range(self, session, employee):
        with pytest.raises(InvalidRangeError):
            await LossOfPayAggregator(session).loss_of_pay_days(
                employee.employee_id, JUNE_END, JUNE_START
            )
