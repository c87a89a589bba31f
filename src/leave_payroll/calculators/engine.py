"""Payroll calculation engine - per-employee monthly pay."""

from __future__ import annotations

import calendar
from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from leave_payroll.calculators.line_builder import LineItemBuilder
from leave_payroll.calculators.types import ComponentType, EmployeePayrollResult, StructureItem


def days_in_month(year: int, month: int) -> int:
    """Number of calendar days in the month."""
    return calendar.monthrange(year, month)[1]


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of the month."""
    return date(year, month, 1), date(year, month, days_in_month(year, month))


class PayrollEngine:
    """Computes one employee's pay for a month.

    Calculation pipeline:
    1) worked_days = max(0, days_in_month - loss_of_pay_days)
    2) Pro-rate every structure item by worked_days / days_in_month
    3) Sum earnings and deductions separately
    4) net = earnings - deductions
    """

    @staticmethod
    def calculate_employee(
        employee_id: UUID,
        structure: Sequence[StructureItem],
        loss_of_pay_days: Decimal,
        total_days_in_month: int,
    ) -> EmployeePayrollResult:
        """Calculate pro-rated earnings, deductions, and net salary."""
        if loss_of_pay_days < 0:
            raise ValueError("loss_of_pay_days cannot be negative")

        worked_days = Decimal(total_days_in_month) - loss_of_pay_days
        if worked_days < 0:
            worked_days = Decimal("0")

        result = EmployeePayrollResult(
            employee_id=employee_id,
            total_days_in_month=total_days_in_month,
            loss_of_pay_days=loss_of_pay_days,
            worked_days=worked_days,
        )

        for item in structure:
            line = LineItemBuilder.create_line(item, worked_days, total_days_in_month)
            result.lines.append(line)
            if line.component_type == ComponentType.EARNING:
                result.total_earnings += line.amount
            else:
                result.total_deductions += line.amount

        result.total_earnings = LineItemBuilder.round_to_cents(result.total_earnings)
        result.total_deductions = LineItemBuilder.round_to_cents(result.total_deductions)
        result.net_salary = LineItemBuilder.round_to_cents(
            result.total_earnings - result.total_deductions
        )
        return result
