"""Type definitions for the calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from uuid import UUID


class ComponentType(str, Enum):
    """Salary component types."""

    EARNING = "earning"
    DEDUCTION = "deduction"


@dataclass(frozen=True)
class WorkingDaysResult:
    """Classification of every calendar day in an inclusive range."""

    working_days: int
    weekend_days: int
    holiday_days: int
    total_calendar_days: int


@dataclass(frozen=True)
class StructureItem:
    """One salary-structure component as input to the engine."""

    salary_component_id: UUID
    component_type: ComponentType
    amount: Decimal  # Fixed monthly amount


@dataclass
class LineCandidate:
    """A pro-rated payroll line before persistence."""

    salary_component_id: UUID
    component_type: ComponentType
    monthly_amount: Decimal
    amount: Decimal  # Rounded to cents


@dataclass
class EmployeePayrollResult:
    """Result of calculating one employee's monthly pay."""

    employee_id: UUID
    total_days_in_month: int
    loss_of_pay_days: Decimal
    worked_days: Decimal
    lines: list[LineCandidate] = field(default_factory=list)
    total_earnings: Decimal = Decimal("0")
    total_deductions: Decimal = Decimal("0")
    net_salary: Decimal = Decimal("0")

    @property
    def days_worked_whole(self) -> int:
        """Worked days truncated to a whole number for storage."""
        return int(self.worked_days)

    @property
    def loss_of_pay_days_whole(self) -> int:
        """Loss-of-pay days truncated to a whole number for storage."""
        return int(self.loss_of_pay_days)
