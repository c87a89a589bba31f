"""Leave and payroll calculators."""

from leave_payroll.calculators.engine import PayrollEngine, days_in_month, month_bounds
from leave_payroll.calculators.line_builder import LineItemBuilder
from leave_payroll.calculators.working_days import HolidayCalendar, working_days_between

__all__ = [
    "PayrollEngine",
    "days_in_month",
    "month_bounds",
    "LineItemBuilder",
    "HolidayCalendar",
    "working_days_between",
]
