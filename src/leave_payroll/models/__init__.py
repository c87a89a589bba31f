"""ORM models for the leave and payroll engine."""

from leave_payroll.models.base import Base, TimestampMixin
from leave_payroll.models.employee import Attendance, Employee, PublicHoliday
from leave_payroll.models.leave import LeaveBalance, LeaveRequest, LeaveType
from leave_payroll.models.payroll import (
    EmployeePayroll,
    EmployeeSalaryStructure,
    PayrollDetail,
    PayrollRun,
    SalaryComponent,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "Attendance",
    "Employee",
    "PublicHoliday",
    "LeaveBalance",
    "LeaveRequest",
    "LeaveType",
    "EmployeePayroll",
    "EmployeeSalaryStructure",
    "PayrollDetail",
    "PayrollRun",
    "SalaryComponent",
]
