"""Leave and payroll services."""

from leave_payroll.services.state_machine import (
    InvalidTransitionError,
    LeaveRequestStateMachine,
    LeaveRequestStatus,
    PayrollRunStateMachine,
    PayrollRunStatus,
)
from leave_payroll.services.leave_ledger import BalanceSnapshot, LeaveLedger
from leave_payroll.services.leave_service import LeaveRequestChanges, LeaveService
from leave_payroll.services.loss_of_pay import LossOfPayAggregator
from leave_payroll.services.payroll_run_service import PayrollRunService, SalarySummary

__all__ = [
    "InvalidTransitionError",
    "LeaveRequestStateMachine",
    "LeaveRequestStatus",
    "PayrollRunStateMachine",
    "PayrollRunStatus",
    "BalanceSnapshot",
    "LeaveLedger",
    "LeaveRequestChanges",
    "LeaveService",
    "LossOfPayAggregator",
    "PayrollRunService",
    "SalarySummary",
]
