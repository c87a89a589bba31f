"""Typed errors returned to callers of the leave and payroll operations."""

from __future__ import annotations


class LeavePayrollError(Exception):
    """Base class for all domain errors.

    Each subclass carries a stable ``code`` that the API layer maps to a
    response status.
    """

    code = "ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidRangeError(LeavePayrollError):
    """Date range is empty, crosses a year, or covers no working days."""

    code = "INVALID_RANGE"


class InvalidPeriodError(LeavePayrollError):
    """Payroll month/year is out of bounds."""

    code = "INVALID_PERIOD"


class InvalidStateError(LeavePayrollError):
    """Entity is in the wrong workflow state for the requested operation."""

    code = "INVALID_STATE"


class OverlapError(LeavePayrollError):
    """Leave request overlaps an existing non-rejected request."""

    code = "OVERLAP"


class NoBalanceRecordError(LeavePayrollError):
    """No leave balance row exists for the employee/type/year."""

    code = "NO_BALANCE_RECORD"


class InsufficientBalanceError(LeavePayrollError):
    """Requested days exceed the available leave balance."""

    code = "INSUFFICIENT_BALANCE"

    def __init__(self, requested, available):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient leave balance: requested {requested} day(s), "
            f"available {available}"
        )


class AlreadyFinalizedError(LeavePayrollError):
    """Payroll run (or period) is already finalized."""

    code = "ALREADY_FINALIZED"


class CannotDeleteFinalizedError(LeavePayrollError):
    """Finalized payroll runs cannot be deleted."""

    code = "CANNOT_DELETE_FINALIZED"


class NotFoundError(LeavePayrollError):
    """Requested entity does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ConcurrencyConflictError(LeavePayrollError):
    """A concurrent writer changed the same row or period first."""

    code = "CONFLICT"


class InvalidBalanceError(LeavePayrollError):
    """Balance figures would leave remaining days negative."""

    code = "INVALID_BALANCE"
