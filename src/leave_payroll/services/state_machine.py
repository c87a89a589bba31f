"""Leave request and payroll run state machines with transition validation."""

from __future__ import annotations

from enum import Enum

from leave_payroll.errors import InvalidStateError


class LeaveRequestStatus(str, Enum):
    """Leave request status values."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PayrollRunStatus(str, Enum):
    """Payroll run status values."""

    DRAFT = "draft"
    FINALIZED = "finalized"


class InvalidTransitionError(InvalidStateError):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


def _value(status: str) -> str:
    return status.value if isinstance(status, Enum) else status


class LeaveRequestStateMachine:
    """State machine for leave request status transitions.

    Allowed transitions:
    - pending → approved
    - pending → rejected

    Approved and rejected are terminal. Only pending requests accept edits,
    and approved requests can never be deleted.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        LeaveRequestStatus.PENDING.value: [
            LeaveRequestStatus.APPROVED.value,
            LeaveRequestStatus.REJECTED.value,
        ],
        LeaveRequestStatus.APPROVED.value: [],
        LeaveRequestStatus.REJECTED.value: [],
    }

    DELETABLE = {
        LeaveRequestStatus.PENDING.value,
        LeaveRequestStatus.REJECTED.value,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(_value(from_status), [])
        return _value(to_status) in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(
                _value(from_status), _value(to_status), "leave request is not pending"
            )

    @classmethod
    def can_modify(cls, status: str) -> bool:
        """Check if the request's dates, type, or reason can be edited."""
        return _value(status) == LeaveRequestStatus.PENDING.value

    @classmethod
    def can_delete(cls, status: str) -> bool:
        """Check if the request can be deleted."""
        return _value(status) in cls.DELETABLE

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        """Check if no further transitions are possible."""
        return not cls.VALID_TRANSITIONS.get(_value(status), [])


class PayrollRunStateMachine:
    """State machine for payroll run status transitions.

    Allowed transitions:
    - draft → finalized

    Finalized is terminal and immutable. A draft may instead be deleted and
    its period reprocessed.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PayrollRunStatus.DRAFT.value: [PayrollRunStatus.FINALIZED.value],
        PayrollRunStatus.FINALIZED.value: [],
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(_value(from_status), [])
        return _value(to_status) in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(_value(from_status), _value(to_status))

    @classmethod
    def can_recalculate(cls, status: str) -> bool:
        """Check if the run's period may be reprocessed (replacing the run)."""
        return _value(status) == PayrollRunStatus.DRAFT.value

    @classmethod
    def can_delete(cls, status: str) -> bool:
        """Check if the run and its rows may be deleted."""
        return _value(status) == PayrollRunStatus.DRAFT.value

    @classmethod
    def is_immutable(cls, status: str) -> bool:
        """Check if results are immutable."""
        return _value(status) == PayrollRunStatus.FINALIZED.value
