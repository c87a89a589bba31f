"""Domain events for leave and payroll notifications."""

from leave_payroll.events.emitter import EventEmitter, get_emitter
from leave_payroll.events.types import (
    DomainEvent,
    EventCategory,
    LeaveApplied,
    LeaveApproved,
    LeaveRejected,
    PayrollFinalized,
    PayrollProcessed,
)

__all__ = [
    "EventEmitter",
    "get_emitter",
    "DomainEvent",
    "EventCategory",
    "LeaveApplied",
    "LeaveApproved",
    "LeaveRejected",
    "PayrollFinalized",
    "PayrollProcessed",
]
