"""Domain events published after leave and payroll transitions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from leave_payroll.models.base import utcnow


class EventCategory(str, Enum):
    """Event categories for routing."""

    LEAVE = "leave"
    PAYROLL = "payroll"


@dataclass(frozen=True)
class DomainEvent:
    """Base domain event."""

    event_id: UUID = field(default_factory=uuid4, kw_only=True)
    occurred_at: datetime = field(default_factory=utcnow, kw_only=True)

    category = EventCategory.LEAVE

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        """Serializable payload for notification sinks."""
        payload: dict[str, Any] = {}
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            if isinstance(value, (UUID, Decimal, date, datetime)):
                value = str(value)
            payload[name] = value
        payload["event_type"] = self.event_type
        payload["category"] = self.category.value
        return payload


@dataclass(frozen=True)
class LeaveApplied(DomainEvent):
    leave_request_id: UUID
    employee_id: UUID
    start_date: date
    end_date: date
    total_days: Decimal


@dataclass(frozen=True)
class LeaveApproved(DomainEvent):
    leave_request_id: UUID
    employee_id: UUID
    approver_id: str
    total_days: Decimal


@dataclass(frozen=True)
class LeaveRejected(DomainEvent):
    leave_request_id: UUID
    employee_id: UUID
    approver_id: str


@dataclass(frozen=True)
class PayrollProcessed(DomainEvent):
    payroll_run_id: UUID
    month: int
    year: int
    employee_count: int
    total_payout: Decimal

    category = EventCategory.PAYROLL


@dataclass(frozen=True)
class PayrollFinalized(DomainEvent):
    payroll_run_id: UUID
    month: int
    year: int

    category = EventCategory.PAYROLL
