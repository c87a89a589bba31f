"""Leave type, balance, and request models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leave_payroll.models.base import Base, DayCount, TimestampMixin
from leave_payroll.models.employee import Employee


class LeaveType(Base, TimestampMixin):
    """Leave type reference data."""

    __tablename__ = "leave_type"

    leave_type_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    default_days_per_year: Mapped[int] = mapped_column(Integer, nullable=False)
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    requires_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    max_consecutive_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    allow_carry_forward: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    max_carry_forward_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("default_days_per_year >= 0", name="leave_type_default_days_check"),
    )


class LeaveBalance(Base, TimestampMixin):
    """Per employee, leave type and year balance.

    remaining_days = total_days + carried_forward_days - used_days
    """

    __tablename__ = "leave_balance"

    leave_balance_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    leave_type_id: Mapped[UUID] = mapped_column(
        ForeignKey("leave_type.leave_type_id", ondelete="RESTRICT"),
        nullable=False,
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    total_days: Mapped[DayCount] = mapped_column(nullable=False)
    used_days: Mapped[DayCount] = mapped_column(nullable=False, default=Decimal("0"))
    remaining_days: Mapped[DayCount] = mapped_column(nullable=False)
    carried_forward_days: Mapped[DayCount] = mapped_column(nullable=False, default=Decimal("0"))
    # Incremented on every mutation; consume() compares and swaps on it
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_updated: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "leave_type_id", "year", name="leave_balance_employee_type_year_unique"
        ),
        CheckConstraint("remaining_days >= 0", name="leave_balance_remaining_check"),
        CheckConstraint("used_days >= 0", name="leave_balance_used_check"),
    )

    # Relationships
    employee: Mapped[Employee] = relationship()
    leave_type: Mapped[LeaveType] = relationship()


class LeaveRequest(Base, TimestampMixin):
    """Leave application and its approval state."""

    __tablename__ = "leave_request"

    leave_request_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    leave_type_id: Mapped[UUID] = mapped_column(
        ForeignKey("leave_type.leave_type_id", ondelete="RESTRICT"),
        nullable=False,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_days: Mapped[DayCount] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    approver_id: Mapped[str | None] = mapped_column(String, nullable=True)
    approved_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approver_comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="leave_request_dates_check"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="leave_request_status_check",
        ),
    )

    # Relationships
    employee: Mapped[Employee] = relationship()
    leave_type: Mapped[LeaveType] = relationship()

    @property
    def year(self) -> int:
        """Leave year (requests never cross a calendar year)."""
        return self.start_date.year
