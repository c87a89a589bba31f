"""Employee directory, attendance, and holiday reference models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leave_payroll.models.base import Base, Money, TimestampMixin


class Employee(Base, TimestampMixin):
    """Employee record (read-only input owned by the employee directory)."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_number: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    # Free text in the directory ("Active", "Probation", "Terminated", ...)
    employment_status: Mapped[str] = mapped_column(String, nullable=False, default="Active")
    salary: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    hire_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Relationships
    attendance: Mapped[list[Attendance]] = relationship(back_populates="employee")


class Attendance(Base, TimestampMixin):
    """One attendance status per employee per day."""

    __tablename__ = "attendance"

    attendance_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="present")
    notes: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "work_date", name="attendance_employee_date_unique"),
        CheckConstraint(
            "status IN ('present', 'absent', 'late', 'half_day')",
            name="attendance_status_check",
        ),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="attendance")


class PublicHoliday(Base, TimestampMixin):
    """Public holiday consumed by the working-day calendar."""

    __tablename__ = "public_holiday"

    public_holiday_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    holiday_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
