"""Salary structure, payroll run, employee payroll, and detail models."""

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
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leave_payroll.models.base import Base, Money, TimestampMixin, utcnow
from leave_payroll.models.employee import Employee


# ===== Salary structure (reference data) =====


class SalaryComponent(Base, TimestampMixin):
    """Earning or deduction component."""

    __tablename__ = "salary_component"

    salary_component_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    component_type: Mapped[str] = mapped_column(String, nullable=False)
    is_taxable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            "component_type IN ('earning', 'deduction')",
            name="salary_component_type_check",
        ),
    )


class EmployeeSalaryStructure(Base, TimestampMixin):
    """Fixed monthly amount of one component for one employee."""

    __tablename__ = "employee_salary_structure"

    salary_structure_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    salary_component_id: Mapped[UUID] = mapped_column(
        ForeignKey("salary_component.salary_component_id", ondelete="RESTRICT"),
        nullable=False,
    )
    amount: Mapped[Money] = mapped_column(nullable=False)
    effective_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Relationships
    employee: Mapped[Employee] = relationship()
    salary_component: Mapped[SalaryComponent] = relationship()

    __table_args__ = (
        UniqueConstraint(
            "employee_id",
            "salary_component_id",
            "effective_date",
            name="uq_salary_structure_component_effective",
        ),
    )


# ===== Payroll runs =====


class PayrollRun(Base, TimestampMixin):
    """Monthly payroll run container."""

    __tablename__ = "payroll_run"

    payroll_run_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    processed_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    finalized_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    total_payout: Mapped[Decimal] = mapped_column(
        Numeric(16, 2), nullable=False, default=Decimal("0")
    )

    __table_args__ = (
        # Mutual-exclusion point for concurrent processing of one period
        UniqueConstraint("month", "year", name="payroll_run_period_unique"),
        CheckConstraint("month BETWEEN 1 AND 12", name="payroll_run_month_check"),
        CheckConstraint(
            "status IN ('draft', 'finalized')",
            name="payroll_run_status_check",
        ),
    )

    # Relationships
    employee_payrolls: Mapped[list[EmployeePayroll]] = relationship(
        back_populates="payroll_run",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class EmployeePayroll(Base, TimestampMixin):
    """One employee's computed pay within a run."""

    __tablename__ = "employee_payroll"

    employee_payroll_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_run_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_run.payroll_run_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    days_worked: Mapped[int] = mapped_column(Integer, nullable=False)
    loss_of_pay_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    basic_salary: Mapped[Money] = mapped_column(nullable=False)
    total_earnings: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    total_deductions: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    net_salary: Mapped[Money] = mapped_column(nullable=False, default=Decimal("0"))
    payment_status: Mapped[str] = mapped_column(String, nullable=False, default="pending")

    __table_args__ = (
        UniqueConstraint("payroll_run_id", "employee_id", name="employee_payroll_run_employee_unique"),
        CheckConstraint(
            "payment_status IN ('pending', 'paid')",
            name="employee_payroll_payment_status_check",
        ),
    )

    # Relationships
    payroll_run: Mapped[PayrollRun] = relationship(back_populates="employee_payrolls")
    employee: Mapped[Employee] = relationship()
    details: Mapped[list[PayrollDetail]] = relationship(
        back_populates="employee_payroll",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class PayrollDetail(Base, TimestampMixin):
    """Pro-rated amount of one salary component."""

    __tablename__ = "payroll_detail"

    payroll_detail_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_payroll_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee_payroll.employee_payroll_id", ondelete="CASCADE"),
        nullable=False,
    )
    salary_component_id: Mapped[UUID] = mapped_column(
        ForeignKey("salary_component.salary_component_id", ondelete="RESTRICT"),
        nullable=False,
    )
    amount: Mapped[Money] = mapped_column(nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "employee_payroll_id", "salary_component_id", name="payroll_detail_component_unique"
        ),
    )

    # Relationships
    employee_payroll: Mapped[EmployeePayroll] = relationship(back_populates="details")
    salary_component: Mapped[SalaryComponent] = relationship()
