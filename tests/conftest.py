"""Pytest fixtures for leave and payroll engine tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from leave_payroll.config import Settings
from leave_payroll.events import EventEmitter
from leave_payroll.models import (
    Attendance,
    Base,
    Employee,
    EmployeeSalaryStructure,
    LeaveBalance,
    LeaveRequest,
    LeaveType,
    PublicHoliday,
    SalaryComponent,
)

# In-memory SQLite shared by every connection of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def settings() -> Settings:
    """Settings for tests; never reads the environment."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        engine_version="test",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="DEBUG",
        payroll_min_year=2000,
        balance_conflict_retries=1,
    )


@pytest.fixture
async def engine():
    """Create a fresh test database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def file_session_factory(
    tmp_path,
) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Sessions on a file-backed database, each with its own connection."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'leave_payroll.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    await engine.dispose()


@pytest.fixture
def published() -> list:
    """Events received by the test emitter, in publish order."""
    return []


@pytest.fixture
def emitter(published) -> EventEmitter:
    """Isolated emitter that records every published event."""
    emitter = EventEmitter()
    emitter.on_all(published.append)
    return emitter


# ============================================================================
# Factories
# ============================================================================


async def make_employee(
    session: AsyncSession,
    employment_status: str = "Active",
    salary: Decimal = Decimal("3000.00"),
    number: str | None = None,
) -> Employee:
    employee = Employee(
        employee_number=number or f"E-{uuid4().hex[:8]}",
        first_name="Test",
        last_name="Employee",
        email="test.employee@example.com",
        employment_status=employment_status,
        salary=salary,
        hire_date=date(2020, 1, 1),
    )
    session.add(employee)
    await session.flush()
    return employee


async def make_leave_type(
    session: AsyncSession,
    name: str,
    default_days: int = 20,
    is_paid: bool = True,
    max_consecutive_days: int | None = None,
    is_active: bool = True,
) -> LeaveType:
    leave_type = LeaveType(
        name=name,
        default_days_per_year=default_days,
        is_paid=is_paid,
        max_consecutive_days=max_consecutive_days,
        is_active=is_active,
    )
    session.add(leave_type)
    await session.flush()
    return leave_type


async def make_balance(
    session: AsyncSession,
    employee: Employee,
    leave_type: LeaveType,
    year: int = 2024,
    total: Decimal = Decimal("10"),
    used: Decimal = Decimal("0"),
) -> LeaveBalance:
    balance = LeaveBalance(
        employee_id=employee.employee_id,
        leave_type_id=leave_type.leave_type_id,
        year=year,
        total_days=total,
        used_days=used,
        remaining_days=total - used,
        carried_forward_days=Decimal("0"),
    )
    session.add(balance)
    await session.flush()
    return balance


async def make_approved_leave(
    session: AsyncSession,
    employee: Employee,
    leave_type: LeaveType,
    start: date,
    end: date,
    total_days: Decimal,
) -> LeaveRequest:
    """Insert an approved request directly, bypassing the workflow."""
    leave = LeaveRequest(
        employee_id=employee.employee_id,
        leave_type_id=leave_type.leave_type_id,
        start_date=start,
        end_date=end,
        total_days=total_days,
        status="approved",
        approver_id="manager-1",
    )
    session.add(leave)
    await session.flush()
    return leave


async def mark_absent(session: AsyncSession, employee: Employee, *days: date) -> None:
    session.add_all(
        [
            Attendance(employee_id=employee.employee_id, work_date=day, status="absent")
            for day in days
        ]
    )
    await session.flush()


async def add_holiday(
    session: AsyncSession, day: date, name: str = "Holiday", active: bool = True
) -> PublicHoliday:
    holiday = PublicHoliday(name=name, holiday_date=day, is_active=active)
    session.add(holiday)
    await session.flush()
    return holiday


async def assign_component(
    session: AsyncSession,
    employee: Employee,
    component: SalaryComponent,
    amount: Decimal,
    effective_date: date | None = date(2024, 1, 1),
) -> EmployeeSalaryStructure:
    item = EmployeeSalaryStructure(
        employee_id=employee.employee_id,
        salary_component_id=component.salary_component_id,
        amount=amount,
        effective_date=effective_date,
    )
    session.add(item)
    await session.flush()
    return item


# ============================================================================
# Common fixtures
# ============================================================================


@pytest.fixture
async def employee(session) -> Employee:
    return await make_employee(session, number="E-0001")


@pytest.fixture
async def annual_leave(session) -> LeaveType:
    return await make_leave_type(session, "Annual Leave", default_days=20)


@pytest.fixture
async def unpaid_leave(session) -> LeaveType:
    return await make_leave_type(session, "Unpaid Leave", default_days=30, is_paid=False)


@pytest.fixture
async def annual_balance(session, employee, annual_leave) -> LeaveBalance:
    """10 days of annual leave in 2024."""
    return await make_balance(session, employee, annual_leave)


@pytest.fixture
async def basic_pay(session) -> SalaryComponent:
    component = SalaryComponent(name="Basic", component_type="earning", is_taxable=True)
    session.add(component)
    await session.flush()
    return component


@pytest.fixture
async def income_tax(session) -> SalaryComponent:
    component = SalaryComponent(name="Income Tax", component_type="deduction")
    session.add(component)
    await session.flush()
    return component
