"""API test fixtures: the app wired to the per-test SQLite database."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from leave_payroll.api.app import create_app
from leave_payroll.api.dependencies import get_db_session
from leave_payroll.models import SalaryComponent
from tests.conftest import (
    assign_component,
    make_balance,
    make_employee,
    make_leave_type,
)


@dataclass(frozen=True)
class SeedData:
    """Identifiers of the seeded reference data."""

    employee_id: UUID
    annual_leave_id: UUID
    balance_id: UUID


@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    app = create_app()

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture(scope="function")
async def seed(session_factory) -> SeedData:
    """One active employee with 10 days of 2024 annual leave and a salary structure."""
    async with session_factory() as session:
        employee = await make_employee(session, number="E-0001")
        annual = await make_leave_type(session, "Annual Leave", default_days=20)
        balance = await make_balance(session, employee, annual)
        basic = SalaryComponent(name="Basic", component_type="earning")
        tax = SalaryComponent(name="Income Tax", component_type="deduction")
        session.add_all([basic, tax])
        await session.flush()
        await assign_component(session, employee, basic, Decimal("3000.00"))
        await assign_component(session, employee, tax, Decimal("300.00"))
        await session.commit()
        return SeedData(
            employee_id=employee.employee_id,
            annual_leave_id=annual.leave_type_id,
            balance_id=balance.leave_balance_id,
        )
