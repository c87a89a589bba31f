"""Payroll run service - monthly processing and the draft/finalized lifecycle."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from leave_payroll.calculators.engine import PayrollEngine, days_in_month, month_bounds
from leave_payroll.calculators.line_builder import LineItemBuilder
from leave_payroll.calculators.types import ComponentType, EmployeePayrollResult, StructureItem
from leave_payroll.config import Settings, get_settings
from leave_payroll.database import acquire_period_lock
from leave_payroll.errors import (
    AlreadyFinalizedError,
    CannotDeleteFinalizedError,
    ConcurrencyConflictError,
    InvalidPeriodError,
    NotFoundError,
)
from leave_payroll.events import (
    DomainEvent,
    EventEmitter,
    PayrollFinalized,
    PayrollProcessed,
    get_emitter,
)
from leave_payroll.models import (
    Employee,
    EmployeePayroll,
    EmployeeSalaryStructure,
    PayrollDetail,
    PayrollRun,
    SalaryComponent,
)
from leave_payroll.models.base import utcnow
from leave_payroll.services.loss_of_pay import LossOfPayAggregator
from leave_payroll.services.state_machine import PayrollRunStateMachine, PayrollRunStatus

logger = logging.getLogger(__name__)

PAYROLL_ELIGIBLE_STATUSES = ("active", "probation")
MAX_PAYROLL_YEAR = 9999


@dataclass(frozen=True)
class SalarySummary:
    """Monthly totals of an employee's salary structure."""

    employee_id: UUID
    total_earnings: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    components_count: int


class PayrollRunService:
    """Service for managing payroll runs.

    Operations:
    - process_payroll: (re)build the draft run for a month
    - finalize_payroll: draft → finalized (irreversible)
    - delete_payroll_run: remove a draft run and all its rows

    The whole of process_payroll runs in the caller's transaction. Any
    employee-level failure propagates so the caller rolls back the entire
    run instead of keeping a partial draft.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings | None = None,
        emitter: EventEmitter | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.aggregator = LossOfPayAggregator(session)
        self.emitter = emitter or get_emitter()
        self._pending_events: list[DomainEvent] = []

    # ===== Queries =====

    async def get_run(self, payroll_run_id: UUID, load_details: bool = False) -> PayrollRun:
        """Load a payroll run or raise NotFoundError."""
        query = select(PayrollRun).where(PayrollRun.payroll_run_id == payroll_run_id)
        if load_details:
            query = query.options(
                selectinload(PayrollRun.employee_payrolls).selectinload(EmployeePayroll.details)
            )
        result = await self.session.execute(query.execution_options(populate_existing=True))
        run = result.scalar_one_or_none()
        if run is None:
            raise NotFoundError("Payroll run", payroll_run_id)
        return run

    async def get_run_for_period(self, month: int, year: int) -> PayrollRun | None:
        result = await self.session.execute(
            select(PayrollRun)
            .where(PayrollRun.month == month, PayrollRun.year == year)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_runs(self) -> list[PayrollRun]:
        """All runs, newest period first."""
        result = await self.session.execute(
            select(PayrollRun).order_by(PayrollRun.year.desc(), PayrollRun.month.desc())
        )
        return list(result.scalars().all())

    async def list_employee_payrolls(self, employee_id: UUID) -> list[EmployeePayroll]:
        """Payslip history for one employee, newest period first."""
        result = await self.session.execute(
            select(EmployeePayroll)
            .join(PayrollRun, EmployeePayroll.payroll_run_id == PayrollRun.payroll_run_id)
            .where(EmployeePayroll.employee_id == employee_id)
            .options(
                selectinload(EmployeePayroll.details),
                selectinload(EmployeePayroll.payroll_run),
            )
            .order_by(PayrollRun.year.desc(), PayrollRun.month.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def salary_summary(
        self, employee_id: UUID, as_of: date | None = None
    ) -> SalarySummary:
        """Unprorated monthly totals of the structure in effect on as_of (default today)."""
        structure = (
            await self._load_structures([employee_id], as_of=as_of or utcnow().date())
        ).get(employee_id, [])
        earnings = sum(
            (i.amount for i in structure if i.component_type == ComponentType.EARNING),
            Decimal("0"),
        )
        deductions = sum(
            (i.amount for i in structure if i.component_type == ComponentType.DEDUCTION),
            Decimal("0"),
        )
        return SalarySummary(
            employee_id=employee_id,
            total_earnings=earnings,
            total_deductions=deductions,
            net_salary=earnings - deductions,
            components_count=len(structure),
        )

    # ===== Lifecycle =====

    async def process_payroll(self, month: int, year: int) -> PayrollRun:
        """Build the draft payroll run for (month, year).

        An existing draft for the period is deleted first, which makes
        reprocessing idempotent. A finalized period is refused.
        """
        self._validate_period(month, year)

        if not await acquire_period_lock(self.session, f"payroll:{year:04d}-{month:02d}"):
            raise ConcurrencyConflictError(
                f"Payroll for {year:04d}-{month:02d} is being processed by another request"
            )

        existing = await self.get_run_for_period(month, year)
        if existing is not None:
            if PayrollRunStateMachine.is_immutable(existing.status):
                raise AlreadyFinalizedError(
                    f"Payroll for {year:04d}-{month:02d} is already finalized"
                )
            logger.info(
                "Replacing draft payroll run %s for %04d-%02d",
                existing.payroll_run_id,
                year,
                month,
            )
            await self._delete_run_rows(existing.payroll_run_id)

        run = PayrollRun(
            month=month,
            year=year,
            status=PayrollRunStatus.DRAFT.value,
            processed_date=utcnow(),
            total_payout=Decimal("0"),
        )
        self.session.add(run)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise ConcurrencyConflictError(
                f"Payroll for {year:04d}-{month:02d} was created concurrently"
            ) from e

        total_days = days_in_month(year, month)
        month_start, month_end = month_bounds(year, month)

        employees = await self._eligible_employees()
        structures = await self._load_structures(
            [e.employee_id for e in employees], as_of=month_end
        )

        run_total = Decimal("0")
        employee_count = 0
        for employee in employees:
            structure = structures.get(employee.employee_id)
            if not structure:
                # No salary structure configured yet
                continue

            try:
                lop_days = await self.aggregator.loss_of_pay_days(
                    employee.employee_id, month_start, month_end
                )
                result = PayrollEngine.calculate_employee(
                    employee.employee_id, structure, lop_days, total_days
                )
                await self._persist_employee(run, employee, result)
            except Exception:
                logger.exception(
                    "Payroll %04d-%02d failed for employee %s; rolling back run",
                    year,
                    month,
                    employee.employee_id,
                )
                raise

            run_total += result.net_salary
            employee_count += 1

        run.total_payout = LineItemBuilder.round_to_cents(run_total)
        await self.session.flush()

        logger.info(
            "Processed payroll run %s for %04d-%02d: %d employee(s), total payout %s",
            run.payroll_run_id,
            year,
            month,
            employee_count,
            run.total_payout,
        )
        self._queue(
            PayrollProcessed(
                payroll_run_id=run.payroll_run_id,
                month=month,
                year=year,
                employee_count=employee_count,
                total_payout=run.total_payout,
            )
        )
        return run

    async def finalize_payroll(self, payroll_run_id: UUID) -> PayrollRun:
        """Finalize a draft run. Irreversible."""
        run = await self.get_run(payroll_run_id)
        if not PayrollRunStateMachine.can_transition(run.status, PayrollRunStatus.FINALIZED):
            raise AlreadyFinalizedError(f"Payroll run {payroll_run_id} is already finalized")

        finalized_at = utcnow()
        result = await self.session.execute(
            update(PayrollRun)
            .where(
                PayrollRun.payroll_run_id == payroll_run_id,
                PayrollRun.status == PayrollRunStatus.DRAFT.value,
            )
            .values(status=PayrollRunStatus.FINALIZED.value, finalized_at=finalized_at)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise AlreadyFinalizedError(f"Payroll run {payroll_run_id} is already finalized")

        await self.session.refresh(run)
        logger.info("Finalized payroll run %s (%04d-%02d)", run.payroll_run_id, run.year, run.month)
        self._queue(
            PayrollFinalized(payroll_run_id=run.payroll_run_id, month=run.month, year=run.year)
        )
        return run

    async def delete_payroll_run(self, payroll_run_id: UUID) -> None:
        """Delete a draft run with its employee payrolls and details."""
        run = await self.get_run(payroll_run_id)
        if not PayrollRunStateMachine.can_delete(run.status):
            raise CannotDeleteFinalizedError(
                f"Payroll run {payroll_run_id} is finalized and cannot be deleted"
            )
        await self._delete_run_rows(payroll_run_id)
        logger.info("Deleted draft payroll run %s (%04d-%02d)", payroll_run_id, run.year, run.month)

    # ===== Events =====

    def flush_events(self) -> None:
        """Publish queued events; call after the transaction commits."""
        events, self._pending_events = self._pending_events, []
        for event in events:
            self.emitter.emit(event)

    def _queue(self, event: DomainEvent) -> None:
        self._pending_events.append(event)

    # ===== Helpers =====

    def _validate_period(self, month: int, year: int) -> None:
        if not 1 <= month <= 12:
            raise InvalidPeriodError(f"Invalid month {month}; expected 1-12")
        if not self.settings.payroll_min_year <= year <= MAX_PAYROLL_YEAR:
            raise InvalidPeriodError(
                f"Invalid year {year}; expected {self.settings.payroll_min_year}-{MAX_PAYROLL_YEAR}"
            )

    async def _eligible_employees(self) -> list[Employee]:
        result = await self.session.execute(
            select(Employee)
            .where(func.lower(Employee.employment_status).in_(PAYROLL_ELIGIBLE_STATUSES))
            .order_by(Employee.employee_number)
        )
        return list(result.scalars().all())

    async def _load_structures(
        self, employee_ids: list[UUID], as_of: date
    ) -> dict[UUID, list[StructureItem]]:
        """Salary structure in effect on ``as_of``, one item per component.

        Rows dated after ``as_of`` are ignored. The latest effective date
        wins per component; undated rows count as effective from the start.
        Rows sharing the winning date are merged into one amount.
        """
        if not employee_ids:
            return {}
        result = await self.session.execute(
            select(
                EmployeeSalaryStructure.employee_id,
                EmployeeSalaryStructure.salary_component_id,
                SalaryComponent.component_type,
                EmployeeSalaryStructure.amount,
                EmployeeSalaryStructure.effective_date,
            )
            .join(
                SalaryComponent,
                EmployeeSalaryStructure.salary_component_id == SalaryComponent.salary_component_id,
            )
            .where(
                EmployeeSalaryStructure.employee_id.in_(employee_ids),
                or_(
                    EmployeeSalaryStructure.effective_date.is_(None),
                    EmployeeSalaryStructure.effective_date <= as_of,
                ),
            )
            .order_by(EmployeeSalaryStructure.employee_id, SalaryComponent.name)
        )

        effective: dict[tuple[UUID, UUID], tuple[date, ComponentType, Decimal]] = {}
        for employee_id, component_id, component_type, amount, effective_date in result.all():
            key = (employee_id, component_id)
            since = effective_date or date.min
            current = effective.get(key)
            if current is None or since > current[0]:
                effective[key] = (since, ComponentType(component_type), amount)
            elif since == current[0]:
                effective[key] = (since, current[1], current[2] + amount)

        structures: dict[UUID, list[StructureItem]] = defaultdict(list)
        for (employee_id, component_id), (_, component_type, amount) in effective.items():
            structures[employee_id].append(
                StructureItem(
                    salary_component_id=component_id,
                    component_type=component_type,
                    amount=amount,
                )
            )
        return structures

    async def _persist_employee(
        self, run: PayrollRun, employee: Employee, result: EmployeePayrollResult
    ) -> EmployeePayroll:
        employee_payroll = EmployeePayroll(
            payroll_run_id=run.payroll_run_id,
            employee_id=employee.employee_id,
            days_worked=result.days_worked_whole,
            loss_of_pay_days=result.loss_of_pay_days_whole,
            basic_salary=employee.salary,
            total_earnings=result.total_earnings,
            total_deductions=result.total_deductions,
            net_salary=result.net_salary,
            payment_status="pending",
        )
        self.session.add(employee_payroll)
        await self.session.flush()

        self.session.add_all(
            [
                PayrollDetail(
                    employee_payroll_id=employee_payroll.employee_payroll_id,
                    salary_component_id=line.salary_component_id,
                    amount=line.amount,
                )
                for line in result.lines
            ]
        )
        await self.session.flush()
        return employee_payroll

    async def _delete_run_rows(self, payroll_run_id: UUID) -> None:
        """Delete details, employee payrolls and the run, in that order."""
        employee_payroll_ids = set(
            (
                await self.session.execute(
                    select(EmployeePayroll.employee_payroll_id).where(
                        EmployeePayroll.payroll_run_id == payroll_run_id
                    )
                )
            ).scalars().all()
        )
        await self.session.execute(
            delete(PayrollDetail)
            .where(PayrollDetail.employee_payroll_id.in_(list(employee_payroll_ids)))
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(
            delete(EmployeePayroll)
            .where(EmployeePayroll.payroll_run_id == payroll_run_id)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(
            delete(PayrollRun)
            .where(
                PayrollRun.payroll_run_id == payroll_run_id,
                PayrollRun.status == PayrollRunStatus.DRAFT.value,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise CannotDeleteFinalizedError(
                f"Payroll run {payroll_run_id} was finalized concurrently"
            )
        # Bulk deletes bypass the identity map; drop the stale instances
        for obj in list(self.session.identity_map.values()):
            if (
                (isinstance(obj, PayrollRun) and obj.payroll_run_id == payroll_run_id)
                or (isinstance(obj, EmployeePayroll) and obj.payroll_run_id == payroll_run_id)
                or (
                    isinstance(obj, PayrollDetail)
                    and obj.employee_payroll_id in employee_payroll_ids
                )
            ) and obj in self.session:
                self.session.expunge(obj)
