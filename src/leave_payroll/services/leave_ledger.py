"""Leave ledger - per employee/type/year balances and atomic consumption."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leave_payroll.config import Settings, get_settings
from leave_payroll.errors import (
    ConcurrencyConflictError,
    InsufficientBalanceError,
    InvalidStateError,
    InvalidBalanceError,
    NoBalanceRecordError,
    NotFoundError,
)
from leave_payroll.models import Employee, LeaveBalance, LeaveRequest, LeaveType
from leave_payroll.models.base import utcnow
from leave_payroll.services.state_machine import LeaveRequestStatus

logger = logging.getLogger(__name__)

BALANCE_ELIGIBLE_STATUSES = ("active", "probation")


@dataclass(frozen=True)
class BalanceSnapshot:
    """Stored balance plus the pending reservation computed from requests."""

    leave_balance_id: UUID
    employee_id: UUID
    leave_type_id: UUID
    year: int
    total_days: Decimal
    used_days: Decimal
    remaining_days: Decimal
    carried_forward_days: Decimal
    pending_days: Decimal

    @property
    def available_days(self) -> Decimal:
        """Remaining days minus pending reservations."""
        return self.remaining_days - self.pending_days


def year_bounds(year: int) -> tuple[date, date]:
    return date(year, 1, 1), date(year, 12, 31)


class LeaveLedger:
    """Owns LeaveBalance rows.

    Pending requests act as reservations: they are subtracted from the
    remaining balance when checking availability but never written to the
    balance row. Only consume() moves days from remaining to used, through
    a conditional UPDATE guarded by the row's version and remaining days.
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    async def get_balance(
        self,
        employee_id: UUID,
        leave_type_id: UUID,
        year: int,
        for_update: bool = False,
    ) -> LeaveBalance | None:
        """Load the balance row for (employee, leave type, year)."""
        query = select(LeaveBalance).where(
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.leave_type_id == leave_type_id,
            LeaveBalance.year == year,
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(
            query.execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def require_balance(
        self,
        employee_id: UUID,
        leave_type_id: UUID,
        year: int,
        for_update: bool = False,
    ) -> LeaveBalance:
        """Load the balance row or raise NoBalanceRecordError."""
        balance = await self.get_balance(employee_id, leave_type_id, year, for_update)
        if balance is None:
            raise NoBalanceRecordError(
                f"No leave balance for employee {employee_id}, "
                f"leave type {leave_type_id}, year {year}"
            )
        return balance

    async def pending_days(
        self,
        employee_id: UUID,
        leave_type_id: UUID,
        year: int,
        exclude_request_id: UUID | None = None,
    ) -> Decimal:
        """Sum of total_days over pending requests for the balance key."""
        start, end = year_bounds(year)
        query = select(func.coalesce(func.sum(LeaveRequest.total_days), 0)).where(
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.leave_type_id == leave_type_id,
            LeaveRequest.status == LeaveRequestStatus.PENDING.value,
            LeaveRequest.start_date >= start,
            LeaveRequest.start_date <= end,
        )
        if exclude_request_id is not None:
            query = query.where(LeaveRequest.leave_request_id != exclude_request_id)
        result = await self.session.execute(query)
        return Decimal(str(result.scalar() or 0))

    async def snapshot(
        self,
        balance: LeaveBalance,
        exclude_request_id: UUID | None = None,
    ) -> BalanceSnapshot:
        """Build an advisory snapshot of a balance row."""
        pending = await self.pending_days(
            balance.employee_id, balance.leave_type_id, balance.year, exclude_request_id
        )
        return BalanceSnapshot(
            leave_balance_id=balance.leave_balance_id,
            employee_id=balance.employee_id,
            leave_type_id=balance.leave_type_id,
            year=balance.year,
            total_days=balance.total_days,
            used_days=balance.used_days,
            remaining_days=balance.remaining_days,
            carried_forward_days=balance.carried_forward_days,
            pending_days=pending,
        )

    async def reserve(
        self,
        employee_id: UUID,
        leave_type_id: UUID,
        year: int,
        days: Decimal,
        exclude_request_id: UUID | None = None,
    ) -> BalanceSnapshot:
        """Advisory availability check; does not mutate stored state.

        Raises NoBalanceRecordError or InsufficientBalanceError.
        """
        balance = await self.require_balance(employee_id, leave_type_id, year)
        snapshot = await self.snapshot(balance, exclude_request_id)
        if snapshot.available_days < days:
            raise InsufficientBalanceError(days, snapshot.available_days)
        return snapshot

    async def consume(
        self,
        employee_id: UUID,
        leave_type_id: UUID,
        year: int,
        days: Decimal,
        leave_request_id: UUID,
    ) -> LeaveBalance:
        """Move days from remaining to used atomically.

        Must run in the same transaction as the request's transition to
        approved. A conditional UPDATE on (version, remaining_days) guards
        against concurrent approvals; on a miss the row is re-read and the
        swap retried up to ``balance_conflict_retries`` times.
        """
        balance = await self.require_balance(employee_id, leave_type_id, year, for_update=True)
        attempts = self.settings.balance_conflict_retries + 1

        for attempt in range(attempts):
            if balance.remaining_days < days:
                raise InsufficientBalanceError(days, balance.remaining_days)

            result = await self.session.execute(
                update(LeaveBalance)
                .where(
                    LeaveBalance.leave_balance_id == balance.leave_balance_id,
                    LeaveBalance.version == balance.version,
                    LeaveBalance.remaining_days >= days,
                )
                .values(
                    used_days=LeaveBalance.used_days + days,
                    remaining_days=LeaveBalance.remaining_days - days,
                    version=LeaveBalance.version + 1,
                    last_updated=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            await self.session.refresh(balance)

            if result.rowcount == 1:
                logger.info(
                    "Consumed %s day(s) from balance %s for leave request %s",
                    days,
                    balance.leave_balance_id,
                    leave_request_id,
                )
                return balance

            logger.warning(
                "Balance %s changed concurrently (attempt %d of %d)",
                balance.leave_balance_id,
                attempt + 1,
                attempts,
            )

        if balance.remaining_days < days:
            raise InsufficientBalanceError(days, balance.remaining_days)
        raise ConcurrencyConflictError(
            f"Leave balance {balance.leave_balance_id} was modified concurrently; retry"
        )

    async def initialize_year(self, year: int) -> int:
        """Create missing balance rows for every active employee and leave type.

        Existing rows are left untouched. Returns the number of rows created.
        """
        employees = (
            await self.session.execute(
                select(Employee.employee_id).where(
                    func.lower(Employee.employment_status).in_(BALANCE_ELIGIBLE_STATUSES)
                )
            )
        ).scalars().all()
        leave_types = (
            await self.session.execute(select(LeaveType).where(LeaveType.is_active.is_(True)))
        ).scalars().all()
        existing = set(
            (
                await self.session.execute(
                    select(LeaveBalance.employee_id, LeaveBalance.leave_type_id).where(
                        LeaveBalance.year == year
                    )
                )
            ).tuples().all()
        )

        created = 0
        for employee_id in employees:
            for leave_type in leave_types:
                if (employee_id, leave_type.leave_type_id) in existing:
                    continue
                total = Decimal(leave_type.default_days_per_year)
                self.session.add(
                    LeaveBalance(
                        employee_id=employee_id,
                        leave_type_id=leave_type.leave_type_id,
                        year=year,
                        total_days=total,
                        used_days=Decimal("0"),
                        remaining_days=total,
                        carried_forward_days=Decimal("0"),
                    )
                )
                created += 1

        await self.session.flush()
        logger.info("Initialized %d leave balance(s) for year %d", created, year)
        return created

    # ===== Balance administration =====

    async def list_balances(
        self,
        employee_id: UUID | None = None,
        year: int | None = None,
    ) -> list[LeaveBalance]:
        """List balances, optionally filtered by employee and year."""
        query = select(LeaveBalance)
        if employee_id is not None:
            query = query.where(LeaveBalance.employee_id == employee_id)
        if year is not None:
            query = query.where(LeaveBalance.year == year)
        query = query.order_by(LeaveBalance.year.desc(), LeaveBalance.leave_type_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_balance_by_id(self, leave_balance_id: UUID) -> LeaveBalance:
        balance = await self.session.get(LeaveBalance, leave_balance_id)
        if balance is None:
            raise NotFoundError("Leave balance", leave_balance_id)
        return balance

    async def create_balance(
        self,
        employee_id: UUID,
        leave_type_id: UUID,
        year: int,
        total_days: Decimal,
        used_days: Decimal = Decimal("0"),
        carried_forward_days: Decimal = Decimal("0"),
    ) -> LeaveBalance:
        """Create one balance row manually."""
        if await self.get_balance(employee_id, leave_type_id, year) is not None:
            raise InvalidStateError(
                "A leave balance for this employee, leave type, and year already exists"
            )
        remaining = self._remaining(total_days, used_days, carried_forward_days)
        balance = LeaveBalance(
            employee_id=employee_id,
            leave_type_id=leave_type_id,
            year=year,
            total_days=total_days,
            used_days=used_days,
            remaining_days=remaining,
            carried_forward_days=carried_forward_days,
        )
        self.session.add(balance)
        await self.session.flush()
        return balance

    async def update_balance(
        self,
        leave_balance_id: UUID,
        total_days: Decimal,
        used_days: Decimal,
        carried_forward_days: Decimal,
    ) -> LeaveBalance:
        """Edit a balance row; refused while pending requests reference it."""
        balance = await self.get_balance_by_id(leave_balance_id)
        await self._ensure_no_requests(balance, (LeaveRequestStatus.PENDING,))

        balance.remaining_days = self._remaining(total_days, used_days, carried_forward_days)
        balance.total_days = total_days
        balance.used_days = used_days
        balance.carried_forward_days = carried_forward_days
        balance.version += 1
        balance.last_updated = utcnow()
        await self.session.flush()
        return balance

    async def delete_balance(self, leave_balance_id: UUID) -> None:
        """Delete a balance row; refused while pending or approved requests reference it."""
        balance = await self.get_balance_by_id(leave_balance_id)
        await self._ensure_no_requests(
            balance, (LeaveRequestStatus.PENDING, LeaveRequestStatus.APPROVED)
        )
        await self.session.delete(balance)
        await self.session.flush()

    async def _ensure_no_requests(
        self, balance: LeaveBalance, statuses: tuple[LeaveRequestStatus, ...]
    ) -> None:
        start, end = year_bounds(balance.year)
        count = await self.session.scalar(
            select(func.count())
            .select_from(LeaveRequest)
            .where(
                LeaveRequest.employee_id == balance.employee_id,
                LeaveRequest.leave_type_id == balance.leave_type_id,
                LeaveRequest.start_date >= start,
                LeaveRequest.start_date <= end,
                LeaveRequest.status.in_([s.value for s in statuses]),
            )
        )
        if count:
            names = "/".join(s.value for s in statuses)
            raise InvalidStateError(
                f"Leave balance {balance.leave_balance_id} is referenced by "
                f"{count} {names} leave request(s)"
            )

    @staticmethod
    def _remaining(total: Decimal, used: Decimal, carried_forward: Decimal) -> Decimal:
        remaining = total + carried_forward - used
        if remaining < 0:
            raise InvalidBalanceError("Used days exceed total plus carried-forward days")
        return remaining
