"""Working-day calendar arithmetic."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leave_payroll.calculators.types import WorkingDaysResult
from leave_payroll.errors import InvalidRangeError
from leave_payroll.models import PublicHoliday

WEEKEND_DAYS = frozenset({5, 6})  # Saturday, Sunday


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day in [start, end]."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def working_days_between(
    start: date, end: date, holidays: Iterable[date] = ()
) -> WorkingDaysResult:
    """Classify each day in [start, end] as working, weekend, or holiday.

    Weekends are checked first, so a holiday falling on a weekend counts
    as a weekend day.
    """
    if end < start:
        raise InvalidRangeError(f"End date {end} is before start date {start}")

    holiday_set = set(holidays)
    working = weekend = holiday = 0
    for day in iter_days(start, end):
        if day.weekday() in WEEKEND_DAYS:
            weekend += 1
        elif day in holiday_set:
            holiday += 1
        else:
            working += 1

    return WorkingDaysResult(
        working_days=working,
        weekend_days=weekend,
        holiday_days=holiday,
        total_calendar_days=(end - start).days + 1,
    )


class HolidayCalendar:
    """Loads active public holidays and computes working days against them."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_holidays(self, start: date, end: date) -> set[date]:
        """Active holiday dates within [start, end]."""
        result = await self.session.execute(
            select(PublicHoliday.holiday_date).where(
                PublicHoliday.is_active.is_(True),
                PublicHoliday.holiday_date >= start,
                PublicHoliday.holiday_date <= end,
            )
        )
        return set(result.scalars().all())

    async def calculate_working_days(self, start: date, end: date) -> WorkingDaysResult:
        """Working-day breakdown for [start, end] using stored holidays."""
        if end < start:
            raise InvalidRangeError(f"End date {end} is before start date {start}")
        holidays = await self.get_holidays(start, end)
        return working_days_between(start, end, holidays)
