"""Calendar API endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Query
from sqlalchemy import extract, select

from leave_payroll.api.dependencies import DbSession
from leave_payroll.api.schemas import ErrorResponse, PublicHolidayResponse, WorkingDaysResponse
from leave_payroll.calculators.working_days import HolidayCalendar
from leave_payroll.models import PublicHoliday

router = APIRouter(tags=["calendar"])


@router.get(
    "/calendar/working-days",
    response_model=WorkingDaysResponse,
    responses={400: {"model": ErrorResponse}},
)
async def calculate_working_days(
    db: DbSession,
    start_date: date,
    end_date: date,
) -> WorkingDaysResponse:
    """Working, weekend and holiday day counts for an inclusive range."""
    result = await HolidayCalendar(db).calculate_working_days(start_date, end_date)
    return WorkingDaysResponse(
        start_date=start_date,
        end_date=end_date,
        working_days=result.working_days,
        weekend_days=result.weekend_days,
        holiday_days=result.holiday_days,
        total_calendar_days=result.total_calendar_days,
    )


@router.get("/holidays", response_model=list[PublicHolidayResponse])
async def list_holidays(
    db: DbSession,
    year: Annotated[int | None, Query(ge=1, le=9999)] = None,
) -> list[PublicHolidayResponse]:
    """List public holidays, optionally for one year."""
    query = select(PublicHoliday)
    if year is not None:
        query = query.where(extract("year", PublicHoliday.holiday_date) == year)
    result = await db.execute(query.order_by(PublicHoliday.holiday_date))
    return [PublicHolidayResponse.model_validate(h) for h in result.scalars().all()]
