"""Payroll API endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Response, status

from leave_payroll.api.dependencies import DbSession
from leave_payroll.api.schemas import (
    EmployeePayrollResponse,
    ErrorResponse,
    PayrollProcessRequest,
    PayrollRunDetailResponse,
    PayrollRunResponse,
    PayslipResponse,
    SalarySummaryResponse,
)
from leave_payroll.services.payroll_run_service import PayrollRunService

router = APIRouter(prefix="/payroll", tags=["payroll"])


# ============================================================================
# Payroll runs
# ============================================================================


@router.post(
    "/process",
    response_model=PayrollRunResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def process_payroll(
    db: DbSession,
    payload: PayrollProcessRequest,
) -> PayrollRunResponse:
    """Process (or reprocess) the draft payroll for a month."""
    service = PayrollRunService(db)
    run = await service.process_payroll(payload.month, payload.year)
    await db.commit()
    service.flush_events()
    return PayrollRunResponse.model_validate(run)


@router.get("/runs", response_model=list[PayrollRunResponse])
async def list_runs(db: DbSession) -> list[PayrollRunResponse]:
    """List payroll runs, newest period first."""
    runs = await PayrollRunService(db).list_runs()
    return [PayrollRunResponse.model_validate(run) for run in runs]


@router.get(
    "/runs/{payroll_run_id}",
    response_model=PayrollRunDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_run(
    db: DbSession,
    payroll_run_id: Annotated[UUID, Path()],
) -> PayrollRunDetailResponse:
    """Get a payroll run with its employee payrolls and detail lines."""
    run = await PayrollRunService(db).get_run(payroll_run_id, load_details=True)
    return PayrollRunDetailResponse.model_validate(run)


@router.post(
    "/runs/{payroll_run_id}/finalize",
    response_model=PayrollRunResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def finalize_payroll(
    db: DbSession,
    payroll_run_id: Annotated[UUID, Path()],
) -> PayrollRunResponse:
    """Finalize a draft run. Finalized runs can never change again."""
    service = PayrollRunService(db)
    run = await service.finalize_payroll(payroll_run_id)
    await db.commit()
    service.flush_events()
    return PayrollRunResponse.model_validate(run)


@router.delete(
    "/runs/{payroll_run_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_payroll_run(
    db: DbSession,
    payroll_run_id: Annotated[UUID, Path()],
) -> Response:
    """Delete a draft run."""
    await PayrollRunService(db).delete_payroll_run(payroll_run_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Employee views
# ============================================================================


@router.get(
    "/employees/{employee_id}/payslips",
    response_model=list[PayslipResponse],
)
async def list_payslips(
    db: DbSession,
    employee_id: Annotated[UUID, Path()],
) -> list[PayslipResponse]:
    """Payslip history for one employee, newest period first."""
    payrolls = await PayrollRunService(db).list_employee_payrolls(employee_id)
    return [
        PayslipResponse(
            **EmployeePayrollResponse.model_validate(ep).model_dump(),
            month=ep.payroll_run.month,
            year=ep.payroll_run.year,
            run_status=ep.payroll_run.status,
        )
        for ep in payrolls
    ]


@router.get(
    "/employees/{employee_id}/salary-summary",
    response_model=SalarySummaryResponse,
)
async def salary_summary(
    db: DbSession,
    employee_id: Annotated[UUID, Path()],
    as_of: date | None = None,
) -> SalarySummaryResponse:
    """Monthly structure totals for one employee, as of a date (default today)."""
    summary = await PayrollRunService(db).salary_summary(employee_id, as_of=as_of)
    return SalarySummaryResponse.model_validate(summary)
