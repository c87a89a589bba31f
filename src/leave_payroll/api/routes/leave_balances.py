"""Leave balance API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Response, status

from leave_payroll.api.dependencies import DbSession
from leave_payroll.api.schemas import (
    BalanceSnapshotResponse,
    ErrorResponse,
    InitializeBalancesRequest,
    InitializeBalancesResponse,
    LeaveBalanceCreate,
    LeaveBalanceResponse,
    LeaveBalanceUpdate,
)
from leave_payroll.services.leave_ledger import LeaveLedger

router = APIRouter(prefix="/leave-balances", tags=["leave-balances"])


@router.get("", response_model=list[BalanceSnapshotResponse])
async def list_balances(
    db: DbSession,
    employee_id: UUID | None = None,
    year: Annotated[int | None, Query(ge=1, le=9999)] = None,
) -> list[BalanceSnapshotResponse]:
    """List balances with their pending reservations."""
    ledger = LeaveLedger(db)
    balances = await ledger.list_balances(employee_id=employee_id, year=year)
    return [
        BalanceSnapshotResponse.model_validate(await ledger.snapshot(balance))
        for balance in balances
    ]


@router.get(
    "/employees/{employee_id}/{year}",
    response_model=list[BalanceSnapshotResponse],
)
async def get_employee_balances(
    db: DbSession,
    employee_id: Annotated[UUID, Path()],
    year: Annotated[int, Path(ge=1, le=9999)],
) -> list[BalanceSnapshotResponse]:
    """All balances of one employee for one year."""
    return await list_balances(db, employee_id=employee_id, year=year)


@router.post(
    "",
    response_model=LeaveBalanceResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_balance(
    db: DbSession,
    payload: LeaveBalanceCreate,
) -> LeaveBalanceResponse:
    """Create one balance row manually."""
    balance = await LeaveLedger(db).create_balance(
        employee_id=payload.employee_id,
        leave_type_id=payload.leave_type_id,
        year=payload.year,
        total_days=payload.total_days,
        used_days=payload.used_days,
        carried_forward_days=payload.carried_forward_days,
    )
    await db.commit()
    return LeaveBalanceResponse.model_validate(balance)


@router.post(
    "/initialize",
    response_model=InitializeBalancesResponse,
)
async def initialize_year(
    db: DbSession,
    payload: InitializeBalancesRequest,
) -> InitializeBalancesResponse:
    """Create missing balances for every active employee and leave type."""
    created = await LeaveLedger(db).initialize_year(payload.year)
    await db.commit()
    return InitializeBalancesResponse(year=payload.year, created=created)


@router.put(
    "/{leave_balance_id}",
    response_model=LeaveBalanceResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def update_balance(
    db: DbSession,
    leave_balance_id: Annotated[UUID, Path()],
    payload: LeaveBalanceUpdate,
) -> LeaveBalanceResponse:
    """Edit total, used and carried-forward days."""
    balance = await LeaveLedger(db).update_balance(
        leave_balance_id,
        total_days=payload.total_days,
        used_days=payload.used_days,
        carried_forward_days=payload.carried_forward_days,
    )
    await db.commit()
    return LeaveBalanceResponse.model_validate(balance)


@router.delete(
    "/{leave_balance_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_balance(
    db: DbSession,
    leave_balance_id: Annotated[UUID, Path()],
) -> Response:
    """Delete a balance row not referenced by live requests."""
    await LeaveLedger(db).delete_balance(leave_balance_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
