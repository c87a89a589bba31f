"""Leave request API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Response, status

from leave_payroll.api.dependencies import ActorId, DbSession
from leave_payroll.api.schemas import (
    ErrorResponse,
    LeaveDecision,
    LeaveRequestCreate,
    LeaveRequestResponse,
    LeaveRequestUpdate,
)
from leave_payroll.services.leave_service import LeaveRequestChanges, LeaveService

router = APIRouter(prefix="/leaves", tags=["leaves"])


@router.post(
    "",
    response_model=LeaveRequestResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def apply_leave(
    db: DbSession,
    payload: LeaveRequestCreate,
) -> LeaveRequestResponse:
    """Apply for leave. The request is stored as pending."""
    service = LeaveService(db)
    leave = await service.apply_leave(
        employee_id=payload.employee_id,
        leave_type_id=payload.leave_type_id,
        start_date=payload.start_date,
        end_date=payload.end_date,
        reason=payload.reason,
    )
    await db.commit()
    service.flush_events()
    return LeaveRequestResponse.model_validate(leave)


@router.get("", response_model=list[LeaveRequestResponse])
async def list_leaves(
    db: DbSession,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    employee_id: UUID | None = None,
) -> list[LeaveRequestResponse]:
    """List leave requests, newest first."""
    leaves = await LeaveService(db).list_leaves(status=status_filter, employee_id=employee_id)
    return [LeaveRequestResponse.model_validate(leave) for leave in leaves]


@router.get(
    "/{leave_request_id}",
    response_model=LeaveRequestResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_leave(
    db: DbSession,
    leave_request_id: Annotated[UUID, Path()],
) -> LeaveRequestResponse:
    """Get a leave request by ID."""
    leave = await LeaveService(db).get_leave(leave_request_id)
    return LeaveRequestResponse.model_validate(leave)


@router.put(
    "/{leave_request_id}",
    response_model=LeaveRequestResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
async def update_leave(
    db: DbSession,
    leave_request_id: Annotated[UUID, Path()],
    payload: LeaveRequestUpdate,
) -> LeaveRequestResponse:
    """Edit a pending leave request."""
    service = LeaveService(db)
    leave = await service.update_leave(
        leave_request_id,
        LeaveRequestChanges(
            leave_type_id=payload.leave_type_id,
            start_date=payload.start_date,
            end_date=payload.end_date,
            reason=payload.reason,
        ),
    )
    await db.commit()
    return LeaveRequestResponse.model_validate(leave)


@router.post(
    "/{leave_request_id}/approve",
    response_model=LeaveRequestResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def approve_leave(
    db: DbSession,
    approver_id: ActorId,
    leave_request_id: Annotated[UUID, Path()],
    payload: LeaveDecision | None = None,
) -> LeaveRequestResponse:
    """Approve a pending request and consume its days."""
    service = LeaveService(db)
    leave = await service.approve_leave(
        leave_request_id, approver_id, payload.comments if payload else None
    )
    await db.commit()
    service.flush_events()
    return LeaveRequestResponse.model_validate(leave)


@router.post(
    "/{leave_request_id}/reject",
    response_model=LeaveRequestResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def reject_leave(
    db: DbSession,
    approver_id: ActorId,
    leave_request_id: Annotated[UUID, Path()],
    payload: LeaveDecision | None = None,
) -> LeaveRequestResponse:
    """Reject a pending request."""
    service = LeaveService(db)
    leave = await service.reject_leave(
        leave_request_id, approver_id, payload.comments if payload else None
    )
    await db.commit()
    service.flush_events()
    return LeaveRequestResponse.model_validate(leave)


@router.delete(
    "/{leave_request_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_leave(
    db: DbSession,
    leave_request_id: Annotated[UUID, Path()],
) -> Response:
    """Delete a pending or rejected request."""
    await LeaveService(db).delete_leave(leave_request_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
