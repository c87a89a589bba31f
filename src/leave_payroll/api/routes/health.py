"""Health, readiness and liveness endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Response, status
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from leave_payroll.api.dependencies import DbSession
from leave_payroll.config import get_settings
from leave_payroll.models import LeaveRequest, PayrollRun
from leave_payroll.services.state_machine import LeaveRequestStatus, PayrollRunStatus

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Service status plus the open workload, when the database answers."""

    status: str
    timestamp: datetime
    database: str
    engine_version: str
    pending_leave_requests: int | None = None
    draft_payroll_runs: int | None = None


async def _open_workload(db: DbSession) -> tuple[int, int]:
    """Pending leave requests and draft payroll runs awaiting a decision."""
    pending = await db.scalar(
        select(func.count())
        .select_from(LeaveRequest)
        .where(LeaveRequest.status == LeaveRequestStatus.PENDING.value)
    )
    drafts = await db.scalar(
        select(func.count())
        .select_from(PayrollRun)
        .where(PayrollRun.status == PayrollRunStatus.DRAFT.value)
    )
    return pending, drafts


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
)
async def health_check(db: DbSession) -> HealthResponse:
    """Report database reachability and the open leave and payroll workload."""
    response = HealthResponse(
        status="degraded",
        timestamp=datetime.now(timezone.utc),
        database="unhealthy",
        engine_version=get_settings().engine_version,
    )
    try:
        pending, drafts = await _open_workload(db)
    except SQLAlchemyError:
        logger.warning("Database health check failed", exc_info=True)
        return response

    response.status = "healthy"
    response.database = "healthy"
    response.pending_leave_requests = pending
    response.draft_payroll_runs = drafts
    return response


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check(db: DbSession, response: Response) -> dict[str, str]:
    """Ready once the leave and payroll tables can be queried."""
    try:
        await _open_workload(db)
    except SQLAlchemyError:
        logger.warning("Readiness check failed", exc_info=True)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "not ready"}
    return {"status": "ready"}


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
