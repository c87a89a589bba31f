"""API routes."""

from leave_payroll.api.routes.calendar import router as calendar_router
from leave_payroll.api.routes.health import router as health_router
from leave_payroll.api.routes.leave_balances import router as leave_balances_router
from leave_payroll.api.routes.leaves import router as leaves_router
from leave_payroll.api.routes.payroll import router as payroll_router

__all__ = [
    "calendar_router",
    "health_router",
    "leave_balances_router",
    "leaves_router",
    "payroll_router",
]
