"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from leave_payroll import __version__
from leave_payroll.api.routes import (
    calendar_router,
    health_router,
    leave_balances_router,
    leaves_router,
    payroll_router,
)
from leave_payroll.database import dispose_db, init_db
from leave_payroll.errors import (
    AlreadyFinalizedError,
    CannotDeleteFinalizedError,
    ConcurrencyConflictError,
    InsufficientBalanceError,
    InvalidStateError,
    LeavePayrollError,
    NotFoundError,
    OverlapError,
)

logger = logging.getLogger(__name__)

# Anything not listed is a validation failure (400)
ERROR_STATUS: dict[type[LeavePayrollError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    OverlapError: status.HTTP_409_CONFLICT,
    AlreadyFinalizedError: status.HTTP_409_CONFLICT,
    CannotDeleteFinalizedError: status.HTTP_409_CONFLICT,
    InsufficientBalanceError: status.HTTP_409_CONFLICT,
    InvalidStateError: status.HTTP_409_CONFLICT,
    ConcurrencyConflictError: status.HTTP_409_CONFLICT,
}


def status_for(exc: LeavePayrollError) -> int:
    """HTTP status for a domain error, honouring subclasses."""
    for error_type, code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_400_BAD_REQUEST


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    init_db()
    yield
    # Shutdown
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Leave & Payroll Engine API",
        description="Leave balances, leave workflow and monthly payroll settlement",
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(LeavePayrollError)
    async def domain_exception_handler(
        request: Request, exc: LeavePayrollError
    ) -> JSONResponse:
        """Map domain errors to their HTTP status."""
        return JSONResponse(
            status_code=status_for(exc),
            content={"detail": exc.message, "code": exc.code},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Report malformed requests as 400."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": str(exc.errors()), "code": "VALIDATION_ERROR"},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(leaves_router, prefix="/api/v1")
    app.include_router(leave_balances_router, prefix="/api/v1")
    app.include_router(payroll_router, prefix="/api/v1")
    app.include_router(calendar_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
