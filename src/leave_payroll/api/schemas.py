"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Leave request schemas
# ============================================================================


class LeaveRequestCreate(BaseModel):
    """Schema for applying for leave."""

    employee_id: UUID
    leave_type_id: UUID
    start_date: date
    end_date: date
    reason: str | None = Field(default=None, max_length=1000)


class LeaveRequestUpdate(BaseModel):
    """Schema for editing a pending leave request."""

    leave_type_id: UUID
    start_date: date
    end_date: date
    reason: str | None = Field(default=None, max_length=1000)


class LeaveDecision(BaseModel):
    """Approve/reject payload."""

    comments: str | None = Field(default=None, max_length=1000)


class LeaveRequestResponse(BaseModel):
    """Schema for leave request response."""

    model_config = ConfigDict(from_attributes=True)

    leave_request_id: UUID
    employee_id: UUID
    leave_type_id: UUID
    start_date: date
    end_date: date
    total_days: Decimal
    status: str
    reason: str | None = None
    approver_id: str | None = None
    approved_date: datetime | None = None
    approver_comments: str | None = None
    created_at: datetime


# ============================================================================
# Leave balance schemas
# ============================================================================


class LeaveBalanceCreate(BaseModel):
    """Schema for creating a balance row manually."""

    employee_id: UUID
    leave_type_id: UUID
    year: int = Field(ge=1, le=9999)
    total_days: Decimal = Field(ge=0)
    used_days: Decimal = Field(default=Decimal("0"), ge=0)
    carried_forward_days: Decimal = Field(default=Decimal("0"), ge=0)


class LeaveBalanceUpdate(BaseModel):
    """Schema for editing a balance row."""

    total_days: Decimal = Field(ge=0)
    used_days: Decimal = Field(ge=0)
    carried_forward_days: Decimal = Field(default=Decimal("0"), ge=0)


class LeaveBalanceResponse(BaseModel):
    """Schema for leave balance response."""

    model_config = ConfigDict(from_attributes=True)

    leave_balance_id: UUID
    employee_id: UUID
    leave_type_id: UUID
    year: int
    total_days: Decimal
    used_days: Decimal
    remaining_days: Decimal
    carried_forward_days: Decimal
    last_updated: datetime | None = None


class BalanceSnapshotResponse(LeaveBalanceResponse):
    """Balance including pending reservations."""

    pending_days: Decimal
    available_days: Decimal


class InitializeBalancesRequest(BaseModel):
    """Schema for initializing a year's balances."""

    year: int = Field(ge=1, le=9999)


class InitializeBalancesResponse(BaseModel):
    """Number of balance rows created."""

    year: int
    created: int


# ============================================================================
# Calendar schemas
# ============================================================================


class WorkingDaysResponse(BaseModel):
    """Working-day breakdown for a date range."""

    model_config = ConfigDict(from_attributes=True)

    start_date: date
    end_date: date
    working_days: int
    weekend_days: int
    holiday_days: int
    total_calendar_days: int


class PublicHolidayResponse(BaseModel):
    """Schema for public holiday response."""

    model_config = ConfigDict(from_attributes=True)

    public_holiday_id: UUID
    name: str
    holiday_date: date
    description: str | None = None
    is_active: bool


# ============================================================================
# Payroll schemas
# ============================================================================


class PayrollProcessRequest(BaseModel):
    """Schema for processing a monthly payroll."""

    month: int
    year: int


class PayrollDetailResponse(BaseModel):
    """One pro-rated salary component line."""

    model_config = ConfigDict(from_attributes=True)

    payroll_detail_id: UUID
    salary_component_id: UUID
    amount: Decimal


class EmployeePayrollResponse(BaseModel):
    """One employee's pay within a run."""

    model_config = ConfigDict(from_attributes=True)

    employee_payroll_id: UUID
    payroll_run_id: UUID
    employee_id: UUID
    days_worked: int
    loss_of_pay_days: int
    basic_salary: Decimal
    total_earnings: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    payment_status: str
    details: list[PayrollDetailResponse] = []


class PayslipResponse(EmployeePayrollResponse):
    """Employee payroll with its period."""

    month: int
    year: int
    run_status: str


class PayrollRunResponse(BaseModel):
    """Schema for payroll run response."""

    model_config = ConfigDict(from_attributes=True)

    payroll_run_id: UUID
    month: int
    year: int
    status: str
    processed_date: datetime
    finalized_at: datetime | None = None
    total_payout: Decimal


class PayrollRunDetailResponse(PayrollRunResponse):
    """Payroll run with all employee payrolls."""

    employee_payrolls: list[EmployeePayrollResponse] = []


class SalarySummaryResponse(BaseModel):
    """Monthly totals of an employee's salary structure."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    total_earnings: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    components_count: int


# ============================================================================
# Common schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    code: str | None = None
