"""Pydantic schemas for API request/response models."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from earnings_engine.calculators.types import DiagnosticReason, SalaryType


# ============================================================================
# Earnings schemas
# ============================================================================


class EarningsDiagnosticResponse(BaseModel):
    """Why a breakdown came out at zero."""

    model_config = ConfigDict(from_attributes=True)

    reason: DiagnosticReason
    hourly_rate: Decimal
    monthly_salary: Decimal
    salary_type: SalaryType
    completed_interval_count: int
    open_interval_count: int


class EarningsBreakdownResponse(BaseModel):
    """Schema for an earnings breakdown."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    period_start: datetime
    period_end: datetime
    worked_hours: Decimal
    worked_amount: Decimal
    worked_days: int
    paid_leave_days: Decimal
    leave_hours: Decimal
    leave_pay: Decimal
    overtime_hours: Decimal
    overtime_pay: Decimal
    overtime_rate: Decimal
    penalty_hours: Decimal
    penalty_amount: Decimal
    salary_type: SalaryType
    hourly_rate: Decimal
    monthly_salary: Decimal
    daily_rate: Decimal
    total_working_days: int
    expected_hours_per_day: Decimal
    gross_amount: Decimal
    net_amount: Decimal
    currency: str
    virtual_hourly_rate: Decimal | None = None
    market_value: Decimal | None = None
    actual_cost: Decimal | None = None
    savings: Decimal | None = None
    diagnostic: EarningsDiagnosticResponse | None = None


class EmployeeEarningsResponse(BaseModel):
    """One employee's current-period earnings in a company listing."""

    user_id: UUID
    name: str | None = None
    email: str
    earnings: EarningsBreakdownResponse


class CompanyEarningsResponse(BaseModel):
    """Schema for company-wide current earnings."""

    company_id: UUID
    employees: list[EmployeeEarningsResponse]
    total_net_amount: Decimal


class CacheInvalidateRequest(BaseModel):
    """Drop one user's cached breakdowns, or all of them."""

    user_id: UUID | None = None


class CacheInvalidateResponse(BaseModel):
    removed: int


class EarningsEventRequest(BaseModel):
    """A mutation elsewhere in the system that affects earnings."""

    type: Literal["leave_status_changed", "activity_ingested", "task_rate_changed"]
    user_id: UUID | None = None
    task_id: UUID | None = None
    leave_request_id: UUID | None = None
    status: str | None = None


class EarningsEventResponse(BaseModel):
    event_type: str
    handler_errors: int


# ============================================================================
# Pay period / invoice schemas
# ============================================================================


class PayPeriodCreate(BaseModel):
    """Schema for ensuring a company's monthly pay period."""

    company_id: UUID
    year: int = Field(ge=2000, le=9999)
    month: int = Field(ge=1, le=12)


class PayPeriodResponse(BaseModel):
    """Schema for pay period response."""

    model_config = ConfigDict(from_attributes=True)

    pay_period_id: UUID
    company_id: UUID
    start_date: datetime
    end_date: datetime
    status: str
    total_amount: Decimal
    currency: str
    closed_at: datetime | None = None


class InvoiceResponse(BaseModel):
    """Schema for invoice response."""

    model_config = ConfigDict(from_attributes=True)

    invoice_id: UUID
    pay_period_id: UUID
    user_id: UUID
    company_id: UUID
    status: str
    currency: str
    total_hours: Decimal
    hourly_rate: Decimal
    worked_amount: Decimal
    paid_leave_days: Decimal
    leave_hours: Decimal
    leave_pay: Decimal
    overtime_hours: Decimal
    overtime_pay: Decimal
    overtime_rate: Decimal
    penalty_hours: Decimal
    salary_type: str
    monthly_salary: Decimal
    worked_days: int
    total_working_days: int
    gross_amount: Decimal
    deductions: Decimal
    net_amount: Decimal
    approved_at: datetime | None = None
    paid_at: datetime | None = None


class InvoiceListResponse(BaseModel):
    """Schema for the invoices generated for a period."""

    pay_period: PayPeriodResponse
    items: list[InvoiceResponse]


class PaymentResultResponse(BaseModel):
    """Schema for the outcome of paying one invoice."""

    model_config = ConfigDict(from_attributes=True)

    invoice_id: UUID
    user_id: UUID
    success: bool
    credited: Decimal | None = None
    error: str | None = None


class PayAllResponse(BaseModel):
    """Schema for paying out a whole period."""

    pay_period: PayPeriodResponse
    results: list[PaymentResultResponse]


# ============================================================================
# Scheduled job schemas
# ============================================================================


class JobResultResponse(BaseModel):
    """Schema for a manually triggered scheduler pass."""

    model_config = ConfigDict(from_attributes=True)

    skipped: bool
    processed: list[UUID]
    failed: list[UUID]


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
