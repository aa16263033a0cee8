"""Earnings engine services."""

from earnings_engine.services.attendance_service import AttendanceService
from earnings_engine.services.pay_period_service import PayPeriodService
from earnings_engine.services.scheduler import JobResult, PayrollScheduler
from earnings_engine.services.settlement_service import PaymentResult, SettlementService
from earnings_engine.services.state_machine import (
    InvalidTransitionError,
    InvoiceStateMachine,
    InvoiceStatus,
    PayPeriodStateMachine,
    PayPeriodStatus,
)

__all__ = [
    "AttendanceService",
    "PayPeriodService",
    "PayrollScheduler",
    "JobResult",
    "SettlementService",
    "PaymentResult",
    "InvalidTransitionError",
    "InvoiceStateMachine",
    "InvoiceStatus",
    "PayPeriodStateMachine",
    "PayPeriodStatus",
]
