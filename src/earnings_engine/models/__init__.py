"""ORM models for the earnings engine."""

from earnings_engine.models.base import Base, TimestampMixin
from earnings_engine.models.company import Company, User
from earnings_engine.models.payroll import Invoice, PayPeriod
from earnings_engine.models.tracking import (
    DailyAttendance,
    LeaveRequest,
    PenaltyEvent,
    SubTask,
    Task,
    TimeLog,
)
from earnings_engine.models.wallet import Wallet, WalletTransaction

__all__ = [
    "Base",
    "TimestampMixin",
    "Company",
    "User",
    "Task",
    "SubTask",
    "TimeLog",
    "LeaveRequest",
    "DailyAttendance",
    "PenaltyEvent",
    "PayPeriod",
    "Invoice",
    "Wallet",
    "WalletTransaction",
]
