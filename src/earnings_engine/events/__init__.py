"""Earnings-affecting events and their in-process bus."""

from earnings_engine.events.emitter import EarningsEventBus
from earnings_engine.events.types import (
    ActivityIngested,
    EarningsEvent,
    LeaveStatusChanged,
    TaskRateChanged,
)

__all__ = [
    "EarningsEventBus",
    "EarningsEvent",
    "LeaveStatusChanged",
    "ActivityIngested",
    "TaskRateChanged",
]
