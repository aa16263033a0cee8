"""Events raised by operations that change what a user has earned.

The surrounding application publishes these from leave decisions, activity
and screenshot ingestion, and task edits. They carry only the identifiers
needed to decide what to invalidate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from earnings_engine.clock import utcnow


@dataclass(frozen=True)
class EarningsEvent:
    """Base class for earnings-affecting events."""

    occurred_at: datetime = field(default_factory=utcnow, kw_only=True)

    @property
    def event_type(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class LeaveStatusChanged(EarningsEvent):
    """A leave request was approved, rejected or cancelled."""

    user_id: UUID
    leave_request_id: UUID | None = None
    status: str | None = None


@dataclass(frozen=True)
class ActivityIngested(EarningsEvent):
    """Screenshots or activity samples were recorded for a user."""

    user_id: UUID


@dataclass(frozen=True)
class TaskRateChanged(EarningsEvent):
    """A task's rate or tracking parameters were edited."""

    task_id: UUID
