"""Time-tracking inputs: tasks, time logs, leave, attendance and penalties.

These tables are written by the surrounding application; the engine only
reads them (and materializes daily attendance).
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from earnings_engine.models.base import Base, TimestampMixin


# ===== Tasks =====


class Task(Base, TimestampMixin):
    """Trackable unit of work with an optional bundle rate."""

    __tablename__ = "task"

    task_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(14, 4), nullable=True)

    # Relationships
    sub_tasks: Mapped[list[SubTask]] = relationship(
        back_populates="task", cascade="all, delete-orphan"
    )


class SubTask(Base, TimestampMixin):
    """Billable sub-unit of a task, priced hourly or at a fixed price."""

    __tablename__ = "sub_task"

    sub_task_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    task_id: Mapped[UUID] = mapped_column(
        ForeignKey("task.task_id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String, nullable=False)
    billing_type: Mapped[str] = mapped_column(String, nullable=False, default="hourly")
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(14, 4), nullable=True)
    fixed_price: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "billing_type IN ('hourly', 'fixed_price')",
            name="sub_task_billing_type_check",
        ),
    )

    # Relationships
    task: Mapped[Task] = relationship(back_populates="sub_tasks")


# ===== Time logs =====


class TimeLog(Base, TimestampMixin):
    """Work interval. Open while both end_time and duration_seconds are NULL."""

    __tablename__ = "time_log"

    time_log_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("app_user.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    task_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("task.task_id", ondelete="SET NULL"),
        nullable=True,
    )
    start_time: Mapped[datetime] = mapped_column(nullable=False)
    end_time: Mapped[datetime | None] = mapped_column(nullable=True)
    duration_seconds: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Relationships
    task: Mapped[Task | None] = relationship()

    @property
    def is_open(self) -> bool:
        return self.duration_seconds is None and self.end_time is None


# ===== Leave =====


class LeaveRequest(Base, TimestampMixin):
    """Leave request; only approved paid/sick/half-day leave is paid."""

    __tablename__ = "leave_request"

    leave_request_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("app_user.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    leave_type: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    start_date: Mapped[datetime] = mapped_column(nullable=False)
    end_date: Mapped[datetime] = mapped_column(nullable=False)
    reason: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "leave_type IN ('paid', 'sick', 'half_day', 'unpaid')",
            name="leave_request_type_check",
        ),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'cancelled')",
            name="leave_request_status_check",
        ),
        CheckConstraint("end_date >= start_date", name="leave_request_dates_check"),
    )


# ===== Attendance =====


class DailyAttendance(Base, TimestampMixin):
    """Per-user per-day attendance rollup."""

    __tablename__ = "daily_attendance"

    daily_attendance_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("app_user.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    total_worked_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expected_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    overtime_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    earnings_today: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    tasks_summary: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(
        nullable=True, onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("user_id", "work_date", name="daily_attendance_user_date_unique"),
        CheckConstraint(
            "status IN ('present', 'partial', 'absent', 'on_leave', 'holiday')",
            name="daily_attendance_status_check",
        ),
    )


# ===== Penalties =====


class PenaltyEvent(Base):
    """Logged time deduction, in minutes, e.g. for sustained low activity."""

    __tablename__ = "penalty_event"

    penalty_event_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("app_user.user_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    task_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("task.task_id", ondelete="SET NULL"),
        nullable=True,
    )
    minutes: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    reason: Mapped[str | None] = mapped_column(String, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
