"""Pay period and invoice models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from earnings_engine.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from earnings_engine.models.company import Company, User


class PayPeriod(Base, TimestampMixin):
    """One calendar month of payroll for one company."""

    __tablename__ = "pay_period"

    pay_period_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    start_date: Mapped[datetime] = mapped_column(nullable=False)
    end_date: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="open")
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="BDT")
    closed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        UniqueConstraint("company_id", "start_date", name="pay_period_company_start_unique"),
        CheckConstraint(
            "status IN ('open', 'locked', 'paid')",
            name="pay_period_status_check",
        ),
        CheckConstraint("end_date >= start_date", name="pay_period_dates_check"),
    )

    # Relationships
    company: Mapped[Company] = relationship()
    invoices: Mapped[list[Invoice]] = relationship(back_populates="pay_period")


class Invoice(Base, TimestampMixin):
    """One employee's computed pay for one pay period."""

    __tablename__ = "invoice"

    invoice_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    pay_period_id: Mapped[UUID] = mapped_column(
        ForeignKey("pay_period.pay_period_id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("app_user.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="BDT")

    # Breakdown projection
    total_hours: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    worked_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    paid_leave_days: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    leave_hours: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    leave_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    overtime_hours: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    overtime_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    overtime_rate: Mapped[Decimal] = mapped_column(Numeric(6, 3), nullable=False)
    penalty_hours: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    salary_type: Mapped[str] = mapped_column(String, nullable=False)
    monthly_salary: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    worked_days: Mapped[int] = mapped_column(Integer, nullable=False)
    total_working_days: Mapped[int] = mapped_column(Integer, nullable=False)
    gross_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    deductions: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    net_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)

    __table_args__ = (
        UniqueConstraint("pay_period_id", "user_id", name="invoice_period_user_unique"),
        CheckConstraint(
            "status IN ('draft', 'approved', 'paid')",
            name="invoice_status_check",
        ),
        CheckConstraint("net_amount >= 0", name="invoice_net_non_negative"),
    )

    # Relationships
    pay_period: Mapped[PayPeriod] = relationship(back_populates="invoices")
    user: Mapped[User] = relationship()
