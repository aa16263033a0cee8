"""Pay period service - monthly closing and invoice materialization."""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from earnings_engine.calculators.cache import CachedEarningsCalculator
from earnings_engine.calculators.period_math import month_bounds, round_money
from earnings_engine.calculators.types import EarningsBreakdown
from earnings_engine.clock import Clock, utcnow
from earnings_engine.config import Settings, get_settings
from earnings_engine.database import dialect_insert
from earnings_engine.exceptions import InvoiceNotFoundError, PayPeriodNotFoundError
from earnings_engine.models import Invoice, PayPeriod, User
from earnings_engine.services.queries import list_eligible_employees
from earnings_engine.services.state_machine import (
    InvalidTransitionError,
    InvoiceStatus,
    PayPeriodStateMachine,
    PayPeriodStatus,
)

logger = logging.getLogger(__name__)


class PayPeriodService:
    """Service for the pay period / invoice lifecycle.

    Operations:
    - ensure_pay_period: Idempotent get-or-create of a company's month
    - generate_invoices: Calculate every eligible employee and upsert invoices
    - lock_pay_period: open → locked
    - approve_invoice: draft → approved
    - get_current_period_start: Where a user's unpaid earnings window begins

    Settlement (→ paid) lives in SettlementService.
    """

    def __init__(
        self,
        session: AsyncSession,
        earnings: CachedEarningsCalculator,
        settings: Settings | None = None,
        clock: Clock = utcnow,
    ):
        self.session = session
        self.earnings = earnings
        self.settings = settings or get_settings()
        self.clock = clock

    async def get_pay_period(self, pay_period_id: UUID) -> PayPeriod:
        pay_period = await self.session.get(PayPeriod, pay_period_id)
        if pay_period is None:
            raise PayPeriodNotFoundError(pay_period_id)
        return pay_period

    async def ensure_pay_period(self, company_id: UUID, year: int, month: int) -> PayPeriod:
        """Get or create the pay period covering a calendar month."""
        start_date, end_date = month_bounds(year, month)

        # Insert-if-absent keeps one period per (company, start_date) under races
        stmt = (
            dialect_insert(self.session, PayPeriod)
            .values(
                pay_period_id=uuid4(),
                company_id=company_id,
                start_date=start_date,
                end_date=end_date,
                status=PayPeriodStatus.OPEN.value,
                total_amount=Decimal("0"),
                currency=self.settings.default_currency,
            )
            .on_conflict_do_nothing(index_elements=["company_id", "start_date"])
        )
        await self.session.execute(stmt)

        result = await self.session.execute(
            select(PayPeriod).where(
                PayPeriod.company_id == company_id,
                PayPeriod.start_date == start_date,
            )
        )
        return result.scalar_one()

    async def generate_invoices(self, pay_period_id: UUID) -> list[Invoice]:
        """Materialize one invoice per eligible employee for a pay period.

        Employees with no worked hours and no paid leave get no invoice.
        Per-employee failures are logged and skipped. The period total is
        recomputed from the resulting invoices.

        Callers must not call this against a locked period.

        Raises:
            PayPeriodNotFoundError: If the period does not exist
            InvalidTransitionError: If the period is already paid
        """
        pay_period = await self.get_pay_period(pay_period_id)
        if not PayPeriodStateMachine.can_generate_invoices(pay_period.status):
            raise InvalidTransitionError(
                pay_period.status,
                InvoiceStatus.DRAFT,
                "Cannot generate invoices for a paid pay period",
            )

        employees = await list_eligible_employees(self.session, pay_period.company_id)
        invoices: list[Invoice] = []

        for employee in employees:
            try:
                breakdown = await self.earnings.recalculate(
                    employee.user_id, pay_period.start_date, pay_period.end_date
                )
                if breakdown.worked_hours == 0 and breakdown.paid_leave_days == 0:
                    continue

                async with self.session.begin_nested():
                    invoice = await self._upsert_invoice(pay_period, employee, breakdown)
                invoices.append(invoice)
            except Exception:
                logger.exception(
                    "Failed to generate invoice for user %s in pay period %s",
                    employee.user_id,
                    pay_period_id,
                )

        pay_period.total_amount = round_money(
            sum((inv.net_amount for inv in invoices), Decimal("0"))
        )
        await self.session.flush()

        logger.info(
            "Generated %d invoice(s) for pay period %s (total %s)",
            len(invoices),
            pay_period_id,
            pay_period.total_amount,
        )
        return invoices

    async def lock_pay_period(self, pay_period_id: UUID) -> PayPeriod:
        """Lock a pay period against further invoice changes."""
        pay_period = await self.get_pay_period(pay_period_id)
        PayPeriodStateMachine.validate_transition(
            pay_period.status,
            PayPeriodStatus.LOCKED,
            "Only an open pay period can be locked",
        )
        pay_period.status = PayPeriodStatus.LOCKED.value
        await self.session.flush()
        return pay_period

    async def approve_invoice(self, invoice_id: UUID) -> Invoice:
        """Approve a draft invoice."""
        invoice = await self.session.get(Invoice, invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)

        if invoice.status != InvoiceStatus.DRAFT.value:
            raise InvalidTransitionError(
                invoice.status,
                InvoiceStatus.APPROVED,
                "Invoice must be in draft status to approve",
            )

        invoice.status = InvoiceStatus.APPROVED.value
        invoice.approved_at = self.clock()
        await self.session.flush()
        return invoice

    async def get_current_period_start(
        self, user_id: UUID, today: datetime | None = None
    ) -> datetime:
        """Start of the user's unpaid window.

        The day after the company's most recently paid period ends, else the
        first of the current month.
        """
        user = await self.session.get(User, user_id)
        if user is not None and user.company_id is not None:
            result = await self.session.execute(
                select(PayPeriod.end_date)
                .where(
                    PayPeriod.company_id == user.company_id,
                    PayPeriod.status == PayPeriodStatus.PAID.value,
                )
                .order_by(PayPeriod.end_date.desc())
                .limit(1)
            )
            last_paid_end = result.scalar_one_or_none()
            if last_paid_end is not None:
                return datetime.combine(last_paid_end.date() + timedelta(days=1), time.min)

        now = today or self.clock()
        return datetime(now.year, now.month, 1)

    async def list_invoices(self, pay_period_id: UUID) -> list[Invoice]:
        result = await self.session.execute(
            select(Invoice)
            .where(Invoice.pay_period_id == pay_period_id)
            .order_by(Invoice.created_at, Invoice.invoice_id)
        )
        return list(result.scalars().all())

    async def _upsert_invoice(
        self,
        pay_period: PayPeriod,
        employee: User,
        breakdown: EarningsBreakdown,
    ) -> Invoice:
        """Insert or refresh the (period, user) invoice back to draft.

        Paid invoices are left untouched.
        """
        values = self._invoice_values(breakdown)
        stmt = (
            dialect_insert(self.session, Invoice)
            .values(
                invoice_id=uuid4(),
                pay_period_id=pay_period.pay_period_id,
                user_id=employee.user_id,
                company_id=pay_period.company_id,
                **values,
            )
            .on_conflict_do_update(
                index_elements=["pay_period_id", "user_id"],
                set_={**values, "approved_at": None},
                where=Invoice.status != InvoiceStatus.PAID.value,
            )
        )
        await self.session.execute(stmt)

        result = await self.session.execute(
            select(Invoice)
            .where(
                Invoice.pay_period_id == pay_period.pay_period_id,
                Invoice.user_id == employee.user_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    @staticmethod
    def _invoice_values(breakdown: EarningsBreakdown) -> dict[str, Any]:
        return {
            "status": InvoiceStatus.DRAFT.value,
            "currency": breakdown.currency,
            "total_hours": breakdown.worked_hours,
            "hourly_rate": breakdown.hourly_rate,
            "worked_amount": breakdown.worked_amount,
            "paid_leave_days": breakdown.paid_leave_days,
            "leave_hours": breakdown.leave_hours,
            "leave_pay": breakdown.leave_pay,
            "overtime_hours": breakdown.overtime_hours,
            "overtime_pay": breakdown.overtime_pay,
            "overtime_rate": breakdown.overtime_rate,
            "penalty_hours": breakdown.penalty_hours,
            "salary_type": breakdown.salary_type.value,
            "monthly_salary": breakdown.monthly_salary,
            "worked_days": breakdown.worked_days,
            "total_working_days": breakdown.total_working_days,
            "gross_amount": breakdown.gross_amount,
            "deductions": breakdown.penalty_amount,
            "net_amount": breakdown.net_amount,
        }
