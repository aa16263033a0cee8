"""Background payroll and attendance jobs.

Monthly pass (1st of the month, or on startup within the first two days):
    for each active company:
        ensure last month's period; generate invoices if still open
        ensure this month's period

Daily pass (around 00:30, and once on startup):
    for each active company: roll up yesterday's attendance

Each pass is guarded against overlapping runs; a trigger that arrives while
the same pass is running is dropped.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field
from datetime import timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from earnings_engine.calculators.cache import CachedEarningsCalculator, EarningsCache
from earnings_engine.calculators.data_source import SqlAlchemyEarningsDataSource
from earnings_engine.calculators.engine import EarningsCalculator
from earnings_engine.calculators.period_math import previous_month
from earnings_engine.clock import Clock, utcnow
from earnings_engine.config import Settings, get_settings
from earnings_engine.services.attendance_service import AttendanceService
from earnings_engine.services.pay_period_service import PayPeriodService
from earnings_engine.services.queries import list_active_companies
from earnings_engine.services.state_machine import PayPeriodStatus

logger = logging.getLogger(__name__)

MONTHLY_CHECK_SECONDS = 24 * 60 * 60
ATTENDANCE_CHECK_SECONDS = 60 * 60


@dataclass
class JobResult:
    """Outcome of one scheduler pass."""

    skipped: bool = False
    processed: list[UUID] = field(default_factory=list)
    failed: list[UUID] = field(default_factory=list)


class PayrollScheduler:
    """Runs the monthly payroll and daily attendance passes."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: EarningsCache,
        settings: Settings | None = None,
        clock: Clock = utcnow,
        monthly_check_seconds: float = MONTHLY_CHECK_SECONDS,
        attendance_check_seconds: float = ATTENDANCE_CHECK_SECONDS,
    ):
        self.session_factory = session_factory
        self.cache = cache
        self.settings = settings or get_settings()
        self.clock = clock
        self.monthly_check_seconds = monthly_check_seconds
        self.attendance_check_seconds = attendance_check_seconds

        self._monthly_lock = asyncio.Lock()
        self._attendance_lock = asyncio.Lock()
        self._timers: list[asyncio.Task[None]] = []
        self._runs: set[asyncio.Task[JobResult]] = set()

    def _earnings_for(self, session: AsyncSession) -> CachedEarningsCalculator:
        calculator = EarningsCalculator(
            SqlAlchemyEarningsDataSource(session),
            settings=self.settings,
            clock=self.clock,
        )
        return CachedEarningsCalculator(calculator, self.cache)

    async def _active_companies(self) -> list[UUID]:
        async with self.session_factory() as session:
            return await list_active_companies(session)

    async def run_monthly_payroll(self) -> JobResult:
        """Close last month and open this month for every active company."""
        if self._monthly_lock.locked():
            logger.warning("Monthly payroll already running, skipping")
            return JobResult(skipped=True)

        async with self._monthly_lock:
            now = self.clock()
            prev_year, prev_month = previous_month(now.year, now.month)
            logger.info("Running monthly payroll for %d-%02d", prev_year, prev_month)

            result = JobResult()
            for company_id in await self._active_companies():
                try:
                    async with self.session_factory() as session, session.begin():
                        service = PayPeriodService(
                            session,
                            self._earnings_for(session),
                            settings=self.settings,
                            clock=self.clock,
                        )
                        prev_period = await service.ensure_pay_period(
                            company_id, prev_year, prev_month
                        )
                        if prev_period.status == PayPeriodStatus.OPEN.value:
                            await service.generate_invoices(prev_period.pay_period_id)
                            logger.info(
                                "Generated invoices for company %s, period %d-%02d",
                                company_id,
                                prev_year,
                                prev_month,
                            )
                        await service.ensure_pay_period(company_id, now.year, now.month)
                    result.processed.append(company_id)
                except Exception:
                    logger.exception("Monthly payroll failed for company %s", company_id)
                    result.failed.append(company_id)

            logger.info(
                "Monthly payroll complete: %d processed, %d failed",
                len(result.processed),
                len(result.failed),
            )
            return result

    async def run_daily_attendance(self) -> JobResult:
        """Roll up yesterday's attendance for every active company."""
        if self._attendance_lock.locked():
            logger.warning("Daily attendance already running, skipping")
            return JobResult(skipped=True)

        async with self._attendance_lock:
            yesterday = (self.clock() - timedelta(days=1)).date()
            logger.info("Generating attendance for %s", yesterday.isoformat())

            result = JobResult()
            for company_id in await self._active_companies():
                try:
                    async with self.session_factory() as session, session.begin():
                        service = AttendanceService(
                            session, settings=self.settings, clock=self.clock
                        )
                        await service.generate_daily_attendance(company_id, yesterday)
                    result.processed.append(company_id)
                except Exception:
                    logger.exception("Daily attendance failed for company %s", company_id)
                    result.failed.append(company_id)

            logger.info(
                "Daily attendance complete: %d processed, %d failed",
                len(result.processed),
                len(result.failed),
            )
            return result

    def start(self) -> None:
        """Start the periodic checks on the running event loop."""
        if self._timers:
            return

        if self.clock().day <= 2:
            self._trigger(self.run_monthly_payroll())
        self._trigger(self.run_daily_attendance())

        loop = asyncio.get_running_loop()
        self._timers = [
            loop.create_task(self._monthly_timer()),
            loop.create_task(self._attendance_timer()),
        ]
        logger.info("Payroll scheduler started")

    async def stop(self) -> None:
        """Cancel the periodic checks and any pass still in flight."""
        tasks = [*self._timers, *self._runs]
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._timers = []
        self._runs.clear()
        logger.info("Payroll scheduler stopped")

    @property
    def running(self) -> bool:
        return bool(self._timers)

    def _trigger(self, job: Awaitable[JobResult]) -> None:
        task = asyncio.ensure_future(self._guarded(job))
        self._runs.add(task)
        task.add_done_callback(self._runs.discard)

    @staticmethod
    async def _guarded(job: Awaitable[JobResult]) -> JobResult:
        try:
            return await job
        except Exception:
            logger.exception("Scheduled job failed")
            return JobResult()

    async def _monthly_timer(self) -> None:
        while True:
            await asyncio.sleep(self.monthly_check_seconds)
            if self.clock().day == 1:
                self._trigger(self.run_monthly_payroll())

    async def _attendance_timer(self) -> None:
        while True:
            await asyncio.sleep(self.attendance_check_seconds)
            now = self.clock()
            if now.hour == 0 and 25 <= now.minute <= 35:
                self._trigger(self.run_daily_attendance())
