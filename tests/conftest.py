"""Pytest fixtures for earnings engine tests."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import datetime
from decimal import Decimal
from typing import AsyncGenerator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from earnings_engine.calculators.types import (
    AttendanceRecord,
    CompanyPayPolicy,
    LeaveRecord,
    LeaveType,
    PayProfile,
    PenaltyRecord,
    SalaryType,
    TaskRate,
    WorkInterval,
)
from earnings_engine.config import Settings
from earnings_engine.database import enable_sqlite_savepoints, make_session_factory
from earnings_engine.models import Base, Company, User

# In-memory SQLite shared across sessions of one test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

FIXED_NOW = datetime(2026, 2, 15, 12, 0, 0)


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults and the scheduler disabled."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        host="127.0.0.1",
        port=8000,
        debug=False,
        default_currency="BDT",
        default_overtime_multiplier=Decimal("1.5"),
        default_working_days_per_month=22,
        default_expected_hours=Decimal("8.0"),
        earnings_cache_ttl_seconds=300.0,
        earnings_cache_active_ttl_seconds=30.0,
        earnings_cache_max_entries=200,
        earnings_cache_sweep_seconds=120.0,
        scheduler_enabled=False,
    )


@pytest.fixture
async def engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def company(session: AsyncSession) -> Company:
    """Create an active company with default pay policy."""
    company = Company(
        company_id=uuid4(),
        name="Test Company",
        subscription_status="active",
        overtime_rate=Decimal("1.5"),
        working_days_per_month=22,
        default_expected_hours=Decimal("8.0"),
    )
    session.add(company)
    await session.flush()
    return company


@pytest.fixture
async def hourly_user(session: AsyncSession, company: Company) -> User:
    """Create an hourly employee at 100/hr."""
    user = User(
        user_id=uuid4(),
        company_id=company.company_id,
        name="Hourly Employee",
        email="hourly@example.com",
        role="employee",
        hourly_rate=Decimal("100"),
        salary_type="hourly",
        currency="BDT",
    )
    session.add(user)
    await session.flush()
    return user


@pytest.fixture
async def monthly_user(session: AsyncSession, company: Company) -> User:
    """Create a monthly-salaried employee at 22000/month."""
    user = User(
        user_id=uuid4(),
        company_id=company.company_id,
        name="Salaried Employee",
        email="salaried@example.com",
        role="employee",
        salary_type="monthly",
        monthly_salary=Decimal("22000"),
        currency="BDT",
    )
    session.add(user)
    await session.flush()
    return user


class FakeDataSource:
    """In-memory EarningsDataSource that counts every call."""

    def __init__(self) -> None:
        self.profiles: dict[UUID, PayProfile] = {}
        self.policies: dict[UUID, CompanyPayPolicy] = {}
        self.intervals: list[WorkInterval] = []
        self.leaves: list[LeaveRecord] = []
        self.attendance: list[AttendanceRecord] = []
        self.penalties: list[PenaltyRecord] = []
        self.tasks: dict[UUID, TaskRate] = {}
        self.calls: Counter[str] = Counter()

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    def add_user(
        self,
        company_id: UUID | None = None,
        hourly_rate: Decimal | None = None,
        salary_type: SalaryType = SalaryType.HOURLY,
        monthly_salary: Decimal | None = None,
        expected_hours_per_day: Decimal | None = None,
        currency: str | None = "BDT",
    ) -> PayProfile:
        profile = PayProfile(
            user_id=uuid4(),
            company_id=company_id,
            hourly_rate=hourly_rate,
            salary_type=salary_type,
            monthly_salary=monthly_salary,
            expected_hours_per_day=expected_hours_per_day,
            currency=currency,
        )
        self.profiles[profile.user_id] = profile
        return profile

    async def find_work_intervals(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> Sequence[WorkInterval]:
        self.calls["find_work_intervals"] += 1
        return [
            iv
            for iv in self.intervals
            if iv.user_id == user_id
            and start <= iv.start_time <= end
            and (iv.is_resolved or iv.is_open)
        ]

    async def find_approved_leaves(
        self,
        user_id: UUID,
        start: datetime,
        end: datetime,
        types: Iterable[LeaveType],
    ) -> Sequence[LeaveRecord]:
        self.calls["find_approved_leaves"] += 1
        wanted = set(types)
        return [
            leave
            for leave in self.leaves
            if leave.user_id == user_id
            and leave.leave_type in wanted
            and leave.start_date <= end
            and leave.end_date >= start
        ]

    async def find_attendance(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> Sequence[AttendanceRecord]:
        self.calls["find_attendance"] += 1
        return [
            row
            for row in self.attendance
            if row.user_id == user_id and start.date() <= row.work_date <= end.date()
        ]

    async def find_penalty_events(
        self, user_id: UUID, start: datetime, end: datetime
    ) -> Sequence[PenaltyRecord]:
        self.calls["find_penalty_events"] += 1
        return [
            p
            for p in self.penalties
            if p.user_id == user_id and start <= p.occurred_at <= end
        ]

    async def get_pay_profile(self, user_id: UUID) -> PayProfile | None:
        self.calls["get_pay_profile"] += 1
        return self.profiles.get(user_id)

    async def get_company_pay_policy(self, company_id: UUID) -> CompanyPayPolicy | None:
        self.calls["get_company_pay_policy"] += 1
        return self.policies.get(company_id)

    async def find_tasks(self, task_ids: Iterable[UUID]) -> Sequence[TaskRate]:
        self.calls["find_tasks"] += 1
        return [self.tasks[t] for t in task_ids if t in self.tasks]


@pytest.fixture
def data_source() -> FakeDataSource:
    return FakeDataSource()
