"""Integration test fixtures: the ASGI app over an in-memory database."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from earnings_engine.api.app import create_app
from earnings_engine.models import Company, User


@dataclass
class SeededCompany:
    company_id: UUID
    hourly_user_id: UUID
    monthly_user_id: UUID


@pytest.fixture
def app(settings, session_factory) -> FastAPI:
    return create_app(settings=settings, session_factory=session_factory)


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


@pytest.fixture
async def seeded(session_factory) -> SeededCompany:
    """Commit an active company with one hourly and one salaried employee."""
    async with session_factory() as session, session.begin():
        company = Company(
            name="Acme",
            subscription_status="active",
            overtime_rate=Decimal("1.5"),
            working_days_per_month=22,
            default_expected_hours=Decimal("8.0"),
        )
        session.add(company)
        await session.flush()

        hourly = User(
            company_id=company.company_id,
            name="Hourly Employee",
            email="hourly@example.com",
            role="employee",
            hourly_rate=Decimal("100"),
            currency="BDT",
        )
        salaried = User(
            company_id=company.company_id,
            name="Salaried Employee",
            email="salaried@example.com",
            role="employee",
            salary_type="monthly",
            monthly_salary=Decimal("22000"),
            currency="BDT",
        )
        session.add_all([hourly, salaried])
        await session.flush()

        return SeededCompany(
            company_id=company.company_id,
            hourly_user_id=hourly.user_id,
            monthly_user_id=salaried.user_id,
        )
