"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from earnings_engine.calculators.cache import CachedEarningsCalculator, EarningsCache
from earnings_engine.calculators.data_source import SqlAlchemyEarningsDataSource
from earnings_engine.calculators.engine import EarningsCalculator
from earnings_engine.config import Settings
from earnings_engine.events.emitter import EarningsEventBus
from earnings_engine.services.pay_period_service import PayPeriodService
from earnings_engine.services.scheduler import PayrollScheduler
from earnings_engine.services.settlement_service import SettlementService


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with request.app.state.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_cache(request: Request) -> EarningsCache:
    return request.app.state.cache


def get_event_bus(request: Request) -> EarningsEventBus:
    return request.app.state.event_bus


def get_scheduler(request: Request) -> PayrollScheduler:
    return request.app.state.scheduler


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_settings_dep)]
Cache = Annotated[EarningsCache, Depends(get_cache)]
EventBus = Annotated[EarningsEventBus, Depends(get_event_bus)]
Scheduler = Annotated[PayrollScheduler, Depends(get_scheduler)]


def get_earnings(db: DbSession, settings: AppSettings, cache: Cache) -> CachedEarningsCalculator:
    """Cached calculator reading through the request's session."""
    calculator = EarningsCalculator(SqlAlchemyEarningsDataSource(db), settings=settings)
    return CachedEarningsCalculator(calculator, cache)


Earnings = Annotated[CachedEarningsCalculator, Depends(get_earnings)]


def get_pay_period_service(
    db: DbSession, earnings: Earnings, settings: AppSettings
) -> PayPeriodService:
    return PayPeriodService(db, earnings, settings=settings)


def get_settlement_service(db: DbSession) -> SettlementService:
    return SettlementService(db)


PayPeriods = Annotated[PayPeriodService, Depends(get_pay_period_service)]
Settlement = Annotated[SettlementService, Depends(get_settlement_service)]
