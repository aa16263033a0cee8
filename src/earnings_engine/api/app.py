"""FastAPI application factory."""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from earnings_engine.api.routes import (
    earnings_router,
    health_router,
    pay_periods_router,
    payroll_router,
)
from earnings_engine.calculators.cache import EarningsCache
from earnings_engine.config import Settings, get_settings
from earnings_engine.database import dispose_db, init_db
from earnings_engine.events.emitter import EarningsEventBus
from earnings_engine.exceptions import NotFoundError
from earnings_engine.services.scheduler import PayrollScheduler
from earnings_engine.services.state_machine import InvalidTransitionError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    settings: Settings = app.state.settings
    app.state.cache.start()
    if settings.scheduler_enabled:
        app.state.scheduler.start()
    yield
    # Shutdown
    await app.state.scheduler.stop()
    await app.state.cache.shutdown()
    if app.state.owns_database:
        await dispose_db()


def create_app(
    settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The process-wide pieces (earnings cache, event bus, scheduler) are built
    here and kept on ``app.state``.
    """
    settings = settings or get_settings()
    owns_database = session_factory is None
    if session_factory is None:
        _, session_factory = init_db()

    app = FastAPI(
        title="Earnings Engine API",
        description="Earnings calculation, pay periods and wallet settlement",
        version="0.1.0",
        lifespan=lifespan,
    )

    cache = EarningsCache.from_settings(settings)
    event_bus = EarningsEventBus()
    event_bus.subscribe(cache.handle_event)

    app.state.started_at = time.monotonic()
    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.owns_database = owns_database
    app.state.cache = cache
    app.state.event_bus = event_bus
    app.state.scheduler = PayrollScheduler(session_factory, cache, settings=settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        """Handle references to missing entities."""
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={
                "detail": str(exc),
                "code": "NOT_FOUND",
                "context": {"entity_type": exc.entity_type, "entity_id": str(exc.entity_id)},
            },
        )

    @app.exception_handler(InvalidTransitionError)
    async def invalid_transition_handler(
        request: Request, exc: InvalidTransitionError
    ) -> JSONResponse:
        """Handle lifecycle operations attempted from the wrong status."""
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "detail": str(exc),
                "code": "INVALID_TRANSITION",
                "context": {"from_status": exc.from_status, "to_status": exc.to_status},
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(earnings_router, prefix="/api/v1")
    app.include_router(pay_periods_router, prefix="/api/v1")
    app.include_router(payroll_router, prefix="/api/v1")

    return app
