"""API routes."""

from earnings_engine.api.routes.earnings import router as earnings_router
from earnings_engine.api.routes.health import router as health_router
from earnings_engine.api.routes.pay_periods import router as pay_periods_router
from earnings_engine.api.routes.payroll import router as payroll_router

__all__ = ["earnings_router", "health_router", "pay_periods_router", "payroll_router"]
