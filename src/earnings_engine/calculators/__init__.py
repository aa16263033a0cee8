"""Earnings calculation engine."""

from earnings_engine.calculators.cache import CachedEarningsCalculator, EarningsCache
from earnings_engine.calculators.data_source import (
    EarningsDataSource,
    SqlAlchemyEarningsDataSource,
)
from earnings_engine.calculators.engine import EarningsCalculator
from earnings_engine.calculators.types import EarningsBreakdown, EarningsDiagnostic

__all__ = [
    "CachedEarningsCalculator",
    "EarningsBreakdown",
    "EarningsCache",
    "EarningsCalculator",
    "EarningsDataSource",
    "EarningsDiagnostic",
    "SqlAlchemyEarningsDataSource",
]
