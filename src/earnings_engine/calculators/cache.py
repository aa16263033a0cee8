"""Time-boxed memoization of earnings breakdowns."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable
from uuid import UUID

from earnings_engine.calculators.engine import EarningsCalculator
from earnings_engine.calculators.types import EarningsBreakdown
from earnings_engine.config import Settings
from earnings_engine.events.types import (
    ActivityIngested,
    EarningsEvent,
    LeaveStatusChanged,
    TaskRateChanged,
)

logger = logging.getLogger(__name__)

CacheKey = tuple[UUID, datetime]


@dataclass
class _Entry:
    breakdown: EarningsBreakdown
    expires_at: float


class EarningsCache:
    """In-memory breakdown cache keyed by (user_id, period_start).

    - TTL is short while the user has an open interval, long otherwise
    - On overflow the oldest inserted entry is evicted (FIFO, not LRU)
    - A background sweep drops expired entries for users who never return

    Construct once per process; call start() on a running loop and
    shutdown() on exit.
    """

    def __init__(
        self,
        max_entries: int = 200,
        ttl_seconds: float = 300.0,
        active_ttl_seconds: float = 30.0,
        sweep_interval_seconds: float = 120.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.active_ttl_seconds = active_ttl_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self._clock = clock
        self._entries: dict[CacheKey, _Entry] = {}
        self._sweep_task: asyncio.Task[None] | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> EarningsCache:
        return cls(
            max_entries=settings.earnings_cache_max_entries,
            ttl_seconds=settings.earnings_cache_ttl_seconds,
            active_ttl_seconds=settings.earnings_cache_active_ttl_seconds,
            sweep_interval_seconds=settings.earnings_cache_sweep_seconds,
        )

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def sweeping(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def get(self, user_id: UUID, period_start: datetime) -> EarningsBreakdown | None:
        key = (user_id, period_start)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() < entry.expires_at:
            return entry.breakdown
        del self._entries[key]
        return None

    def put(
        self,
        user_id: UUID,
        period_start: datetime,
        breakdown: EarningsBreakdown,
    ) -> None:
        key = (user_id, period_start)
        if key not in self._entries and len(self._entries) >= self.max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]

        ttl = self.active_ttl_seconds if breakdown.has_open_intervals else self.ttl_seconds
        self._entries[key] = _Entry(breakdown=breakdown, expires_at=self._clock() + ttl)

    def invalidate(self, user_id: UUID | None = None) -> int:
        """Drop one user's entries, or everything when user_id is None.

        Returns the number of entries removed.
        """
        if user_id is None:
            removed = len(self._entries)
            self._entries.clear()
            return removed

        keys = [key for key in self._entries if key[0] == user_id]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def sweep(self) -> int:
        """Remove expired entries. Returns the number removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def handle_event(self, event: EarningsEvent) -> None:
        """Invalidate in response to a mutation elsewhere in the system."""
        if isinstance(event, (LeaveStatusChanged, ActivityIngested)):
            self.invalidate(event.user_id)
        elif isinstance(event, TaskRateChanged):
            # Historical time cannot be attributed to a single rate after an edit
            self.invalidate()

    def start(self) -> None:
        """Schedule the background sweep on the running event loop."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())

    async def shutdown(self) -> None:
        """Stop the background sweep and drop all entries."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None
        self._entries.clear()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            removed = self.sweep()
            if removed:
                logger.debug("Swept %d expired earnings entries", removed)


class CachedEarningsCalculator:
    """Earnings calculator fronted by an EarningsCache."""

    def __init__(self, calculator: EarningsCalculator, cache: EarningsCache):
        self.calculator = calculator
        self.cache = cache

    async def calculate_earnings(
        self,
        user_id: UUID,
        period_start: datetime,
        period_end: datetime,
    ) -> EarningsBreakdown:
        """Cached breakdown for the period, computing it on a miss."""
        if period_start > period_end:
            return await self.calculator.calculate(user_id, period_start, period_end)

        cached = self.cache.get(user_id, period_start)
        if cached is not None:
            return cached

        return await self.recalculate(user_id, period_start, period_end)

    async def recalculate(
        self,
        user_id: UUID,
        period_start: datetime,
        period_end: datetime,
    ) -> EarningsBreakdown:
        """Compute a fresh breakdown for exactly this range and cache it."""
        breakdown = await self.calculator.calculate(user_id, period_start, period_end)
        if period_start <= period_end:
            self.cache.put(user_id, period_start, breakdown)
        return breakdown

    def invalidate_earnings_cache(self, user_id: UUID | None = None) -> int:
        return self.cache.invalidate(user_id)
