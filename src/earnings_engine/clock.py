"""Injectable time source.

Services take a ``Clock`` (any zero-argument callable returning a naive UTC
``datetime``) so tests can pin "now" when open work intervals are involved.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching stored timestamps."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
