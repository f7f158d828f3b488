"""
Local daily quota for the shared built-in credential.

This is unrelated to the provider's own HTTP 429 throttling, which surfaces
as `UpstreamRateLimitError`.
"""

from __future__ import annotations

import threading
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Protocol

__all__ = ["RateLimiter", "DailyUsageLimiter", "DEFAULT_DAILY_LIMIT"]

DEFAULT_DAILY_LIMIT = 10


class RateLimiter(Protocol):
    def can_send(self) -> bool:
        ...

    def record_usage(self) -> None:
        ...

    def reset_description(self) -> str:
        ...


def _humanize(delta: timedelta) -> str:
    minutes = max(1, int(delta.total_seconds() // 60))
    hours, minutes = divmod(minutes, 60)
    if hours and minutes:
        return f"in {hours} h {minutes} min"
    if hours:
        return f"in {hours} h"
    return f"in {minutes} min"


class DailyUsageLimiter:
    """
    In-memory counter that resets when the local calendar day changes.

    Args:
        daily_limit: Messages allowed per day.
        clock: Returns the current local time; injectable for tests.
    """

    def __init__(
        self,
        daily_limit: int = DEFAULT_DAILY_LIMIT,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if daily_limit < 0:
            raise ValueError("daily_limit must be >= 0")
        self.daily_limit = daily_limit
        self._clock = clock or datetime.now
        self._lock = threading.Lock()
        self._day: date = self._clock().date()
        self._used = 0

    def _reset_if_needed(self) -> None:
        today = self._clock().date()
        if today > self._day:
            self._day = today
            self._used = 0

    @property
    def used(self) -> int:
        with self._lock:
            self._reset_if_needed()
            return self._used

    @property
    def remaining(self) -> int:
        with self._lock:
            self._reset_if_needed()
            return max(0, self.daily_limit - self._used)

    def can_send(self) -> bool:
        return self.remaining > 0

    def record_usage(self) -> None:
        with self._lock:
            self._reset_if_needed()
            self._used += 1

    def try_acquire(self) -> bool:
        """Check and consume one unit in a single step. Returns False when exhausted."""
        with self._lock:
            self._reset_if_needed()
            if self._used >= self.daily_limit:
                return False
            self._used += 1
            return True

    def reset_description(self) -> str:
        """Time until the counter resets (next local midnight), e.g. ``"in 3 h 12 min"``."""
        now = self._clock()
        midnight = datetime.combine(now.date() + timedelta(days=1), datetime.min.time(), now.tzinfo)
        return _humanize(midnight - now)

    def status_text(self) -> str:
        remaining = self.remaining
        if remaining > 0:
            return f"{remaining}/{self.daily_limit} messages left today"
        return f"Daily free quota used up, resets {self.reset_description()}"
