"""Small rate limiter used by the backend module."""

import asyncio
import time
from collections.abc import Callable


class RateLimiter:
    """
    Enforces a *minimum* delay between calls.

    Usable as ``async with limiter:`` around an awaited model call.
    If rate is None → limiter is disabled.
    """

    def __init__(
        self,
        rate: float | None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        # rate = allowed calls per second → convert to minimum interval
        self.enabled = rate is not None
        self.min_interval = 1.0 / rate if rate else 0.0
        self._clock = clock
        self._last_call: float | None = None
        self._lock = asyncio.Lock()

    def delay(self) -> float:
        """Seconds to wait before the next call is allowed."""
        if not self.enabled or self._last_call is None:
            return 0.0
        elapsed = self._clock() - self._last_call
        return max(self.min_interval - elapsed, 0.0)

    async def __aenter__(self):
        if not self.enabled:
            return self

        async with self._lock:
            wait = self.delay()
            if wait > 0:
                await asyncio.sleep(wait)
            self._last_call = self._clock()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None
