from __future__ import annotations

import asyncio
import time


class RateLimiter:
    """Minimum-interval gate shared by every caller of an external service."""

    def __init__(self, min_interval: float = 1.0):
        self.min_interval = min_interval
        self._last: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        async with self._lock:
            now = time.monotonic()
            if self._last is not None:
                wait = self.min_interval - (now - self._last)
                if wait > 0:
                    await asyncio.sleep(wait)
            self._last = time.monotonic()


class NoopRateLimiter(RateLimiter):
    def __init__(self):
        super().__init__(0.0)

    async def acquire(self) -> None:
        return None
