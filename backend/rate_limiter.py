"""
Rate Limiter - enforces a minimum interval between external calls.

The YouTube Data API and the AI oracle are both called one at a time with a
fixed pause in between. Components receive a limiter instead of sleeping
inline, which keeps them easy to test with a zero interval.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MinIntervalLimiter:
    """Serializes calls and keeps at least `interval` seconds between their starts."""

    def __init__(self, interval: float = 1.0, name: str = "external",
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        if interval < 0:
            raise ValueError("interval must be non-negative")
        self.interval = interval
        self.name = name
        self._clock = clock
        self._sleep = sleep
        self._last_call: Optional[float] = None
        self._lock = asyncio.Lock()
        self.calls = 0

    async def wait(self) -> None:
        """Block until the next call is allowed, then mark it as started."""
        async with self._lock:
            if self._last_call is not None:
                remaining = self.interval - (self._clock() - self._last_call)
                if remaining > 0:
                    logger.debug(f"{self.name}: waiting {remaining:.2f}s before next call")
                    await self._sleep(remaining)
            self._last_call = self._clock()
            self.calls += 1

    async def call(self, func: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        await self.wait()
        return await func(*args, **kwargs)
