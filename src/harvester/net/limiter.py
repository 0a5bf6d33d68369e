"""
Shared dispatch limiter for remote calls.

Every remote call goes through one `RequestLimiter`: at most `max_concurrent`
calls are in flight at any time, and dispatches are spaced by the throttle.
Unrelated calls are not serialized beyond that.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from .throttle import Throttle, ThrottleConfig

DEFAULT_MAX_CONCURRENT = 3

T = TypeVar("T")


@dataclass
class LimiterConfig:
    max_concurrent: int = DEFAULT_MAX_CONCURRENT

    def set_max_concurrent(self, value: int) -> None:
        if value < 1:
            raise ValueError("max_concurrent must be >= 1")
        self.max_concurrent = value


class RequestLimiter:
    """
    Concurrency ceiling plus minimum dispatch spacing.

    Usage:
        limiter = RequestLimiter()
        items = await limiter.schedule(lambda: client_call(...))
    """

    def __init__(
        self,
        config: Optional[LimiterConfig] = None,
        *,
        throttle: Optional[Throttle] = None,
    ) -> None:
        self._config = config or LimiterConfig()
        if self._config.max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self._throttle = throttle or Throttle(ThrottleConfig())
        self._semaphore = asyncio.Semaphore(self._config.max_concurrent)
        self._in_flight = 0
        self._peak_in_flight = 0
        self._dispatched = 0

    @property
    def max_concurrent(self) -> int:
        return self._config.max_concurrent

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        """Highest number of simultaneously in-flight calls seen so far."""
        return self._peak_in_flight

    @property
    def dispatched(self) -> int:
        return self._dispatched

    async def schedule(self, func: Callable[[], Awaitable[T]]) -> T:
        """
        Run `func()` once a slot is free and the throttle allows a dispatch.

        The slot is held until the awaitable completes (or raises).
        """
        async with self._semaphore:
            await self._throttle.wait_async()
            self._in_flight += 1
            self._dispatched += 1
            self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
            try:
                return await func()
            finally:
                self._in_flight -= 1
