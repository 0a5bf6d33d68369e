"""
Dispatch throttling: a minimum interval between remote calls plus optional jitter.

Drive tolerates short bursts but starts answering 403 "rate limit exceeded"
when calls are dispatched back to back, so every dispatch is spaced out.
"""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass
from typing import Optional


DEFAULT_MIN_INTERVAL_S = 0.006  # 6 ms between dispatches
DEFAULT_JITTER_MAX_S = 0.0


@dataclass
class ThrottleConfig:
    """
    Configuration for dispatch throttling.

    Attributes:
        min_interval_s: Minimum seconds between two dispatches.
        jitter_max_s: Maximum random jitter added to min_interval.
        enabled: If False, throttling is disabled (for testing).
    """
    min_interval_s: float = DEFAULT_MIN_INTERVAL_S
    jitter_max_s: float = DEFAULT_JITTER_MAX_S
    enabled: bool = True

    def to_persist_dict(self) -> dict:
        return {
            "min_interval_s": self.min_interval_s,
            "jitter_max_s": self.jitter_max_s,
            "enabled": self.enabled,
        }

    @classmethod
    def from_persist_dict(cls, data: dict) -> "ThrottleConfig":
        min_interval = data.get("min_interval_s", DEFAULT_MIN_INTERVAL_S)
        jitter_max = data.get("jitter_max_s", DEFAULT_JITTER_MAX_S)
        enabled = data.get("enabled", True)

        try:
            min_interval = float(min_interval)
        except (TypeError, ValueError):
            min_interval = DEFAULT_MIN_INTERVAL_S

        try:
            jitter_max = float(jitter_max)
        except (TypeError, ValueError):
            jitter_max = DEFAULT_JITTER_MAX_S

        return cls(
            min_interval_s=max(0.0, min_interval),
            jitter_max_s=max(0.0, jitter_max),
            enabled=bool(enabled),
        )


class Throttle:
    """
    Async dispatch throttler with minimum interval and random jitter.

    Usage:
        throttle = Throttle()
        await throttle.wait_async()
        await make_request()

    Callers queue on an internal lock, so concurrent waiters are released one
    at a time, each at least `min_interval_s` after the previous one.
    """

    def __init__(self, config: Optional[ThrottleConfig] = None) -> None:
        self._config = config or ThrottleConfig()
        self._last_dispatch_time: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def config(self) -> ThrottleConfig:
        return self._config

    def _compute_delay(self) -> float:
        """Compute the delay needed before the next dispatch."""
        if not self._config.enabled:
            return 0.0

        jitter = random.uniform(0, self._config.jitter_max_s) if self._config.jitter_max_s > 0 else 0.0

        if self._last_dispatch_time is None:
            return jitter

        elapsed = time.monotonic() - self._last_dispatch_time
        base_delay = self._config.min_interval_s - elapsed
        if base_delay <= 0:
            return jitter
        return base_delay + jitter

    async def wait_async(self) -> float:
        """
        Wait until it's safe to dispatch the next call.

        Returns:
            The actual delay waited (in seconds).
        """
        async with self._lock:
            delay = self._compute_delay()
            if delay > 0:
                await asyncio.sleep(delay)
            self._last_dispatch_time = time.monotonic()
            return delay

    def reset(self) -> None:
        """Reset the throttler state (for testing)."""
        self._last_dispatch_time = None
