"""
Bounded retry loop with exponential backoff for remote calls.

Two policies are used against Drive:
- metadata/listing calls: up to 5 immediate retries
- download stream opens: up to 10 retries, waiting 4, 16, 64, ... seconds
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

DEFAULT_MAX_RETRIES = 5
DEFAULT_BASE_DELAY_S = 0.0
DEFAULT_BACKOFF_FACTOR = 2.0
DEFAULT_MAX_DELAY_S = 3600.0
DEFAULT_JITTER_FACTOR = 0.0

DOWNLOAD_MAX_RETRIES = 10
DOWNLOAD_BASE_DELAY_S = 4.0
DOWNLOAD_BACKOFF_FACTOR = 4.0

T = TypeVar("T")
logger = logging.getLogger(__name__)


class RetryableError(Exception):
    """
    Exception carrying its own retry decision.

    Attributes:
        status_code: Optional HTTP status code.
        should_retry: Whether this error should trigger retry logic.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        should_retry: bool = True,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.should_retry = should_retry


@dataclass
class RetryConfig:
    """
    Configuration for retry with exponential backoff.

    Attributes:
        max_retries: Maximum number of retry attempts (0 = no retries).
        base_delay_s: Delay before the first retry.
        backoff_factor: Multiplier applied per attempt.
        max_delay_s: Cap on a single delay.
        jitter_factor: Random jitter as fraction of computed delay (0.0-1.0).
        enabled: If False, the call is attempted exactly once.
    """
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_s: float = DEFAULT_BASE_DELAY_S
    backoff_factor: float = DEFAULT_BACKOFF_FACTOR
    max_delay_s: float = DEFAULT_MAX_DELAY_S
    jitter_factor: float = DEFAULT_JITTER_FACTOR
    enabled: bool = True

    @classmethod
    def for_listing(cls) -> "RetryConfig":
        return cls()

    @classmethod
    def for_download(cls) -> "RetryConfig":
        return cls(
            max_retries=DOWNLOAD_MAX_RETRIES,
            base_delay_s=DOWNLOAD_BASE_DELAY_S,
            backoff_factor=DOWNLOAD_BACKOFF_FACTOR,
        )

    def to_persist_dict(self) -> dict:
        return {
            "max_retries": self.max_retries,
            "base_delay_s": self.base_delay_s,
            "backoff_factor": self.backoff_factor,
            "max_delay_s": self.max_delay_s,
            "jitter_factor": self.jitter_factor,
            "enabled": self.enabled,
        }

    @classmethod
    def from_persist_dict(cls, data: dict, *, defaults: Optional["RetryConfig"] = None) -> "RetryConfig":
        base = defaults or cls()

        def _number(key: str, fallback, cast):
            try:
                return cast(data.get(key, fallback))
            except (TypeError, ValueError):
                return fallback

        max_retries = _number("max_retries", base.max_retries, int)
        base_delay = _number("base_delay_s", base.base_delay_s, float)
        backoff = _number("backoff_factor", base.backoff_factor, float)
        max_delay = _number("max_delay_s", base.max_delay_s, float)
        jitter_factor = _number("jitter_factor", base.jitter_factor, float)
        enabled = data.get("enabled", base.enabled)

        return cls(
            max_retries=max(0, max_retries),
            base_delay_s=max(0.0, base_delay),
            backoff_factor=max(1.0, backoff),
            max_delay_s=max(0.0, max_delay),
            jitter_factor=max(0.0, min(1.0, jitter_factor)),
            enabled=bool(enabled),
        )

    def compute_delay(self, attempt: int) -> float:
        """
        Compute delay for given attempt using exponential backoff with jitter.

        Args:
            attempt: Index of the failed attempt (0-indexed).

        Returns:
            Delay in seconds before the next attempt.
        """
        delay = self.base_delay_s * (self.backoff_factor ** attempt)
        delay = min(delay, self.max_delay_s)
        if self.jitter_factor > 0:
            delay += delay * random.uniform(0, self.jitter_factor)
        return delay


async def with_retry_async(
    func: Callable[[], Awaitable[T]],
    *,
    config: Optional[RetryConfig] = None,
    on_retry: Optional[Callable[[int, Exception, float], None]] = None,
    description: str = "call",
) -> T:
    """
    Await `func()` until it succeeds or the retry budget is spent.

    Only `RetryableError`s with `should_retry` set are retried; anything else
    propagates immediately.

    Args:
        func: Factory returning a fresh awaitable for each attempt.
        config: Retry configuration.
        on_retry: Optional callback called before each retry with
                  (attempt, exception, delay).
        description: Label used in log messages.

    Raises:
        The last exception if all retries are exhausted.
    """
    cfg = config or RetryConfig()

    if not cfg.enabled:
        return await func()

    attempt = 0
    while True:
        try:
            return await func()
        except RetryableError as exc:
            if not exc.should_retry or attempt >= cfg.max_retries:
                raise
            delay = cfg.compute_delay(attempt)
            if on_retry:
                on_retry(attempt, exc, delay)
            else:
                logger.warning(
                    "%s failed (%s). Retry %d/%d after %.2fs",
                    description,
                    exc,
                    attempt + 1,
                    cfg.max_retries,
                    delay,
                )
            if delay > 0:
                await asyncio.sleep(delay)
            attempt += 1
