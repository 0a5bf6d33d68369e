"""
Network utilities: dispatch throttle, concurrency limiter, retry with
exponential backoff, and proxy config.
"""

from .throttle import Throttle, ThrottleConfig
from .limiter import LimiterConfig, RequestLimiter
from .retry import (
    RetryConfig,
    RetryableError,
    with_retry_async,
)
from .proxy import ProxyConfig, build_proxy_handler

__all__ = [
    "Throttle",
    "ThrottleConfig",
    "LimiterConfig",
    "RequestLimiter",
    "RetryConfig",
    "RetryableError",
    "with_retry_async",
    "ProxyConfig",
    "build_proxy_handler",
]
