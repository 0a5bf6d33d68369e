"""
Proxy configuration for Drive API traffic.

The transport is built on urllib, so only HTTP(S) proxies are supported.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlparse
from urllib.request import ProxyHandler

SUPPORTED_SCHEMES = frozenset({"http", "https"})


@dataclass
class ProxyConfig:
    """
    Proxy configuration.

    Attributes:
        enabled: Whether proxy is enabled.
        url: Proxy URL (e.g., "http://host:port").
    """
    enabled: bool = False
    url: str = ""

    def is_active(self) -> bool:
        return self.enabled and bool(self.url.strip())

    def get_url(self) -> Optional[str]:
        if self.is_active():
            return self.url.strip()
        return None

    def to_persist_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "url": self.url,
        }

    @classmethod
    def from_persist_dict(cls, data: dict[str, Any]) -> "ProxyConfig":
        enabled = bool(data.get("enabled", False))
        url = str(data.get("url", "") or "")
        return cls(enabled=enabled, url=url)

    def validate(self) -> tuple[bool, str]:
        """
        Validate the proxy configuration.

        Returns:
            (is_valid, error_message) tuple.
        """
        if not self.enabled:
            return True, ""

        url = self.url.strip()
        if not url:
            return False, "Proxy is enabled but URL is empty"

        parsed = urlparse(url)
        if not parsed.scheme:
            return False, "Proxy URL must include scheme (e.g., http://)"
        if parsed.scheme.lower() not in SUPPORTED_SCHEMES:
            return False, f"Unsupported proxy scheme: {parsed.scheme}. Use: {', '.join(sorted(SUPPORTED_SCHEMES))}"
        if not parsed.netloc:
            return False, "Proxy URL must include host (and optionally port)"

        return True, ""


def build_proxy_handler(config: Optional[ProxyConfig]) -> Optional[ProxyHandler]:
    """
    Build a urllib ProxyHandler routing both http and https through the proxy.

    Returns None when no proxy is active, so the opener falls back to the
    environment's proxy settings.

    Raises:
        ValueError: If the proxy is enabled but misconfigured.
    """
    if config is None or not config.is_active():
        return None

    ok, message = config.validate()
    if not ok:
        raise ValueError(message)

    url = config.get_url()
    return ProxyHandler({"http": url, "https": url})
