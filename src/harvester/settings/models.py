from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Optional

from ..crawler.models import RootRef
from ..drive.transport import ACCESS_TOKEN_ENV
from ..fs.extract import DEFAULT_EXTRACTOR_PATH
from ..net.limiter import DEFAULT_MAX_CONCURRENT
from ..net.proxy import ProxyConfig
from ..net.retry import RetryConfig
from ..net.throttle import ThrottleConfig


DEFAULT_DOWNLOAD_ROOT = "downloads"
NO_SIZE_LIMIT = -1
SETTINGS_VERSION = 1


@dataclass(frozen=True)
class Credentials:
    access_token: str

    def is_complete(self) -> bool:
        return bool(self.access_token.strip())

    def to_persist_dict(self) -> dict[str, Any]:
        return {"access_token": self.access_token}

    @classmethod
    def from_persist_dict(cls, data: dict[str, Any]) -> "Credentials":
        return cls(access_token=str(data.get("access_token", "") or ""))


@dataclass
class HarvestSettings:
    credentials: Optional[Credentials] = None
    roots: list[RootRef] = field(default_factory=list)
    download_root: str = DEFAULT_DOWNLOAD_ROOT
    max_download_size_mb: int = NO_SIZE_LIMIT
    extractor_path: str = DEFAULT_EXTRACTOR_PATH
    max_concurrent: int = DEFAULT_MAX_CONCURRENT
    strict_timestamps: bool = False
    throttle: Optional[ThrottleConfig] = None
    listing_retry: Optional[RetryConfig] = None
    download_retry: Optional[RetryConfig] = None
    proxy: Optional[ProxyConfig] = None

    def credentials_configured(self) -> bool:
        return self.credentials is not None and self.credentials.is_complete()

    def resolve_access_token(self, *, env: Optional[dict[str, str]] = None) -> Optional[str]:
        """Token from the settings file, else from the environment."""
        if self.credentials_configured():
            return self.credentials.access_token.strip()
        source = os.environ if env is None else env
        token = (source.get(ACCESS_TOKEN_ENV) or "").strip()
        return token or None

    def max_size_bytes(self) -> Optional[int]:
        """Size limit in bytes, or None when unlimited (negative setting)."""
        if self.max_download_size_mb < 0:
            return None
        return self.max_download_size_mb * 1024 * 1024

    def get_throttle(self) -> ThrottleConfig:
        """Get throttle config, using defaults if not set."""
        return self.throttle or ThrottleConfig()

    def get_listing_retry(self) -> RetryConfig:
        return self.listing_retry or RetryConfig.for_listing()

    def get_download_retry(self) -> RetryConfig:
        return self.download_retry or RetryConfig.for_download()

    def get_proxy(self) -> ProxyConfig:
        """Get proxy config, using defaults if not set."""
        return self.proxy or ProxyConfig()

    def to_persist_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "version": SETTINGS_VERSION,
            "roots": [r.to_persist_dict() for r in self.roots],
            "download_root": self.download_root,
            "max_download_size_mb": self.max_download_size_mb,
            "extractor_path": self.extractor_path,
            "max_concurrent": self.max_concurrent,
            "strict_timestamps": self.strict_timestamps,
        }
        if self.credentials is not None:
            data["credentials"] = self.credentials.to_persist_dict()
        if self.throttle is not None:
            data["throttle"] = self.throttle.to_persist_dict()
        if self.listing_retry is not None:
            data["listing_retry"] = self.listing_retry.to_persist_dict()
        if self.download_retry is not None:
            data["download_retry"] = self.download_retry.to_persist_dict()
        if self.proxy is not None:
            data["proxy"] = self.proxy.to_persist_dict()
        return data

    @classmethod
    def from_persist_dict(cls, data: dict[str, Any]) -> "HarvestSettings":
        raw_creds = data.get("credentials")
        credentials = None
        if isinstance(raw_creds, dict):
            credentials = Credentials.from_persist_dict(raw_creds)

        roots: list[RootRef] = []
        raw_roots = data.get("roots")
        if isinstance(raw_roots, list):
            for raw in raw_roots:
                if isinstance(raw, dict):
                    ref = RootRef.from_persist_dict(raw)
                elif isinstance(raw, str):
                    ref = RootRef(drive_id=raw.strip())
                else:
                    continue
                if ref.drive_id:
                    roots.append(ref)

        download_root = str(data.get("download_root", DEFAULT_DOWNLOAD_ROOT) or DEFAULT_DOWNLOAD_ROOT)
        extractor_path = str(data.get("extractor_path", DEFAULT_EXTRACTOR_PATH) or DEFAULT_EXTRACTOR_PATH)

        try:
            max_concurrent = int(data.get("max_concurrent", DEFAULT_MAX_CONCURRENT) or DEFAULT_MAX_CONCURRENT)
        except (TypeError, ValueError):
            max_concurrent = DEFAULT_MAX_CONCURRENT
        if max_concurrent < 1:
            max_concurrent = DEFAULT_MAX_CONCURRENT

        try:
            max_download_size_mb = int(data.get("max_download_size_mb", NO_SIZE_LIMIT))
        except (TypeError, ValueError):
            max_download_size_mb = NO_SIZE_LIMIT

        raw_throttle = data.get("throttle")
        throttle = None
        if isinstance(raw_throttle, dict):
            throttle = ThrottleConfig.from_persist_dict(raw_throttle)

        raw_listing_retry = data.get("listing_retry")
        listing_retry = None
        if isinstance(raw_listing_retry, dict):
            listing_retry = RetryConfig.from_persist_dict(raw_listing_retry, defaults=RetryConfig.for_listing())

        raw_download_retry = data.get("download_retry")
        download_retry = None
        if isinstance(raw_download_retry, dict):
            download_retry = RetryConfig.from_persist_dict(raw_download_retry, defaults=RetryConfig.for_download())

        raw_proxy = data.get("proxy")
        proxy = None
        if isinstance(raw_proxy, dict):
            proxy = ProxyConfig.from_persist_dict(raw_proxy)

        return cls(
            credentials=credentials,
            roots=roots,
            download_root=download_root,
            max_download_size_mb=max_download_size_mb,
            extractor_path=extractor_path,
            max_concurrent=max_concurrent,
            strict_timestamps=bool(data.get("strict_timestamps", False)),
            throttle=throttle,
            listing_retry=listing_retry,
            download_retry=download_retry,
            proxy=proxy,
        )
