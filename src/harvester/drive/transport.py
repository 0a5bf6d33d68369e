"""
HTTP transport for the Drive v3 REST API (urllib based).

The transport performs exactly one HTTP request per call and classifies
failures into the remote error taxonomy; pacing and retries belong to
`RemoteClient`.
"""

from __future__ import annotations

import http.client
import json
import os
from typing import Any, BinaryIO, Callable, Optional, Protocol, Union
from urllib.error import HTTPError
from urllib.parse import quote, urlencode
from urllib.request import Request, build_opener

from ..net.proxy import ProxyConfig, build_proxy_handler
from .errors import MalformedResponseError, RemotePermissionError, TransientError
from .models import FIELD_LIST

DRIVE_FILES_URL = "https://www.googleapis.com/drive/v3/files"
DEFAULT_PAGE_SIZE = 1000
DEFAULT_TIMEOUT_S = 60.0
ACCESS_TOKEN_ENV = "HARVESTER_ACCESS_TOKEN"

PERMISSION_STATUS_CODES = frozenset({401, 403, 404})
# 403 is also how Drive reports quota exhaustion; those are worth retrying.
RATE_LIMIT_REASONS = frozenset({"rateLimitExceeded", "userRateLimitExceeded", "dailyLimitExceeded"})

TokenProvider = Callable[[], str]


class DriveTransport(Protocol):
    """The three Drive operations the client needs. Each call is one request."""

    def list_page(self, folder_id: str, page_token: Optional[str] = None) -> Any:
        ...

    def get(self, item_id: str) -> Any:
        ...

    def get_media(self, item_id: str) -> BinaryIO:
        ...


class StaticTokenAuthenticator:
    """
    Bearer credential supplied up front (settings file, flag or environment).

    Obtaining the token (OAuth consent flow) happens outside the harvester.
    """

    def __init__(self, token: Optional[str] = None) -> None:
        self._token = (token or "").strip()

    @classmethod
    def from_env(cls, env_var: str = ACCESS_TOKEN_ENV) -> "StaticTokenAuthenticator":
        return cls(os.environ.get(env_var))

    def is_complete(self) -> bool:
        return bool(self._token)

    def __call__(self) -> str:
        if not self._token:
            raise RuntimeError(f"No Drive access token configured (set {ACCESS_TOKEN_ENV})")
        return self._token


def _error_reason(exc: HTTPError) -> Optional[str]:
    """Pull `error.errors[0].reason` out of a Drive error body, if any."""
    try:
        body = json.loads(exc.read().decode("utf-8", errors="replace"))
        return body["error"]["errors"][0]["reason"]
    except (ValueError, KeyError, IndexError, TypeError, OSError):
        return None


def classify_http_error(exc: HTTPError, what: str) -> Union[TransientError, RemotePermissionError]:
    """Map an HTTP failure to a retryable or permission-class error."""
    status = int(getattr(exc, "code", 0) or 0)
    if status in PERMISSION_STATUS_CODES:
        reason = _error_reason(exc) if status == 403 else None
        if reason not in RATE_LIMIT_REASONS:
            return RemotePermissionError(
                f"Your account doesn't have permission to access {what} (HTTP {status})",
                status_code=status,
            )
    return TransientError(f"Error code {status} for {what}", status_code=status)


class DriveHttpTransport:
    """
    `DriveTransport` over HTTPS with a bearer token.

    Args:
        token_provider: Callable returning the current access token.
        proxy: Optional proxy configuration.
        timeout_s: Socket timeout for every request.
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        *,
        proxy: Optional[ProxyConfig] = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self._token_provider = token_provider
        self._timeout_s = timeout_s
        self._page_size = page_size
        handler = build_proxy_handler(proxy)
        self._opener = build_opener(handler) if handler is not None else build_opener()

    def _open(self, url: str, what: str):
        request = Request(
            url,
            headers={
                "Authorization": f"Bearer {self._token_provider()}",
                "Accept": "*/*",
            },
        )
        try:
            return self._opener.open(request, timeout=self._timeout_s)
        except HTTPError as exc:
            raise classify_http_error(exc, what) from exc
        except (OSError, http.client.HTTPException) as exc:
            raise TransientError(f"Network error for {what}: {exc}") from exc

    def _get_json(self, url: str, what: str) -> Any:
        with self._open(url, what) as resp:
            try:
                raw = resp.read()
            except (OSError, http.client.HTTPException) as exc:
                raise TransientError(f"Network error for {what}: {exc}") from exc
        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            raise MalformedResponseError(f"Drive returned invalid JSON for {what}") from exc

    def list_page(self, folder_id: str, page_token: Optional[str] = None) -> Any:
        params = {
            "q": f"'{folder_id}' in parents and trashed = false",
            "fields": f"nextPageToken, files({FIELD_LIST})",
            "pageSize": str(self._page_size),
            "supportsAllDrives": "true",
            "includeItemsFromAllDrives": "true",
        }
        if page_token:
            params["pageToken"] = page_token
        return self._get_json(f"{DRIVE_FILES_URL}?{urlencode(params)}", f"folder [{folder_id}]")

    def get(self, item_id: str) -> Any:
        params = {"fields": FIELD_LIST, "supportsAllDrives": "true"}
        url = f"{DRIVE_FILES_URL}/{quote(item_id, safe='')}?{urlencode(params)}"
        return self._get_json(url, f"item [{item_id}]")

    def get_media(self, item_id: str) -> BinaryIO:
        params = {"alt": "media", "supportsAllDrives": "true"}
        url = f"{DRIVE_FILES_URL}/{quote(item_id, safe='')}?{urlencode(params)}"
        return self._open(url, f"file [{item_id}]")
