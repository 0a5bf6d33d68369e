"""
Error taxonomy for the Drive access layer.

The retry loop reads `should_retry` off the exception, so the classification
happens once, where the failure is observed.
"""

from __future__ import annotations

from typing import Optional

from ..net.retry import RetryableError


class RemoteError(RetryableError):
    """Base class for every failure reported by the remote client."""


class TransientError(RemoteError):
    """Network failure, rate limiting or server error. Retried."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message, status_code=status_code, should_retry=True)


class RemotePermissionError(RemoteError):
    """The item is missing or the account cannot see it. Never retried."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message, status_code=status_code, should_retry=False)


class MalformedResponseError(RemoteError):
    """The API answered, but the payload is missing required metadata."""

    def __init__(self, message: str) -> None:
        super().__init__(message, should_retry=False)


class ListingError(RemoteError):
    """A folder could not be listed after the retry budget was spent."""

    def __init__(self, folder_id: str, message: str) -> None:
        super().__init__(f"Unable to list files for folder [{folder_id}]: {message}", should_retry=False)
        self.folder_id = folder_id
