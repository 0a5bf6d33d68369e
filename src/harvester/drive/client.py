"""
Rate-limited, retrying Drive client.

This is the only component that talks to the remote API. Every request,
including each page of a listing and each retry attempt, is dispatched
through the shared `RequestLimiter`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, BinaryIO, Callable, Optional

from ..net.limiter import RequestLimiter
from ..net.retry import RetryConfig, with_retry_async
from .errors import ListingError, MalformedResponseError, RemoteError, RemotePermissionError, TransientError
from .models import RemoteItem, parse_item, parse_list_page
from .transport import DriveTransport

logger = logging.getLogger(__name__)


def drive_link(item_id: str) -> str:
    return f"https://drive.google.com/open?id={item_id}"


class RemoteClient:
    """
    Drive access layer used by the crawler and the materializer.

    Usage:
        client = RemoteClient(DriveHttpTransport(token_provider))
        children = await client.list_children(folder_id)
        stream = await client.open_download_stream(file_id)
    """

    def __init__(
        self,
        transport: DriveTransport,
        *,
        limiter: Optional[RequestLimiter] = None,
        listing_retry: Optional[RetryConfig] = None,
        download_retry: Optional[RetryConfig] = None,
    ) -> None:
        self._transport = transport
        self._limiter = limiter or RequestLimiter()
        self._listing_retry = listing_retry or RetryConfig.for_listing()
        self._download_retry = download_retry or RetryConfig.for_download()

    @property
    def limiter(self) -> RequestLimiter:
        return self._limiter

    async def _dispatch(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Run one blocking transport call in a worker thread, through the limiter."""
        return await self._limiter.schedule(lambda: asyncio.to_thread(fn, *args))

    async def list_children(self, folder_id: str) -> list[RemoteItem]:
        """
        List every item inside `folder_id`, following pagination.

        Raises:
            ListingError: If a page kept failing, or an empty result could not be verified.
            RemotePermissionError: If the folder is not visible to this account.
            MalformedResponseError: If Drive omitted required metadata.
        """
        items: list[RemoteItem] = []
        page_token: Optional[str] = None

        while True:
            token = page_token
            try:
                payload = await with_retry_async(
                    lambda: self._dispatch(self._transport.list_page, folder_id, token),
                    config=self._listing_retry,
                    description=f"Listing folder [{folder_id}]",
                )
            except TransientError as exc:
                raise ListingError(folder_id, str(exc)) from exc

            page_items, page_token = parse_list_page(payload)
            items.extend(page_items)
            if not page_token:
                break

        if not items:
            # Drive answers an inaccessible folder with an empty list.
            await self._verify_folder_access(folder_id)
        return items

    async def _verify_folder_access(self, folder_id: str) -> None:
        try:
            await self.get_item(folder_id)
        except RemotePermissionError as exc:
            raise RemotePermissionError(
                f"Your account doesn't have permission to view the folder [{folder_id}]",
                status_code=exc.status_code,
            ) from exc
        except RemoteError as exc:
            raise ListingError(folder_id, f"empty listing could not be verified: {exc}") from exc

    async def get_item(self, item_id: str) -> RemoteItem:
        """
        Fetch metadata for a single file or folder.

        Raises:
            RemotePermissionError: If the item is not visible to this account.
            TransientError: If every attempt failed.
            MalformedResponseError: If Drive omitted required metadata.
        """
        payload = await with_retry_async(
            lambda: self._dispatch(self._transport.get, item_id),
            config=self._listing_retry,
            description=f"Reading item [{item_id}]",
        )
        try:
            return parse_item(payload)
        except MalformedResponseError:
            logger.error("Drive returned incomplete metadata for [%s]", drive_link(item_id))
            raise

    async def open_download_stream(self, file_id: str) -> BinaryIO:
        """
        Open a byte stream for the content of `file_id`.

        Retries with exponential backoff; the caller owns (and must close) the stream.

        Raises:
            RemotePermissionError: If the file was deleted or access was revoked.
            TransientError: If every attempt failed.
        """
        try:
            return await with_retry_async(
                lambda: self._dispatch(self._transport.get_media, file_id),
                config=self._download_retry,
                description=f"Opening download for [{file_id}]",
            )
        except RemotePermissionError:
            logger.warning(
                "Unable to download [%s]: this file was deleted or public access permission was revoked",
                drive_link(file_id),
            )
            raise
