"""
Drive tree crawler.

Walks every root's reachable hierarchy and records the bundles it finds.

Traversal order: the frontier is a deque popped from the right. Subfolders
are appended on the right, so they are explored before their siblings;
shortcut targets are appended on the left, so every folder reachable
without a shortcut is explored first. Shortcuts to plain files are read
in place while listing, so the target joins the folder it is linked from.
Visited ids stop shortcut cycles and stop two shortcuts to the same target
from being followed twice.

Dedup: within one root, bundles are keyed by fingerprint and the first
bundle discovered wins; later bundles with the same fingerprint are logged
and dropped.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Optional

from src.shared.content_rules import appears_to_be_bundle, is_archive_extension

from ..drive.client import RemoteClient, drive_link
from ..drive.errors import RemoteError
from ..drive.models import ItemKind, RemoteItem
from ..prompts import Prompter
from .fingerprint import compute_fingerprint
from .models import Bundle, BundleFile, FrontierEntry, ItemRef, ResultMap, Root, ScanCancelled

logger = logging.getLogger(__name__)


@dataclass
class CrawlStats:
    """Statistics for a crawl."""
    items_read: int = 0
    folders_listed: int = 0
    bundles_found: int = 0
    archives_found: int = 0
    duplicates: int = 0
    size_skipped: int = 0
    not_downloadable: int = 0
    indirections_followed: int = 0
    indirections_skipped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def to_dict(self) -> dict:
        return {
            "items_read": self.items_read,
            "folders_listed": self.folders_listed,
            "bundles_found": self.bundles_found,
            "archives_found": self.archives_found,
            "duplicates": self.duplicates,
            "size_skipped": self.size_skipped,
            "not_downloadable": self.not_downloadable,
            "indirections_followed": self.indirections_followed,
            "indirections_skipped": self.indirections_skipped,
            "errors": self.error_count,
        }


class TreeCrawler:
    """
    Crawls a set of roots and builds the bundle map.

    Usage:
        crawler = TreeCrawler(client, roots, prompter=ConsolePrompter())
        results = await crawler.crawl()
        for root_id, bundles in results.items():
            ...
    """

    def __init__(
        self,
        client: RemoteClient,
        roots: Iterable[Root],
        *,
        prompter: Prompter,
        max_size_bytes: Optional[int] = None,
    ) -> None:
        """
        Args:
            client: Remote client used for every listing and fetch.
            roots: Resolved roots to crawl.
            prompter: Asked once at the end if any recoverable error occurred.
            max_size_bytes: Files larger than this are skipped. None for no limit.
        """
        self._client = client
        self._roots = list(roots)
        self._prompter = prompter
        self._max_size_bytes = max_size_bytes

        self._root_ids = frozenset(r.root_id for r in self._roots)
        self._frontier: deque[FrontierEntry] = deque()
        self._visited: set[str] = set()
        self._results: ResultMap = {}
        self._stats = CrawlStats()

        for root in self._roots:
            ref = ItemRef(id=root.root_id, name=root.owner_label)
            self._frontier.append(
                FrontierEntry(
                    item=ref,
                    parent=ref,
                    root=root,
                    is_file=root.is_file_root,
                    is_root_task=True,
                )
            )

    @property
    def stats(self) -> CrawlStats:
        return self._stats

    @property
    def results(self) -> ResultMap:
        return self._results

    @property
    def visited(self) -> frozenset[str]:
        return frozenset(self._visited)

    async def crawl(self) -> ResultMap:
        """
        Drain the frontier.

        Returns:
            root id -> fingerprint -> Bundle, for every root crawled.

        Raises:
            ScanCancelled: If errors occurred and the operator declined to continue.
        """
        root_counter = 0

        while self._frontier:
            entry = self._frontier.pop()

            if entry.is_indirection_target and entry.item.id in self._visited:
                self._stats.indirections_skipped += 1
                continue

            if entry.is_root_task:
                root_counter += 1
                logger.info("[%d/%d] Scanning [%s]...", root_counter, len(self._roots), entry.root.owner_label)
                self._results.setdefault(entry.root.root_id, {})

            self._visited.add(entry.item.id)
            await self._visit(entry)

        if self._stats.errors:
            logger.warning("Errors occurred when scanning Google Drive, and some bundles couldn't be accessed.")
            if not self._prompter.confirm("Continue downloading the remaining bundles?"):
                raise ScanCancelled("Scan cancelled.")

        return self._results

    async def _visit(self, entry: FrontierEntry) -> None:
        items = await self._read_items(entry)
        candidates: list[RemoteItem] = []

        for item in items:
            if self._is_foreign_root(entry, item):
                continue
            self._visited.add(item.id)
            self._classify(entry, item, candidates)

        if candidates and appears_to_be_bundle(c.extension for c in candidates):
            folder = entry.parent if entry.is_file else entry.item
            logger.info(
                "[%s] Chart folder [%s]: [%s]",
                entry.root.owner_label,
                folder.name,
                ", ".join(c.name for c in candidates),
            )
            self._record_bundle(entry, name=folder.name, items=candidates, is_archive=False)

    async def _read_items(self, entry: FrontierEntry) -> list[RemoteItem]:
        """List a folder, or fetch a single file; recoverable failures yield []."""
        try:
            if entry.is_file:
                items = [await self._client.get_item(entry.item.id)]
            else:
                items = await self._client.list_children(entry.item.id)
                self._stats.folders_listed += 1
        except RemoteError as exc:
            logger.warning("Skipping [%s] (%s): %s", entry.item.name, drive_link(entry.item.id), exc)
            self._stats.errors.append(f"{entry.item.id}: {exc}")
            return []

        self._stats.items_read += len(items)
        return await self._resolve_file_indirections(entry, items)

    def _resolves_inline(self, item: RemoteItem) -> bool:
        """Shortcuts to plain (non-archive) files are read in place of the shortcut."""
        if not item.is_indirection or item.target_kind == ItemKind.FOLDER or item.target_id is None:
            return False
        if item.target_id in self._visited or item.target_id in self._root_ids:
            return False
        return item.extension is not None and not is_archive_extension(item.extension)

    async def _resolve_file_indirections(self, entry: FrontierEntry, items: list[RemoteItem]) -> list[RemoteItem]:
        resolved: list[RemoteItem] = []
        for item in items:
            if not self._resolves_inline(item):
                resolved.append(item)
                continue
            try:
                target = await self._client.get_item(item.target_id)
            except RemoteError as exc:
                logger.warning(
                    "Skipping shortcut [%s] in [%s]: %s", item.name, drive_link(entry.item.id), exc
                )
                self._stats.errors.append(f"{item.target_id}: {exc}")
                continue
            self._visited.add(target.id)
            self._stats.indirections_followed += 1
            resolved.append(target)
        return resolved

    def _is_foreign_root(self, entry: FrontierEntry, item: RemoteItem) -> bool:
        """True if `item` is (or points at) a configured root other than the item being visited."""
        if item.id != entry.item.id and item.id in self._root_ids:
            return True
        return item.is_indirection and item.target_id in self._root_ids

    def _classify(self, entry: FrontierEntry, item: RemoteItem, candidates: list[RemoteItem]) -> None:
        next_entry = FrontierEntry(
            item=ItemRef(id=item.id, name=item.name),
            parent=entry.item,
            root=entry.root,
        )

        if item.kind == ItemKind.FOLDER:
            self._frontier.append(next_entry)
            return

        if item.is_indirection:
            self._stats.indirections_followed += 1
            self._frontier.appendleft(
                FrontierEntry(
                    item=ItemRef(id=item.target_id or item.id, name=item.name),
                    parent=entry.item,
                    root=entry.root,
                    is_file=item.target_kind != ItemKind.FOLDER,
                    is_indirection_target=True,
                )
            )
            return

        if self._max_size_bytes is not None and item.size is not None and item.size > self._max_size_bytes:
            logger.warning("[%s] in [%s] is too large to download", item.name, drive_link(entry.item.id))
            self._stats.size_skipped += 1
            return

        if not item.can_download:
            logger.warning("[%s] in [%s] can't be downloaded by this account", item.name, drive_link(entry.item.id))
            self._stats.not_downloadable += 1
            return

        if is_archive_extension(item.extension):
            logger.info("[%s] Archive: %s", entry.root.owner_label, item.name)
            self._record_bundle(entry, name=item.name, items=[item], is_archive=True)
            return

        if item.extension is not None:
            candidates.append(item)

    def _record_bundle(
        self,
        entry: FrontierEntry,
        *,
        name: str,
        items: list[RemoteItem],
        is_archive: bool,
    ) -> None:
        folder = entry.parent if entry.is_file else entry.item
        files = [BundleFile.from_item(i) for i in items]
        fingerprint = compute_fingerprint(files)
        bundles = self._results.setdefault(entry.root.root_id, {})

        existing = bundles.get(fingerprint)
        if existing is not None:
            logger.warning(
                "[%s] [%s] has the same files as [%s]; keeping the first one",
                entry.root.owner_label,
                name,
                existing.name,
            )
            self._stats.duplicates += 1
            return

        bundles[fingerprint] = Bundle(
            root=entry.root,
            name=name,
            is_archive=is_archive,
            fingerprint=fingerprint,
            folder_name=folder.name,
            folder_id=folder.id,
            files=files,
        )
        self._stats.bundles_found += 1
        if is_archive:
            self._stats.archives_found += 1
