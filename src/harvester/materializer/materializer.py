"""
Bundle materializer: downloads crawled bundles into the local folder tree.

Layout follows the storage conventions:
- <download_root>/<owner label>/<bundle name> [<fingerprint prefix>]/
- files keep their (sanitized) Drive names and their Drive modified time
- archives are extracted in place and then deleted

Re-running against the same crawl result is idempotent: a bundle whose folder
already exists is skipped. A bundle that fails while downloading leaves no
folder behind, so the next run retries it.
"""

from __future__ import annotations

import asyncio
import http.client
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Callable, Optional

from ..crawler.models import Bundle, BundleFile, ResultMap
from ..drive.client import RemoteClient
from ..drive.errors import RemoteError, TransientError
from ..fs.extract import ArchiveExtractor, ExtractionError
from ..fs.naming import sanitize_filename
from ..fs.storage import RootStorageManager
from ..prompts import Prompter

CHUNK_SIZE = 1024 * 1024  # 1 MB

# (filename, bytes written so far, expected size or None)
ProgressFunc = Callable[[str, int, Optional[int]], None]


class LocalIOError(RuntimeError):
    """A local folder, file or timestamp operation failed."""


class MaterializeStatus(str, Enum):
    """Status of a single bundle."""
    DOWNLOADED = "downloaded"
    SKIPPED_EXISTING = "skipped_existing"
    FAILED = "failed"


@dataclass
class MaterializeResult:
    """Result of materializing one bundle."""
    status: MaterializeStatus
    bundle: Bundle
    path: Optional[Path] = None
    bytes_written: int = 0
    error: Optional[str] = None


@dataclass
class MaterializeStats:
    """Statistics for a materialize run."""
    downloaded: int = 0
    skipped_existing: int = 0
    failed: int = 0
    extraction_failures: int = 0
    total_bytes: int = 0

    def increment(self, result: MaterializeResult) -> None:
        if result.status == MaterializeStatus.DOWNLOADED:
            self.downloaded += 1
            self.total_bytes += result.bytes_written
        elif result.status == MaterializeStatus.SKIPPED_EXISTING:
            self.skipped_existing += 1
        elif result.status == MaterializeStatus.FAILED:
            self.failed += 1

    @property
    def total_processed(self) -> int:
        return self.downloaded + self.skipped_existing + self.failed

    def to_dict(self) -> dict:
        return {
            "downloaded": self.downloaded,
            "skipped_existing": self.skipped_existing,
            "failed": self.failed,
            "extraction_failures": self.extraction_failures,
            "total_bytes": self.total_bytes,
        }


class BundleMaterializer:
    """
    Downloads bundles, extracts archives and restores timestamps.

    Usage:
        materializer = BundleMaterializer(
            client=client,
            storage=RootStorageManager(download_root),
            prompter=ConsolePrompter(),
        )
        results = await materializer.materialize_all(crawl_results)
        print(materializer.stats.to_dict())
    """

    def __init__(
        self,
        client: RemoteClient,
        storage: RootStorageManager,
        *,
        prompter: Prompter,
        extractor: Optional[ArchiveExtractor] = None,
        strict_timestamps: bool = False,
        on_progress: Optional[ProgressFunc] = None,
        chunk_size: int = CHUNK_SIZE,
    ) -> None:
        """
        Args:
            client: Remote client used to open download streams.
            storage: Maps roots and bundles to local folders.
            prompter: Operator checkpoints (delete root folder, manual extraction).
            extractor: Archive extraction utility.
            strict_timestamps: If True, failing to restore a file's modified
                time fails the whole bundle; otherwise it is only logged.
            on_progress: Optional callback called after each chunk is written.
            chunk_size: Bytes read from the stream per chunk.
        """
        self._client = client
        self._storage = storage
        self._prompter = prompter
        self._extractor = extractor or ArchiveExtractor()
        self._strict_timestamps = strict_timestamps
        self._on_progress = on_progress
        self._chunk_size = chunk_size
        self._stats = MaterializeStats()

        self._log = logging.getLogger(__name__)

    @property
    def stats(self) -> MaterializeStats:
        return self._stats

    async def materialize_all(self, results: ResultMap) -> list[MaterializeResult]:
        """
        Materialize every bundle of every root.

        Existing root folders are offered for deletion before anything is
        downloaded.

        Returns:
            List of MaterializeResults in processing order.
        """
        self.prepare_root_dirs(results)

        total = sum(len(bundles) for bundles in results.values())
        outcomes: list[MaterializeResult] = []
        current = 0
        for bundles in results.values():
            for bundle in bundles.values():
                current += 1
                outcomes.append(await self.materialize(bundle, index=current, total=total))

        if self._stats.skipped_existing > 0:
            count = self._stats.skipped_existing
            self._log.warning(
                "%d bundle download%s skipped because %s previously downloaded.",
                count,
                " was" if count == 1 else "s were",
                "it had been" if count == 1 else "they had been",
            )
        return outcomes

    def prepare_root_dirs(self, results: ResultMap) -> None:
        """Ask, once per root folder, whether an existing download folder should be deleted."""
        handled: set[Path] = set()
        for bundles in results.values():
            first = next(iter(bundles.values()), None)
            if first is None:
                continue

            owner = first.root.owner_label
            root_dir = self._storage.get_root_dir(owner)
            if root_dir in handled or not self._storage.root_exists(owner):
                continue
            handled.add(root_dir)

            existing = self._storage.list_bundle_folders(owner)
            if self._prompter.confirm(
                f"Download path already exists: [{root_dir}] ({len(existing)} bundle folder(s)).\n"
                "Delete it before continuing?"
            ):
                self._log.info("Deleting [%s]...", root_dir)
                self._storage.delete_root_dir(owner)

    async def materialize(self, bundle: Bundle, *, index: int = 1, total: int = 1) -> MaterializeResult:
        """
        Materialize one bundle. Never raises for per-bundle failures.

        Returns:
            MaterializeResult with status and details.
        """
        result = await self._materialize_impl(bundle, index=index, total=total)
        self._stats.increment(result)
        return result

    async def _materialize_impl(self, bundle: Bundle, *, index: int, total: int) -> MaterializeResult:
        owner = bundle.root.owner_label
        dest = self._storage.get_bundle_dir(owner, bundle.name, bundle.fingerprint)

        if dest.exists():
            return MaterializeResult(status=MaterializeStatus.SKIPPED_EXISTING, bundle=bundle, path=dest)

        try:
            self._storage.ensure_root_dir(owner)
            dest.mkdir()
        except OSError as exc:
            self._log.error("Failed to create download folder [%s]: %s", dest, exc)
            return MaterializeResult(status=MaterializeStatus.FAILED, bundle=bundle, error=str(exc))

        label = f"[{owner}]" + (f":[{bundle.folder_name}]" if owner != bundle.folder_name else "")
        self._log.info("Downloading bundle [%d/%d]... %s", index, total, label)

        written = 0
        try:
            for file in bundle.files:
                written += await self._download_file(file, dest)
        except (RemoteError, LocalIOError) as exc:
            self._log.warning("Failed to download [%s] to [%s]: %s", bundle.name, dest, exc)
            shutil.rmtree(dest, ignore_errors=True)
            return MaterializeResult(status=MaterializeStatus.FAILED, bundle=bundle, error=str(exc))

        if bundle.is_archive:
            try:
                await self._extract_archive(bundle, dest)
            except LocalIOError as exc:
                self._log.error("%s", exc)
                return MaterializeResult(status=MaterializeStatus.FAILED, bundle=bundle, path=dest, error=str(exc))

        bundle.download_path = dest
        return MaterializeResult(
            status=MaterializeStatus.DOWNLOADED,
            bundle=bundle,
            path=dest,
            bytes_written=written,
        )

    async def _download_file(self, file: BundleFile, dest: Path) -> int:
        """
        Download one file into `dest` and restore its modified time.

        Returns:
            Number of bytes written.
        """
        final_path = dest / sanitize_filename(file.name)
        stream = await self._client.open_download_stream(file.id)
        try:
            written = await self._write_stream(stream, final_path, file)
        finally:
            stream.close()

        self._restore_modified_time(final_path, file.modified_time)
        return written

    async def _write_stream(self, stream: BinaryIO, final_path: Path, file: BundleFile) -> int:
        """Stream into a temp file next to `final_path`, then atomically replace."""
        try:
            fd, tmp_path_str = tempfile.mkstemp(
                dir=str(final_path.parent),
                prefix=f".{final_path.name[:100]}.",
                suffix=".tmp",
            )
        except OSError as exc:
            raise LocalIOError(f"Failed to write to [{final_path}]: {exc}") from exc

        tmp_path = Path(tmp_path_str)
        written = 0
        try:
            with os.fdopen(fd, "wb") as f:
                while True:
                    try:
                        chunk = await asyncio.to_thread(stream.read, self._chunk_size)
                    except (OSError, http.client.HTTPException) as exc:
                        raise TransientError(f"Download of [{file.name}] was interrupted: {exc}") from exc
                    if not chunk:
                        break
                    try:
                        f.write(chunk)
                    except OSError as exc:
                        raise LocalIOError(f"Failed to write to [{final_path}]: {exc}") from exc
                    written += len(chunk)
                    if self._on_progress:
                        self._on_progress(file.name, written, file.size)

            if file.size is not None and written != file.size:
                raise TransientError(f"Download of [{file.name}] ended after {written} of {file.size} bytes")

            try:
                os.replace(tmp_path, final_path)
            except OSError as exc:
                raise LocalIOError(f"Failed to write to [{final_path}]: {exc}") from exc
        finally:
            try:
                tmp_path.unlink()
            except FileNotFoundError:
                pass

        return written

    def _restore_modified_time(self, path: Path, modified_time: datetime) -> None:
        ts = modified_time.timestamp()
        try:
            os.utime(path, (ts, ts))
        except OSError as exc:
            if self._strict_timestamps:
                raise LocalIOError(f"Failed to update the last modified time of [{path}]: {exc}") from exc
            self._log.warning("Failed to update the last modified time of [%s]: %s", path, exc)

    async def _extract_archive(self, bundle: Bundle, dest: Path) -> None:
        """
        Extract the bundle's archive into `dest`, then delete the archive.

        If extraction fails, the operator is asked to extract it by hand.
        """
        archive_path = dest / sanitize_filename(bundle.files[0].name)
        try:
            await asyncio.to_thread(self._extractor.extract, archive_path, dest)
        except ExtractionError as exc:
            self._stats.extraction_failures += 1
            self._log.error("Failed to extract archive at [%s]: %s", archive_path, exc)
            self._prompter.acknowledge(
                f"Please manually extract it to [{dest}], then continue. (don't delete the archive)"
            )

        try:
            archive_path.unlink(missing_ok=True)
        except OSError as exc:
            raise LocalIOError(f"Failed to delete archive at [{archive_path}]: {exc}") from exc
