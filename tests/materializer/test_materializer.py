"""
Tests for src/harvester/materializer/materializer.py

Covers:
1. Bundles are written to "<root>/<owner>/<name> [<prefix>]" with Drive modified times
2. Re-running over the same crawl result downloads nothing
3. A failed bundle leaves no folder behind and doesn't stop the others
4. Archives are extracted and removed; extraction failures ask for a manual extraction
"""

import asyncio
import os
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock, patch

from src.harvester.crawler.fingerprint import compute_fingerprint
from src.harvester.crawler.models import Bundle, BundleFile, Root
from src.harvester.drive.client import RemoteClient
from src.harvester.drive.errors import RemotePermissionError
from src.harvester.drive.models import parse_item
from src.harvester.fs.extract import ArchiveExtractor, ExtractionError
from src.harvester.fs.storage import RootStorageManager
from src.harvester.materializer.materializer import BundleMaterializer, MaterializeStatus
from src.harvester.net.retry import RetryConfig
from src.harvester.prompts import FixedPrompter
from tests.fakes import FakeDriveTransport

ROOT = Root("r1", "Alice")
DRIVE_MTIME = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc).timestamp()


def _bundle(transport, name, file_ids, *, is_archive=False, root=ROOT):
    files = [BundleFile.from_item(parse_item(transport.items[i])) for i in file_ids]
    return Bundle(
        root=root,
        name=name,
        is_archive=is_archive,
        fingerprint=compute_fingerprint(files),
        folder_name=name,
        folder_id=f"folder-{name}",
        files=files,
    )


def _results(*bundles):
    results = {}
    for b in bundles:
        results.setdefault(b.root.root_id, {})[b.fingerprint] = b
    return results


class MaterializerTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.download_root = Path(self._tmp.name)
        self.storage = RootStorageManager(self.download_root)
        self.transport = FakeDriveTransport()
        self.transport.add_file("song", "song.ogg", content=b"ogg-bytes")
        self.transport.add_file("notes", "notes.chart", content=b"chart-bytes")
        self.transport.add_file("pack", "pack.zip", content=b"zip-bytes")
        self.extractor = Mock(spec=ArchiveExtractor)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _materializer(self, prompter=None, **kwargs) -> BundleMaterializer:
        client = RemoteClient(self.transport, download_retry=RetryConfig(max_retries=0))
        return BundleMaterializer(
            client,
            self.storage,
            prompter=prompter or FixedPrompter(False),
            extractor=self.extractor,
            **kwargs,
        )

    def _run(self, materializer, results):
        return asyncio.run(materializer.materialize_all(results))


class TestMaterializeFolderBundle(MaterializerTestCase):
    def test_downloads_files_and_restores_times(self) -> None:
        bundle = _bundle(self.transport, "Cool Song", ["song", "notes"])
        progress = []
        materializer = self._materializer(on_progress=lambda *args: progress.append(args))

        outcomes = self._run(materializer, _results(bundle))

        dest = self.download_root.resolve() / "Alice" / f"Cool Song [{bundle.fingerprint[:5]}]"
        self.assertEqual(outcomes[0].status, MaterializeStatus.DOWNLOADED)
        self.assertEqual(bundle.download_path, dest)
        self.assertEqual((dest / "song.ogg").read_bytes(), b"ogg-bytes")
        self.assertEqual((dest / "notes.chart").read_bytes(), b"chart-bytes")
        self.assertAlmostEqual(os.path.getmtime(dest / "song.ogg"), DRIVE_MTIME, places=0)
        self.assertEqual(sorted(p.name for p in dest.iterdir()), ["notes.chart", "song.ogg"])
        self.assertEqual(materializer.stats.downloaded, 1)
        self.assertEqual(materializer.stats.total_bytes, len(b"ogg-bytes") + len(b"chart-bytes"))
        self.assertIn(("song.ogg", 9, 9), progress)

    def test_rerun_is_idempotent(self) -> None:
        bundle = _bundle(self.transport, "Cool Song", ["song", "notes"])
        self._run(self._materializer(), _results(bundle))
        media_calls = self.transport.count("media")

        prompter = FixedPrompter(False)
        second = self._materializer(prompter)
        outcomes = self._run(second, _results(bundle))

        self.assertEqual(outcomes[0].status, MaterializeStatus.SKIPPED_EXISTING)
        self.assertEqual(second.stats.skipped_existing, 1)
        self.assertEqual(self.transport.count("media"), media_calls)
        self.assertEqual(len(prompter.confirmations), 1)
        self.assertIn("Download path already exists", prompter.confirmations[0])

    def test_existing_root_deleted_when_confirmed(self) -> None:
        stale = self.storage.ensure_root_dir("Alice") / "old [abcde]"
        stale.mkdir()
        bundle = _bundle(self.transport, "Cool Song", ["song"])

        self._run(self._materializer(FixedPrompter(True)), _results(bundle))

        self.assertFalse(stale.exists())
        self.assertTrue(bundle.download_path.is_dir())

    def test_failed_bundle_is_removed_and_others_continue(self) -> None:
        self.transport.fail("media", "notes", RemotePermissionError("gone", status_code=404))
        broken = _bundle(self.transport, "Broken", ["song", "notes"])
        fine = _bundle(self.transport, "Fine", ["song"])
        materializer = self._materializer()

        outcomes = self._run(materializer, _results(broken, fine))

        self.assertEqual([o.status for o in outcomes], [MaterializeStatus.FAILED, MaterializeStatus.DOWNLOADED])
        self.assertFalse(self.storage.get_bundle_dir("Alice", "Broken", broken.fingerprint).exists())
        self.assertIsNone(broken.download_path)
        self.assertEqual(materializer.stats.failed, 1)
        self.assertEqual(materializer.stats.downloaded, 1)

    def test_truncated_stream_fails_bundle(self) -> None:
        self.transport.add_file("short", "short.ogg", content=b"abc", size=100)
        bundle = _bundle(self.transport, "Short", ["short"])

        outcomes = self._run(self._materializer(), _results(bundle))

        self.assertEqual(outcomes[0].status, MaterializeStatus.FAILED)
        self.assertFalse(self.storage.get_bundle_dir("Alice", "Short", bundle.fingerprint).exists())

    def test_timestamp_failure_is_logged_by_default(self) -> None:
        bundle = _bundle(self.transport, "Cool Song", ["song"])
        with patch("src.harvester.materializer.materializer.os.utime", side_effect=OSError("read-only")):
            with self.assertLogs("src.harvester.materializer.materializer", level="WARNING"):
                outcomes = self._run(self._materializer(), _results(bundle))
        self.assertEqual(outcomes[0].status, MaterializeStatus.DOWNLOADED)

    def test_timestamp_failure_is_fatal_when_strict(self) -> None:
        bundle = _bundle(self.transport, "Cool Song", ["song"])
        with patch("src.harvester.materializer.materializer.os.utime", side_effect=OSError("read-only")):
            outcomes = self._run(self._materializer(strict_timestamps=True), _results(bundle))
        self.assertEqual(outcomes[0].status, MaterializeStatus.FAILED)
        self.assertFalse(self.storage.get_bundle_dir("Alice", "Cool Song", bundle.fingerprint).exists())


class TestMaterializeArchiveBundle(MaterializerTestCase):
    def test_archive_extracted_then_deleted(self) -> None:
        def fake_extract(archive, dest):
            self.assertTrue(archive.is_file())
            (dest / "song.ogg").write_bytes(b"inside")

        self.extractor.extract.side_effect = fake_extract
        bundle = _bundle(self.transport, "pack.zip", ["pack"], is_archive=True)

        outcomes = self._run(self._materializer(), _results(bundle))

        dest = bundle.download_path
        self.assertEqual(outcomes[0].status, MaterializeStatus.DOWNLOADED)
        self.assertEqual([p.name for p in dest.iterdir()], ["song.ogg"])
        self.extractor.extract.assert_called_once_with(dest / "pack.zip", dest)

    def test_extraction_failure_asks_for_manual_extraction(self) -> None:
        self.extractor.extract.side_effect = ExtractionError("7z exited with code 2")
        prompter = FixedPrompter(False)
        bundle = _bundle(self.transport, "pack.zip", ["pack"], is_archive=True)
        materializer = self._materializer(prompter)

        with self.assertLogs("src.harvester.materializer.materializer", level="ERROR"):
            outcomes = self._run(materializer, _results(bundle))

        self.assertEqual(outcomes[0].status, MaterializeStatus.DOWNLOADED)
        self.assertEqual(len(prompter.acknowledgements), 1)
        self.assertIn(str(bundle.download_path), prompter.acknowledgements[0])
        self.assertEqual(materializer.stats.extraction_failures, 1)
        self.assertTrue(bundle.download_path.is_dir())


if __name__ == "__main__":
    unittest.main()
