import subprocess
import unittest
from pathlib import Path
from unittest.mock import patch

from src.harvester.fs.extract import ArchiveExtractor, ExtractionError


class TestArchiveExtractor(unittest.TestCase):
    def test_build_command(self):
        cmd = ArchiveExtractor("/opt/7z").build_command(Path("/lib/a/pack.zip"), Path("/lib/a"))
        self.assertEqual(cmd, ["/opt/7z", "x", "/lib/a/pack.zip", "-o/lib/a", "-y"])

    def test_success(self):
        done = subprocess.CompletedProcess(args=[], returncode=0, stdout=b"Everything is Ok", stderr=b"")
        with patch("src.harvester.fs.extract.subprocess.run", return_value=done) as run:
            ArchiveExtractor().extract(Path("pack.zip"), Path("out"))
        self.assertEqual(run.call_args.args[0][:2], ["7z", "x"])

    def test_non_zero_exit(self):
        failed = subprocess.CompletedProcess(args=[], returncode=2, stdout=b"", stderr=b"Data Error")
        with patch("src.harvester.fs.extract.subprocess.run", return_value=failed):
            with self.assertRaises(ExtractionError) as ctx:
                ArchiveExtractor().extract(Path("pack.zip"), Path("out"))
        self.assertIn("code 2", str(ctx.exception))
        self.assertIn("Data Error", str(ctx.exception))

    def test_missing_executable(self):
        with patch("src.harvester.fs.extract.subprocess.run", side_effect=FileNotFoundError("7z")):
            with self.assertRaises(ExtractionError) as ctx:
                ArchiveExtractor().extract(Path("pack.zip"), Path("out"))
        self.assertIn("not found", str(ctx.exception))

    def test_timeout(self):
        with patch("src.harvester.fs.extract.subprocess.run", side_effect=subprocess.TimeoutExpired("7z", 1)):
            with self.assertRaises(ExtractionError):
                ArchiveExtractor(timeout_s=1).extract(Path("pack.zip"), Path("out"))

    def test_is_available(self):
        with patch("src.harvester.fs.extract.shutil.which", return_value=None):
            self.assertFalse(ArchiveExtractor("definitely-not-installed-7z").is_available())
        with patch("src.harvester.fs.extract.shutil.which", return_value="/usr/bin/7z"):
            self.assertTrue(ArchiveExtractor().is_available())


if __name__ == "__main__":
    unittest.main()
