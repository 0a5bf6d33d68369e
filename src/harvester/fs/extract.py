"""
Archive extraction through an external 7-Zip compatible executable.

Invoked as: <extractor> x <archive> -o<destination> -y
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Optional

DEFAULT_EXTRACTOR_PATH = "7z"
DEFAULT_TIMEOUT_S = 3600.0


class ExtractionError(RuntimeError):
    pass


class ArchiveExtractor:
    def __init__(self, extractor_path: str = DEFAULT_EXTRACTOR_PATH, *, timeout_s: Optional[float] = DEFAULT_TIMEOUT_S) -> None:
        self._extractor_path = extractor_path
        self._timeout_s = timeout_s

    @property
    def extractor_path(self) -> str:
        return self._extractor_path

    def is_available(self) -> bool:
        return shutil.which(self._extractor_path) is not None or Path(self._extractor_path).is_file()

    def build_command(self, archive_path: Path, destination: Path) -> list[str]:
        return [self._extractor_path, "x", str(archive_path), f"-o{destination}", "-y"]

    def extract(self, archive_path: Path, destination: Path) -> None:
        """
        Extract `archive_path` into `destination`.

        Raises:
            ExtractionError: If the executable is missing, times out or exits non-zero.
        """
        cmd = self.build_command(archive_path, destination)
        try:
            proc = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                timeout=self._timeout_s,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ExtractionError(f"Extraction utility not found: {self._extractor_path}") from exc
        except (OSError, subprocess.SubprocessError) as exc:
            raise ExtractionError(f"Failed to run {self._extractor_path}: {exc}") from exc

        if proc.returncode != 0:
            detail = (proc.stderr or proc.stdout or b"").decode("utf-8", errors="replace").strip()
            raise ExtractionError(
                f"{self._extractor_path} exited with code {proc.returncode}" + (f": {detail[-500:]}" if detail else "")
            )
