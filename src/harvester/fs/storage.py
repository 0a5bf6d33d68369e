"""
Download directory structure management.

Directory structure:
    <download_root>/<sanitized owner label>/<bundle folder>/
"""

from __future__ import annotations

import shutil
from pathlib import Path

from .naming import ParsedBundleFolder, generate_bundle_folder_name, parse_bundle_folder_name, sanitize_filename


class RootStorageManager:
    """
    Maps roots and bundles to local folders.

    Each root owns one folder named after its owner label; each bundle gets
    its own folder inside it.
    """

    def __init__(self, download_root: Path):
        """
        Args:
            download_root: The root directory for all downloads.
        """
        self._download_root = Path(download_root).resolve()

    @property
    def download_root(self) -> Path:
        return self._download_root

    def get_root_dir(self, owner_label: str) -> Path:
        return self._download_root / sanitize_filename(owner_label)

    def get_bundle_dir(self, owner_label: str, bundle_name: str, fingerprint: str) -> Path:
        return self.get_root_dir(owner_label) / generate_bundle_folder_name(bundle_name, fingerprint)

    def root_exists(self, owner_label: str) -> bool:
        return self.get_root_dir(owner_label).exists()

    def ensure_root_dir(self, owner_label: str) -> Path:
        """
        Create the root's folder if needed.

        Raises:
            OSError: If the directory cannot be created.
        """
        path = self.get_root_dir(owner_label)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def delete_root_dir(self, owner_label: str) -> bool:
        """
        Remove the root's folder and everything in it.

        Returns:
            True if a folder was removed.
        """
        path = self.get_root_dir(owner_label)
        if not path.exists():
            return False
        shutil.rmtree(path)
        return True

    def list_bundle_folders(self, owner_label: str) -> list[ParsedBundleFolder]:
        """List the bundle folders already present under a root."""
        root_dir = self.get_root_dir(owner_label)
        if not root_dir.is_dir():
            return []
        found = []
        for child in sorted(root_dir.iterdir()):
            if not child.is_dir():
                continue
            parsed = parse_bundle_folder_name(child.name)
            if parsed is not None:
                found.append(parsed)
        return found
