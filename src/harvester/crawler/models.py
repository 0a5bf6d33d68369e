"""
Crawler data model: configured roots, discovered bundles, frontier entries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from ..drive.models import RemoteItem


class ScanCancelled(Exception):
    """The operator declined to continue after a crawl checkpoint."""


@dataclass(frozen=True)
class RootRef:
    """A configured root: a Drive folder/file id plus an optional owner label."""
    drive_id: str
    owner_name: Optional[str] = None

    def to_persist_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"drive_id": self.drive_id}
        if self.owner_name:
            data["owner_name"] = self.owner_name
        return data

    @classmethod
    def from_persist_dict(cls, data: dict[str, Any]) -> "RootRef":
        owner = data.get("owner_name")
        return cls(
            drive_id=str(data.get("drive_id", "") or "").strip(),
            owner_name=(str(owner).strip() or None) if owner is not None else None,
        )


@dataclass(frozen=True)
class Root:
    root_id: str
    owner_label: str
    is_file_root: bool = False


@dataclass(frozen=True)
class BundleFile:
    """Metadata kept for each file of a bundle."""
    id: str
    name: str
    mime_type: str
    modified_time: datetime
    checksum: Optional[str] = None
    size: Optional[int] = None

    @classmethod
    def from_item(cls, item: RemoteItem) -> "BundleFile":
        return cls(
            id=item.id,
            name=item.name,
            mime_type=item.mime_type,
            modified_time=item.modified_time,
            checksum=item.checksum,
            size=item.size,
        )


@dataclass
class Bundle:
    """
    A deduplicated unit of content discovered under a root.

    `name` is the archive filename for archives, otherwise the folder name.
    `download_path` stays None until the bundle is materialized.
    """
    root: Root
    name: str
    is_archive: bool
    fingerprint: str
    folder_name: str
    folder_id: str
    files: list[BundleFile] = field(default_factory=list)
    download_path: Optional[Path] = None


# root id -> fingerprint -> bundle
ResultMap = dict[str, dict[str, Bundle]]


@dataclass(frozen=True)
class ItemRef:
    id: str
    name: str


@dataclass(frozen=True)
class FrontierEntry:
    """One pending visit: a folder to list, or a single file to fetch."""
    item: ItemRef
    parent: ItemRef
    root: Root
    is_file: bool = False
    is_indirection_target: bool = False
    is_root_task: bool = False
