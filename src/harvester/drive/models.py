"""
Drive item models.

Wire models (pydantic) validate the raw JSON returned by the Drive v3 API;
`RemoteItem` is the normalized, immutable view the rest of the harvester uses.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import MalformedResponseError
from .naming import real_filename

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
SHORTCUT_MIME_TYPE = "application/vnd.google-apps.shortcut"

FIELD_LIST = (
    "id,mimeType,modifiedTime,name,originalFilename,fullFileExtension,"
    "md5Checksum,size,capabilities,shortcutDetails"
)


class ItemKind(str, Enum):
    FILE = "file"
    FOLDER = "folder"
    INDIRECTION = "indirection"


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class CapabilitiesOut(_WireModel):
    can_download: Optional[bool] = Field(default=None, alias="canDownload")


class ShortcutDetailsOut(_WireModel):
    target_id: str = Field(min_length=1, alias="targetId")
    target_mime_type: Optional[str] = Field(default=None, alias="targetMimeType")


class DriveFileOut(_WireModel):
    id: str = Field(min_length=1)
    name: Optional[str] = None
    original_filename: Optional[str] = Field(default=None, alias="originalFilename")
    mime_type: str = Field(min_length=1, alias="mimeType")
    modified_time: datetime = Field(alias="modifiedTime")
    md5_checksum: Optional[str] = Field(default=None, alias="md5Checksum")
    size: Optional[int] = Field(default=None, ge=0)
    full_file_extension: Optional[str] = Field(default=None, alias="fullFileExtension")
    capabilities: Optional[CapabilitiesOut] = None
    shortcut_details: Optional[ShortcutDetailsOut] = Field(default=None, alias="shortcutDetails")


class DriveListOut(_WireModel):
    files: list[DriveFileOut]
    next_page_token: Optional[str] = Field(default=None, alias="nextPageToken")


@dataclass(frozen=True)
class RemoteItem:
    """A file, folder or shortcut as reported by Drive, with its name normalized."""
    id: str
    name: str
    kind: ItemKind
    mime_type: str
    modified_time: datetime
    size: Optional[int] = None
    checksum: Optional[str] = None
    full_file_extension: Optional[str] = None
    target_id: Optional[str] = None
    target_kind: Optional[ItemKind] = None
    can_download: bool = True

    @property
    def is_folder(self) -> bool:
        return self.kind == ItemKind.FOLDER

    @property
    def is_indirection(self) -> bool:
        return self.kind == ItemKind.INDIRECTION

    @property
    def extension(self) -> Optional[str]:
        """Lowercase extension without the dot, or None for extensionless items."""
        if self.full_file_extension:
            return self.full_file_extension.lower()
        if "." in self.name.strip("."):
            return self.name.rsplit(".", 1)[-1].lower()
        return None


def _kind_for_mime(mime_type: Optional[str]) -> ItemKind:
    if mime_type == FOLDER_MIME_TYPE:
        return ItemKind.FOLDER
    if mime_type == SHORTCUT_MIME_TYPE:
        return ItemKind.INDIRECTION
    return ItemKind.FILE


def to_remote_item(wire: DriveFileOut) -> RemoteItem:
    """
    Convert a validated wire model into a `RemoteItem`.

    Raises:
        MalformedResponseError: If a shortcut is missing its target.
    """
    kind = _kind_for_mime(wire.mime_type)
    target_id: Optional[str] = None
    target_kind: Optional[ItemKind] = None

    if kind == ItemKind.INDIRECTION:
        if wire.shortcut_details is None:
            raise MalformedResponseError(f"Shortcut [{wire.id}] is missing its shortcutDetails")
        target_id = wire.shortcut_details.target_id
        # Shortcuts can't point at shortcuts, so anything that isn't a folder is a file.
        target_kind = (
            ItemKind.FOLDER
            if wire.shortcut_details.target_mime_type == FOLDER_MIME_TYPE
            else ItemKind.FILE
        )

    can_download = True
    if wire.capabilities is not None and wire.capabilities.can_download is not None:
        can_download = wire.capabilities.can_download

    return RemoteItem(
        id=wire.id,
        name=real_filename(wire.original_filename, wire.name),
        kind=kind,
        mime_type=wire.mime_type,
        modified_time=wire.modified_time,
        size=wire.size,
        checksum=wire.md5_checksum,
        full_file_extension=wire.full_file_extension,
        target_id=target_id,
        target_kind=target_kind,
        can_download=can_download,
    )


def parse_item(payload: Any) -> RemoteItem:
    """
    Validate a `files.get` payload.

    Raises:
        MalformedResponseError: If required metadata is missing.
    """
    try:
        wire = DriveFileOut.model_validate(payload)
    except ValidationError as exc:
        raise MalformedResponseError(f"Drive response failed to include some item metadata: {exc}") from exc
    return to_remote_item(wire)


def parse_list_page(payload: Any) -> tuple[list[RemoteItem], Optional[str]]:
    """
    Validate one `files.list` page.

    Returns:
        (items, next_page_token) tuple.

    Raises:
        MalformedResponseError: If the page or any item is missing metadata.
    """
    try:
        wire = DriveListOut.model_validate(payload)
    except ValidationError as exc:
        raise MalformedResponseError(f"Drive response failed to include a valid list of files: {exc}") from exc
    items = [to_remote_item(f) for f in wire.files]
    return items, wire.next_page_token or None
