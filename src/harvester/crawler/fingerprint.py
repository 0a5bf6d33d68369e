"""
Bundle fingerprints.

A fingerprint identifies a bundle by the metadata of its files: the MD5 of
the sorted `checksum + id + name` strings, joined by commas. It changes when
any file's content, id or name changes, and does not depend on listing order.
The first 5 characters are used in download folder names, so a changed bundle
is downloaded again next to the old copy.
"""

from __future__ import annotations

import hashlib
from typing import Iterable, Optional, Protocol

FINGERPRINT_ALGORITHM = "md5"

# Size of the fingerprint prefix used in folder names
FINGERPRINT_PREFIX_LENGTH = 5


class FileIdentity(Protocol):
    id: str
    name: str
    checksum: Optional[str]


def _file_key(file: FileIdentity) -> str:
    return f"{file.checksum or ''}{file.id}{file.name}"


def compute_fingerprint(files: Iterable[FileIdentity]) -> str:
    """
    Compute the fingerprint of a set of files.

    Args:
        files: Objects exposing `checksum`, `id` and `name`.

    Returns:
        Lowercase hexadecimal digest.
    """
    keys = sorted(_file_key(f) for f in files)
    return hashlib.new(FINGERPRINT_ALGORITHM, ",".join(keys).encode("utf-8")).hexdigest()


def fingerprint_prefix(fingerprint: str) -> str:
    """
    Extract the short prefix used in folder names.

    Raises:
        ValueError: If the fingerprint is shorter than the prefix.
    """
    if len(fingerprint) < FINGERPRINT_PREFIX_LENGTH:
        raise ValueError(
            f"Fingerprint must be at least {FINGERPRINT_PREFIX_LENGTH} characters, got {len(fingerprint)}"
        )
    return fingerprint[:FINGERPRINT_PREFIX_LENGTH].lower()
