"""
Local naming conventions.

Bundle folder format: <sanitized bundle name> [<fingerprint prefix>]

- sanitized bundle name: the Drive folder name (or archive filename), made safe
  for Windows, macOS and Linux filesystems
- fingerprint prefix: first 5 characters of the bundle fingerprint, so a bundle
  whose files changed gets a new folder instead of colliding with the old one
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..crawler.fingerprint import FINGERPRINT_PREFIX_LENGTH, fingerprint_prefix

MAX_FILENAME_BYTES = 255

# Look-alike replacements keep names readable after sanitizing.
REPLACEMENTS = {
    "<": "❮",
    ">": "❯",
    ":": "꞉",
    '"': "'",
    "/": "／",
    "\\": "⧵",
    "|": "⏐",
    "?": "？",
    "*": "⁎",
}

CONTROL_CHARS = re.compile(r"[\x00-\x1f\x80-\x9f]")
RESERVED_NAMES = re.compile(r"^(con|prn|aux|nul|com[0-9]|lpt[0-9])(\..*)?$", re.IGNORECASE)

# Pattern to match our folder format: <name> [<prefix>]
BUNDLE_FOLDER_PATTERN = re.compile(
    r"^(.*) \[([a-f0-9]{%d})\]$" % FINGERPRINT_PREFIX_LENGTH,
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ParsedBundleFolder:
    name: str
    prefix: str


def _truncate_utf8(text: str, max_bytes: int) -> str:
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


def _truncate_keeping_extension(text: str, max_bytes: int) -> str:
    """Shorten the stem so a short extension survives truncation."""
    if len(text.encode("utf-8")) <= max_bytes:
        return text
    stem, dot, ext = text.rpartition(".")
    suffix = f".{ext}"
    if not dot or not stem or len(suffix.encode("utf-8")) > max_bytes // 2:
        return _truncate_utf8(text, max_bytes)
    return _truncate_utf8(stem, max_bytes - len(suffix.encode("utf-8"))).rstrip(". ") + suffix


def sanitize_filename(filename: str) -> str:
    """
    Make `filename` safe to use as a single path component.

    Invalid characters are replaced with look-alikes, control characters with
    "_", trailing dots/spaces are dropped, and reserved device names get a "_"
    prefix. If nothing is left, the first 5 hex characters of the name's MD5
    are used instead.
    """
    result = "".join(REPLACEMENTS.get(ch, ch) for ch in filename)
    result = CONTROL_CHARS.sub("_", result)
    if result in (".", ".."):
        result = ""
    result = result.rstrip(". ")
    if RESERVED_NAMES.match(result):
        result = f"_{result}"
    result = _truncate_keeping_extension(result, MAX_FILENAME_BYTES).rstrip(". ")

    if not result:
        return hashlib.md5(filename.encode("utf-8")).hexdigest()[:5]
    return result


def generate_bundle_folder_name(bundle_name: str, fingerprint: str) -> str:
    """
    Generate a bundle folder name following the naming convention.

    The name part is shortened if needed so the whole component stays within
    the filename length limit.
    """
    suffix = f" [{fingerprint_prefix(fingerprint)}]"
    budget = MAX_FILENAME_BYTES - len(suffix.encode("utf-8"))
    name = _truncate_utf8(sanitize_filename(bundle_name), budget)
    return f"{name}{suffix}"


def parse_bundle_folder_name(folder_name: str) -> Optional[ParsedBundleFolder]:
    """
    Parse a bundle folder name (can include path).

    Returns:
        ParsedBundleFolder if the name matches the convention, None otherwise.
    """
    match = BUNDLE_FOLDER_PATTERN.match(Path(folder_name).name)
    if not match:
        return None
    return ParsedBundleFolder(name=match.group(1), prefix=match.group(2).lower())
