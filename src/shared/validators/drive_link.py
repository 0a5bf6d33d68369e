"""
Drive link parsing: extract the item id from a shared link or a bare id.

Accepted:
- a bare id: `1AbC...` (letters, digits, `-`, `_`)
- `https://drive.google.com/drive/folders/<id>` (optionally `/drive/u/<n>/folders/<id>`)
- `https://drive.google.com/file/d/<id>/view`
- `https://drive.google.com/open?id=<id>` (also `uc?id=`)

Query strings such as `?usp=sharing` and trailing slashes are ignored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlparse


@dataclass(frozen=True)
class ValidationResult:
    """Link parse result."""

    valid: bool
    drive_id: Optional[str] = None
    error: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid


DRIVE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{10,}$")
DRIVE_HOSTS = frozenset({"drive.google.com", "docs.google.com"})

_FOLDER_PATH = re.compile(r"^/drive(?:/u/\d+)?/folders/([^/]+)/?$")
_FILE_PATH = re.compile(r"^/file(?:/u/\d+)?/d/([^/]+)(?:/[^/]*)?/?$")
_ID_QUERY_PATHS = frozenset({"/open", "/uc"})


def _check_id(candidate: str) -> ValidationResult:
    if not DRIVE_ID_PATTERN.match(candidate):
        return ValidationResult(valid=False, error=f"Not a valid Drive id: {candidate!r}")
    return ValidationResult(valid=True, drive_id=candidate)


def parse_drive_link(value: str) -> ValidationResult:
    """
    Extract a Drive id from a link or bare id.

    Args:
        value: User input (link or id).

    Returns:
        ValidationResult: valid + drive_id on success, error otherwise.
    """
    if not value or not value.strip():
        return ValidationResult(valid=False, error="Link must not be empty")

    value = value.strip()

    if "://" not in value:
        return _check_id(value)

    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https"):
        return ValidationResult(valid=False, error=f"Unsupported scheme {parsed.scheme}://")

    host = parsed.netloc.lower()
    if host not in DRIVE_HOSTS:
        return ValidationResult(valid=False, error=f"Not a Drive link (host is {parsed.netloc})")

    path = parsed.path

    match = _FOLDER_PATH.match(path) or _FILE_PATH.match(path)
    if match:
        return _check_id(match.group(1))

    if path in _ID_QUERY_PATHS:
        ids = parse_qs(parsed.query).get("id")
        if not ids:
            return ValidationResult(valid=False, error="Link is missing the id= parameter")
        return _check_id(ids[0])

    return ValidationResult(valid=False, error=f"Unrecognized Drive link path: {path}")
