"""
Content heuristics for Drive items (pure logic).

Rules:
- A set of files is a chart bundle if it contains chart notation (.chart / .mid)
  or song audio (.ogg / .mp3 / .wav / .opus)
- .zip / .rar / .7z files are treated as one archived bundle each
"""

from __future__ import annotations

from typing import Iterable, Optional

NOTATION_EXTENSIONS = frozenset({"chart", "mid"})
AUDIO_EXTENSIONS = frozenset({"ogg", "mp3", "wav", "opus"})
ARCHIVE_EXTENSIONS = frozenset({"zip", "rar", "7z"})


def _normalize(extension: Optional[str]) -> str:
    return (extension or "").strip().lstrip(".").lower()


def is_archive_extension(extension: Optional[str]) -> bool:
    return _normalize(extension) in ARCHIVE_EXTENSIONS


def appears_to_be_bundle(extensions: Iterable[Optional[str]]) -> bool:
    exts = {_normalize(e) for e in extensions}
    contains_notes = bool(exts & NOTATION_EXTENSIONS)
    contains_audio = bool(exts & AUDIO_EXTENSIONS)
    return contains_notes or contains_audio
