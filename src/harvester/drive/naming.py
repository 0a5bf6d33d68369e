"""
Filename normalization for Drive metadata.

Drive reports a display `name` and, for uploaded files, the `originalFilename`
it was uploaded with. Renaming a file in the web UI can drop the extension
from the display name (notably for .mid and .chart files), so the original
extension is appended when the two disagree.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

UNDEFINED_NAME = "NAME_UNDEFINED"

logger = logging.getLogger(__name__)


def _extension(filename: str) -> str:
    return os.path.splitext(filename)[1]


def real_filename(original_filename: Optional[str], name: Optional[str]) -> str:
    """
    Pick the filename to use locally for a Drive item.

    Args:
        original_filename: Drive's `originalFilename` field, if present.
        name: Drive's display `name` field, if present.

    Returns:
        The display name, with the original extension appended when the
        display name's extension differs from it.
    """
    if original_filename is None and name is None:
        logger.error("Drive returned an unnamed file")
        return UNDEFINED_NAME

    if original_filename is None:
        return name  # type: ignore[return-value]
    if name is None:
        return original_filename

    ext = _extension(name)
    original_ext = _extension(original_filename)
    if original_ext == "" or ext == original_ext:
        return name
    return name + original_ext
