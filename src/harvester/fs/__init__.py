"""
File system utilities for bundle storage.

Provides:
- Directory structure management (storage.py)
- Filename sanitizing and bundle folder naming (naming.py)
- External archive extraction (extract.py)
"""

from .storage import RootStorageManager
from .naming import generate_bundle_folder_name, parse_bundle_folder_name, sanitize_filename
from .extract import ArchiveExtractor, ExtractionError

__all__ = [
    "RootStorageManager",
    "generate_bundle_folder_name",
    "parse_bundle_folder_name",
    "sanitize_filename",
    "ArchiveExtractor",
    "ExtractionError",
]
