"""
Bundle materializer: download, extract and restore crawled bundles.
"""

from ..fs.extract import ExtractionError
from .materializer import (
    BundleMaterializer,
    LocalIOError,
    MaterializeResult,
    MaterializeStats,
    MaterializeStatus,
)

__all__ = [
    "BundleMaterializer",
    "ExtractionError",
    "LocalIOError",
    "MaterializeResult",
    "MaterializeStats",
    "MaterializeStatus",
]
