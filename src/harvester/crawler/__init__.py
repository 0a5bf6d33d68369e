"""
Drive tree crawler.

Provides:
- Root resolution (roots.py)
- Frontier traversal, classification and dedup (crawler.py)
- Bundle fingerprints (fingerprint.py)
"""

from .crawler import CrawlStats, TreeCrawler
from .fingerprint import compute_fingerprint, fingerprint_prefix
from .models import Bundle, BundleFile, FrontierEntry, ItemRef, ResultMap, Root, RootRef, ScanCancelled
from .roots import resolve_roots

__all__ = [
    "CrawlStats",
    "TreeCrawler",
    "compute_fingerprint",
    "fingerprint_prefix",
    "Bundle",
    "BundleFile",
    "FrontierEntry",
    "ItemRef",
    "ResultMap",
    "Root",
    "RootRef",
    "ScanCancelled",
    "resolve_roots",
]
