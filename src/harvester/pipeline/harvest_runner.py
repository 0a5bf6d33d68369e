from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional

from src.harvester.crawler.crawler import CrawlStats, TreeCrawler
from src.harvester.crawler.models import ResultMap
from src.harvester.crawler.roots import resolve_roots
from src.harvester.drive.client import RemoteClient
from src.harvester.drive.transport import ACCESS_TOKEN_ENV, DriveHttpTransport, DriveTransport, StaticTokenAuthenticator
from src.harvester.fs.extract import ArchiveExtractor
from src.harvester.fs.storage import RootStorageManager
from src.harvester.materializer.materializer import BundleMaterializer, MaterializeStats, ProgressFunc
from src.harvester.net.limiter import LimiterConfig, RequestLimiter
from src.harvester.net.throttle import Throttle
from src.harvester.prompts import Prompter
from src.harvester.settings.models import HarvestSettings
from src.shared.stats.metrics import compute_avg_speed, compute_runtime_s, compute_throughput, format_bytes

logger = logging.getLogger(__name__)


@dataclass
class HarvestSummary:
    """Outcome of one harvest run."""
    roots_configured: int = 0
    roots_resolved: int = 0
    crawl: CrawlStats = field(default_factory=CrawlStats)
    materialize: MaterializeStats = field(default_factory=MaterializeStats)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def runtime_s(self) -> float:
        return compute_runtime_s(self.started_at, self.finished_at)

    @property
    def avg_speed(self) -> float:
        """Bundles processed (downloaded or skipped) per second."""
        return compute_avg_speed(self.materialize.downloaded, self.materialize.skipped_existing, self.runtime_s)

    def to_dict(self) -> dict[str, Any]:
        return {
            "roots_configured": self.roots_configured,
            "roots_resolved": self.roots_resolved,
            "crawl": self.crawl.to_dict(),
            "materialize": self.materialize.to_dict(),
            "runtime_s": self.runtime_s,
            "avg_speed": self.avg_speed,
        }


def build_client(
    settings: HarvestSettings,
    *,
    transport: Optional[DriveTransport] = None,
    access_token: Optional[str] = None,
) -> RemoteClient:
    """
    Wire transport, limiter and retry policies from settings.

    Raises:
        RuntimeError: If no transport is given and no access token is configured.
    """
    if transport is None:
        token = access_token or settings.resolve_access_token()
        if not token:
            raise RuntimeError(f"No access token configured (settings file or {ACCESS_TOKEN_ENV})")
        transport = DriveHttpTransport(StaticTokenAuthenticator(token), proxy=settings.get_proxy())

    limiter = RequestLimiter(
        LimiterConfig(max_concurrent=settings.max_concurrent),
        throttle=Throttle(settings.get_throttle()),
    )
    return RemoteClient(
        transport,
        limiter=limiter,
        listing_retry=settings.get_listing_retry(),
        download_retry=settings.get_download_retry(),
    )


def _log_crawl_summary(results: ResultMap, stats: CrawlStats) -> None:
    bundles = sum(len(b) for b in results.values())
    logger.info(
        "Found %d bundle%s (%d archive%s) in %d item%s.",
        bundles,
        "" if bundles == 1 else "s",
        stats.archives_found,
        "" if stats.archives_found == 1 else "s",
        stats.items_read,
        "" if stats.items_read == 1 else "s",
    )
    if stats.duplicates:
        logger.info("%d duplicate bundle(s) were ignored.", stats.duplicates)
    if stats.size_skipped:
        logger.info("%d file(s) were skipped for exceeding the size limit.", stats.size_skipped)


def _log_summary(summary: HarvestSummary) -> None:
    m = summary.materialize
    runtime_s = summary.runtime_s
    logger.info(
        "Done in %.1fs: %d downloaded (%s, %s/s), %d skipped, %d failed, %d extraction failure(s).",
        runtime_s,
        m.downloaded,
        format_bytes(m.total_bytes),
        format_bytes(compute_throughput(m.total_bytes, runtime_s)),
        m.skipped_existing,
        m.failed,
        m.extraction_failures,
    )


async def run_harvest(
    settings: HarvestSettings,
    *,
    prompter: Prompter,
    client: Optional[RemoteClient] = None,
    extractor: Optional[ArchiveExtractor] = None,
    on_progress: Optional[ProgressFunc] = None,
    clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
) -> HarvestSummary:
    """
    Harvest runner: resolve roots -> crawl -> materialize.

    Note:
    - Every remote call shares one limiter (one client per run).
    - ScanCancelled from either crawl checkpoint propagates to the caller.
    """
    if not settings.roots:
        raise ValueError("No roots configured")

    summary = HarvestSummary(roots_configured=len(settings.roots), started_at=clock())

    if client is None:
        client = build_client(settings)
    if extractor is None:
        extractor = ArchiveExtractor(settings.extractor_path)
    if not extractor.is_available():
        logger.warning("Extraction utility [%s] was not found; archives will need manual extraction.", extractor.extractor_path)

    roots = await resolve_roots(client, settings.roots, prompter=prompter)
    summary.roots_resolved = len(roots)

    crawler = TreeCrawler(client, roots, prompter=prompter, max_size_bytes=settings.max_size_bytes())
    results = await crawler.crawl()
    summary.crawl = crawler.stats
    _log_crawl_summary(results, crawler.stats)

    materializer = BundleMaterializer(
        client,
        RootStorageManager(Path(settings.download_root)),
        prompter=prompter,
        extractor=extractor,
        strict_timestamps=settings.strict_timestamps,
        on_progress=on_progress,
    )
    await materializer.materialize_all(results)
    summary.materialize = materializer.stats

    summary.finished_at = clock()
    _log_summary(summary)
    return summary
