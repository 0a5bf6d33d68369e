from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def _ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def compute_runtime_s(
    started_at: Optional[datetime],
    finished_at: Optional[datetime],
    *,
    now: Optional[datetime] = None,
) -> float:
    """
    Compute runtime in seconds.

    A run that has not started yet has zero runtime; an unfinished run is
    measured up to `now`.
    """
    if started_at is None:
        return 0.0

    if now is None:
        now = datetime.now(timezone.utc)

    start = _ensure_utc(started_at)
    end = _ensure_utc(finished_at) if finished_at is not None else _ensure_utc(now)

    return max(0.0, float((end - start).total_seconds()))


def compute_avg_speed(
    bundles_downloaded: int,
    bundles_skipped: int,
    runtime_s: float,
) -> float:
    """
    avg_speed = (bundles_downloaded + bundles_skipped) / runtime
    (runtime > 0)
    """
    if runtime_s <= 0:
        return 0.0

    total = int(bundles_downloaded) + int(bundles_skipped)
    return float(total) / float(runtime_s)


def compute_throughput(total_bytes: int, runtime_s: float) -> float:
    """Bytes per second; 0.0 when runtime is not positive."""
    if runtime_s <= 0:
        return 0.0
    return float(total_bytes) / float(runtime_s)


def format_bytes(num_bytes: float) -> str:
    for unit in ("B", "KB", "MB", "GB"):
        if abs(num_bytes) < 1024:
            return f"{num_bytes:.1f} {unit}" if unit != "B" else f"{int(num_bytes)} B"
        num_bytes /= 1024
    return f"{num_bytes:.1f} TB"
