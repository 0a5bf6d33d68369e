from __future__ import annotations

from .metrics import compute_avg_speed, compute_runtime_s, compute_throughput, format_bytes

__all__ = [
    "compute_avg_speed",
    "compute_runtime_s",
    "compute_throughput",
    "format_bytes",
]
