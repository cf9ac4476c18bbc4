"""
Snapshot models for the GeoWebCache status page.

A :class:`Snapshot` always carries every field below; a statistic that could
not be extracted is ``None``, never a missing key and never a sentinel number.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

# Time windows reported by the runtime statistics table, in page order.
WINDOWS = ("3 seconds", "15 seconds", "60 seconds")


def _empty_windows() -> Dict[str, Optional["WindowStats"]]:
    return {window: None for window in WINDOWS}


class WindowStats(BaseModel):
    """Request statistics for one time window."""
    requests: Optional[int] = None
    rate: Optional[float] = None
    bytes: Optional[int] = None
    bandwidth_mbps: Optional[float] = None


class MemCacheStats(BaseModel):
    """In-memory cache statistics.

    Either the whole block was found on the page (``present``) or it was not,
    in which case every counter stays at zero.
    """
    present: bool = False
    requests: int = 0
    hits: int = 0
    misses: int = 0
    hit_ratio: float = 0.0
    miss_ratio: float = 0.0
    evictions: int = 0
    occupation: float = 0.0
    actual_bytes: float = 0.0
    total_bytes: float = 0.0


class Snapshot(BaseModel):
    """One poll's complete extraction result."""
    up: bool = True

    started_at: Optional[datetime] = None
    uptime_seconds: Optional[int] = None

    requests_total: Optional[int] = None
    requests_rate: Optional[float] = None
    untiled_requests_total: Optional[int] = None
    untiled_requests_rate: Optional[float] = None
    bytes_total: Optional[int] = None
    bandwidth_mbps: Optional[float] = None
    cache_hit_ratio: Optional[float] = None
    blank_ratio: Optional[float] = None

    peak_request_rate: Optional[float] = None
    peak_request_rate_at: Optional[datetime] = None
    peak_bandwidth_mbps: Optional[float] = None
    peak_bandwidth_at: Optional[datetime] = None
    stats_delay_seconds: Optional[float] = None

    windows: Dict[str, Optional[WindowStats]] = Field(default_factory=_empty_windows)

    config_file: Optional[str] = None
    local_storage: Optional[str] = None
    version: Optional[str] = None
    build: Optional[str] = None

    memcache: MemCacheStats = Field(default_factory=MemCacheStats)

    def missing_fields(self) -> List[str]:
        """Names of the statistics that resolved to absent, in schema order."""
        missing = [
            name
            for name, value in self
            if value is None
        ]
        missing.extend(
            f"window:{window}" for window, stats in self.windows.items() if stats is None
        )
        return missing
