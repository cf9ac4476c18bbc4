"""
Prometheus exposition of a GeoWebCache Snapshot.

A fresh registry holding a single :class:`SnapshotCollector` is built for
every scrape, so the rendered series always describe exactly one poll.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterator, Optional, Tuple

from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, Metric
from prometheus_client.exposition import choose_encoder
from prometheus_client.registry import Collector, CollectorRegistry

from .models import Snapshot

NAMESPACE = "gwc"

# (snapshot attribute, metric suffix, help, counter?)
SCALARS = (
    ("requests_total", "requests_total", "Total number of requests.", True),
    ("requests_rate", "requests_rate_per_second", "Reported requests per second.", False),
    ("untiled_requests_total", "untiled_wms_requests_total", "Total number of untiled WMS requests.", True),
    ("untiled_requests_rate", "untiled_wms_requests_rate_per_second", "Reported untiled WMS requests per second.", False),
    ("bytes_total", "bytes_total", "Total number of bytes served.", True),
    ("bandwidth_mbps", "bandwidth_mbps", "Reported bandwidth in Mbps.", False),
    ("cache_hit_ratio", "cache_hit_ratio_percent", "Cache hit ratio (percent of requests).", False),
    ("blank_ratio", "blank_kml_html_ratio_percent", "Blank/KML/HTML percent of requests.", False),
    ("peak_request_rate", "peak_request_rate_per_second", "Peak request rate (/s).", False),
    ("peak_bandwidth_mbps", "peak_bandwidth_mbps", "Peak bandwidth in Mbps.", False),
    ("stats_delay_seconds", "stats_delay_seconds", "Reported delay in runtime statistics.", False),
)

TIMESTAMPS = (
    ("started_at", "started_seconds", "Unix timestamp when GWC reports it started."),
    ("peak_request_rate_at", "peak_request_rate_timestamp_seconds", "Unix timestamp when peak request rate was observed."),
    ("peak_bandwidth_at", "peak_bandwidth_timestamp_seconds", "Unix timestamp when peak bandwidth was observed."),
)

WINDOW_METRICS = (
    ("requests", "interval_requests", "Requests in the reported time window."),
    ("rate", "interval_rate_per_second", "Requests per second in the reported time window."),
    ("bytes", "interval_bytes", "Bytes in the reported time window."),
    ("bandwidth_mbps", "interval_bandwidth_mbps", "Bandwidth Mbps in the reported time window."),
)

MEMCACHE_METRICS = (
    ("requests", "memcache_requests_total", "In-memory cache total number of requests.", True),
    ("hits", "memcache_hit_count_total", "In-memory cache hit count.", True),
    ("misses", "memcache_miss_count_total", "In-memory cache miss count.", True),
    ("hit_ratio", "memcache_hit_ratio_percent", "In-memory cache hit ratio percent.", False),
    ("miss_ratio", "memcache_miss_ratio_percent", "In-memory cache miss ratio percent.", False),
    ("evictions", "memcache_evicted_tiles_total", "Total number of evicted tiles.", True),
    ("occupation", "memcache_occupation_percent", "Cache memory occupation percent.", False),
    ("actual_bytes", "memcache_actual_size_bytes", "Cache actual size in bytes.", False),
    ("total_bytes", "memcache_total_size_bytes", "Cache total size in bytes.", False),
)


def _name(suffix: str) -> str:
    return f"{NAMESPACE}_{suffix}"


def _family(suffix: str, documentation: str, value: float, counter: bool) -> Metric:
    if counter:
        return CounterMetricFamily(_name(suffix), documentation, value=value)
    return GaugeMetricFamily(_name(suffix), documentation, value=value)


def _unix(ts: datetime) -> int:
    return int(ts.timestamp())


class SnapshotCollector(Collector):
    """Collector exposing one Snapshot; ``None`` means the scrape failed."""

    def __init__(self, snapshot: Optional[Snapshot]):
        self.snapshot = snapshot

    def collect(self) -> Iterator[Metric]:
        snap = self.snapshot
        yield GaugeMetricFamily(
            _name("up"),
            "Was the last scrape of GWC status page successful.",
            value=1 if snap is not None else 0,
        )
        if snap is None:
            return

        if snap.version or snap.build:
            info = GaugeMetricFamily(
                _name("build_info"),
                "Version/build info as labels; value 1.",
                labels=["version", "build"],
            )
            info.add_metric([snap.version or "", snap.build or ""], 1)
            yield info

        for attr, suffix, documentation in TIMESTAMPS:
            ts = getattr(snap, attr)
            if ts is not None:
                yield GaugeMetricFamily(_name(suffix), documentation, value=_unix(ts))
        if snap.uptime_seconds is not None:
            yield GaugeMetricFamily(
                _name("uptime_seconds"), "Reported uptime in seconds.", value=snap.uptime_seconds
            )

        for attr, suffix, documentation, counter in SCALARS:
            value = getattr(snap, attr)
            if value is not None:
                yield _family(suffix, documentation, value, counter)

        yield from self._windows(snap)

        if snap.config_file or snap.local_storage:
            storage = GaugeMetricFamily(
                _name("storage_info"),
                "Storage paths as labels.",
                labels=["config_file", "local_storage"],
            )
            storage.add_metric([snap.config_file or "", snap.local_storage or ""], 1)
            yield storage

        # The memory cache series are always emitted to keep a stable metric set
        memcache = snap.memcache
        yield GaugeMetricFamily(
            _name("memcache_present"),
            "1 if 'In Memory Cache Statistics' section is present, else 0.",
            value=1 if memcache.present else 0,
        )
        for attr, suffix, documentation, counter in MEMCACHE_METRICS:
            yield _family(suffix, documentation, getattr(memcache, attr), counter)

        yield GaugeMetricFamily(
            _name("scrape_missing_fields"),
            "Number of statistics that could not be extracted from the status page.",
            value=len(snap.missing_fields()),
        )

    @staticmethod
    def _windows(snap: Snapshot) -> Iterator[Metric]:
        for attr, suffix, documentation in WINDOW_METRICS:
            family = GaugeMetricFamily(_name(suffix), documentation, labels=["window"])
            for window, stats in snap.windows.items():
                if stats is None:
                    continue
                value = getattr(stats, attr)
                if value is not None:
                    family.add_metric([window], value)
            if family.samples:
                yield family


def render(snapshot: Optional[Snapshot], accept_header: str = "") -> Tuple[bytes, str]:
    """Render *snapshot* in the format the scraper asked for."""
    registry = CollectorRegistry(auto_describe=False)
    registry.register(SnapshotCollector(snapshot))
    encoder, content_type = choose_encoder(accept_header or "")
    return encoder(registry), content_type
