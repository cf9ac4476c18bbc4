"""
GeoWebCache plugin - status page fetcher, parser, sinks and exporter.

* :class:`GwcFetcher` – downloads the HTML status page
* :class:`GwcParser`  – converts :class:`~core.models.RawItem` -> :class:`Snapshot`
* :class:`JsonLinesSink` – writes snapshots as JSON lines
* :func:`render` – Prometheus exposition of a snapshot
"""

from .fetcher import GwcFetcher
from .models import MemCacheStats, Snapshot, WindowStats
from .parser import GwcParser, build_snapshot, normalize
from .sinks import JsonLinesSink
from .exposition import SnapshotCollector, render
from .poll import poll_snapshot

__all__ = [
    "GwcFetcher",
    "GwcParser",
    "JsonLinesSink",
    "MemCacheStats",
    "Snapshot",
    "SnapshotCollector",
    "WindowStats",
    "build_snapshot",
    "normalize",
    "poll_snapshot",
    "render",
]
