"""
GeoWebCache status page parser – RawItem -> Snapshot.

The page is not a machine-readable API, so extraction is pattern based and
degrades field by field: a statistic that cannot be located or converted is
reported as absent and never stops the rest of the page from being read.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from core.interfaces import Parser
from core.models import RawItem

from .models import MemCacheStats, Snapshot, WindowStats
from .rules import (
    FIELD_RULES,
    MEMCACHE_MARKER,
    MEMCACHE_RULES,
    WINDOW_RULES,
    FieldRule,
)

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize(text: str) -> str:
    """Replace ``&nbsp;`` entities and collapse whitespace runs to one space."""
    text = text.replace("&nbsp;", " ")
    return _WHITESPACE.sub(" ", text)


def extract_fields(rules: Iterable[FieldRule], text: str) -> Dict[str, Any]:
    """Apply each rule independently; misses map to ``None``."""
    return {rule.name: rule.extract(text) for rule in rules}


def extract_windows(text: str) -> Dict[str, Optional[WindowStats]]:
    windows: Dict[str, Optional[WindowStats]] = {}
    for rule in WINDOW_RULES:
        values = rule.extract(text)
        windows[rule.window] = WindowStats(**values) if values is not None else None
    return windows


def extract_memcache(text: str) -> MemCacheStats:
    """All-or-nothing in-memory cache block.

    Without the marker every counter stays at its zero default.  With it,
    each counter is extracted on its own and falls back to its default.
    """
    if MEMCACHE_MARKER not in text:
        return MemCacheStats(present=False)

    values = {
        name: value
        for name, value in extract_fields(MEMCACHE_RULES, text).items()
        if value is not None
    }
    return MemCacheStats(present=True, **values)


def build_snapshot(text: str) -> Snapshot:
    """Build a Snapshot from already-normalized page text.

    Only called after a successful fetch, hence ``up`` is always true here.
    """
    scalars = extract_fields(FIELD_RULES, text)
    return Snapshot(
        up=True,
        windows=extract_windows(text),
        memcache=extract_memcache(text),
        **scalars,
    )


class GwcParser(Parser):
    """Parse the GeoWebCache status page into a single Snapshot."""

    name = "GwcParser"

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def parse(self, item: RawItem) -> List[Snapshot]:
        snapshot = build_snapshot(normalize(item.text(self.encoding)))
        logger.debug(
            f"Parsed snapshot from {item.source}: "
            f"{len(snapshot.missing_fields())} statistics absent"
        )
        return [snapshot]
