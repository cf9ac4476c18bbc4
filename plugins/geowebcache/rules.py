"""
Field rules for the GeoWebCache status page.

Each statistic is described once, declaratively, by a :class:`FieldRule`:
the label patterns that locate it in the normalized page, the capture group
holding the value and the kind of value to convert it to.  The rule tables
below are built at import time and only ever read afterwards, so any number
of concurrent polls can share them.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Pattern, Tuple

from .models import WINDOWS


class ValueKind(enum.Enum):
    INTEGER = "integer"
    FLOAT = "float"
    DURATION = "duration"
    TIMESTAMP = "unix-timestamp"
    STRING = "string"
    MEGABYTES = "megabytes"


# --------------------------------------------------------------------------- #
# Conversions – every helper returns None when the text does not convert.
# --------------------------------------------------------------------------- #

HTTP_DATE_FORMAT = "%a, %d %b %Y %H:%M:%S GMT"

UNIT_SECONDS = {
    "second": 1,
    "seconds": 1,
    "minute": 60,
    "minutes": 60,
    "hour": 3600,
    "hours": 3600,
    "day": 86400,
    "days": 86400,
}

BYTES_PER_MEGABYTE = 1_000_000


def to_int(raw: str) -> Optional[int]:
    """Parse an integer, ignoring ``,`` grouping separators."""
    try:
        return int(raw.replace(",", ""))
    except ValueError:
        return None


def to_float(raw: str) -> Optional[float]:
    try:
        return float(raw.replace(",", ""))
    except ValueError:
        return None


def to_seconds(magnitude: str, unit: str) -> Optional[int]:
    """Convert ``"1.5", "minutes"`` to whole seconds."""
    value = to_float(magnitude)
    multiplier = UNIT_SECONDS.get(unit.strip().lower())
    if value is None or multiplier is None:
        return None
    return int(value * multiplier)


def to_timestamp(raw: str) -> Optional[datetime]:
    """Parse an RFC 1123 date such as ``Mon, 2 Jan 2006 15:04:05 GMT``."""
    try:
        parsed = datetime.strptime(raw.strip(), HTTP_DATE_FORMAT)
    except ValueError:
        return None
    return parsed.replace(tzinfo=timezone.utc)


def to_string(raw: str) -> Optional[str]:
    return raw.strip() or None


def to_bytes_from_mb(raw: str) -> Optional[float]:
    """Megabytes are decimal (10^6 bytes)."""
    value = to_float(raw)
    if value is None:
        return None
    return value * BYTES_PER_MEGABYTE


def _convert_duration(match: re.Match, group: int) -> Optional[int]:
    # magnitude in *group*, unit word in the group right after it
    return to_seconds(match.group(group), match.group(group + 1))


def _single(func: Callable[[str], Any]) -> Callable[[re.Match, int], Any]:
    def convert(match: re.Match, group: int) -> Any:
        return func(match.group(group))
    return convert


CONVERTERS: Dict[ValueKind, Callable[[re.Match, int], Any]] = {
    ValueKind.INTEGER: _single(to_int),
    ValueKind.FLOAT: _single(to_float),
    ValueKind.DURATION: _convert_duration,
    ValueKind.TIMESTAMP: _single(to_timestamp),
    ValueKind.STRING: _single(to_string),
    ValueKind.MEGABYTES: _single(to_bytes_from_mb),
}


# --------------------------------------------------------------------------- #
# Rule records
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class FieldRule:
    """How to find and convert one statistic.

    Patterns are tried in order; the first one that matches *and* converts
    wins.  A rule that never succeeds yields ``None``.
    """
    name: str
    patterns: Tuple[Pattern[str], ...]
    kind: ValueKind
    group: int = 1
    # only search the text in front of this marker
    before: Optional[str] = None

    def extract(self, text: str) -> Any:
        if self.before is not None:
            text = text.split(self.before, 1)[0]
        convert = CONVERTERS[self.kind]
        for pattern in self.patterns:
            match = pattern.search(text)
            if match is None:
                continue
            value = convert(match, self.group)
            if value is not None:
                return value
        return None


@dataclass(frozen=True)
class WindowRule:
    """One row of the per-window statistics table.

    A single pattern captures requests, rate, bytes and bandwidth together.
    """
    window: str
    pattern: Pattern[str]

    def extract(self, text: str) -> Optional[Dict[str, Any]]:
        match = self.pattern.search(text)
        if match is None:
            return None
        return {
            "requests": to_int(match.group(1)),
            "rate": to_float(match.group(2)),
            "bytes": to_int(match.group(3)),
            "bandwidth_mbps": to_float(match.group(4)),
        }


# --------------------------------------------------------------------------- #
# Pattern building blocks
# --------------------------------------------------------------------------- #

INT = r"([0-9,]+)"
FLOAT = r"([0-9.]+)"
HTTP_DATE = r"([A-Za-z]{3}, [0-9]{1,2} [A-Za-z]{3} [0-9]{4} [0-9]{2}:[0-9]{2}:[0-9]{2} GMT)"


def _header_cell(label: str) -> str:
    """Label in a ``<th>``, value in the next ``<td>``."""
    return re.escape(label) + r"\s*</th>\s*<td[^>]*>\s*"


def _data_cell(label: str) -> str:
    """Label in a ``<td>``, value in the next ``<td>``."""
    return re.escape(label) + r"\s*</td>\s*<td[^>]*>\s*"


def _plain(label: str) -> str:
    """Label immediately followed by its value in running text."""
    return re.escape(label) + r"\s*"


def _tight_or_loose(label: str, value: str) -> Tuple[Pattern[str], ...]:
    return (
        re.compile(_header_cell(label) + value),
        re.compile(_plain(label) + value),
    )


def _rule(
    name: str,
    label: str,
    value: str,
    kind: ValueKind,
    group: int = 1,
    before: Optional[str] = None,
) -> FieldRule:
    return FieldRule(name, _tight_or_loose(label, value), kind, group, before)


# --------------------------------------------------------------------------- #
# Schema
# --------------------------------------------------------------------------- #

REQUESTS = "Total number of requests:"
UNTILED = "Total number of untiled WMS requests:"
BYTES = "Total number of bytes:"
PEAK_RATE = "Peak request rate:"
PEAK_BANDWIDTH = "Peak bandwidth:"

# In-memory cache block: present only when the marker is on the page.
# It repeats the "Total number of requests:" label.
MEMCACHE_MARKER = "In Memory Cache Statistics"

VERSION_PATTERN = re.compile(r"Welcome to GeoWebCache version ([^,]+), build ([^<]*)")
STARTED_PATTERNS = _tight_or_loose("Started:", HTTP_DATE)

FIELD_RULES: Tuple[FieldRule, ...] = (
    FieldRule("version", (VERSION_PATTERN,), ValueKind.STRING, 1),
    FieldRule("build", (VERSION_PATTERN,), ValueKind.STRING, 2),
    FieldRule("started_at", STARTED_PATTERNS, ValueKind.TIMESTAMP),
    FieldRule(
        "uptime_seconds",
        (re.compile(r"Started:.*?\(\s*([0-9.]+)\s*(?i:(seconds?|minutes?|hours?|days?))\s*\)"),),
        ValueKind.DURATION,
    ),
    _rule("requests_total", REQUESTS, INT, ValueKind.INTEGER, before=MEMCACHE_MARKER),
    _rule(
        "requests_rate",
        REQUESTS,
        r"[0-9,]+\s*\(\s*([0-9.]+)\s*/s\s*\)",
        ValueKind.FLOAT,
        before=MEMCACHE_MARKER,
    ),
    _rule("untiled_requests_total", UNTILED, INT, ValueKind.INTEGER),
    _rule("untiled_requests_rate", UNTILED, r"[0-9,]+\s*\(\s*([0-9.]+)\s*/s\s*\)", ValueKind.FLOAT),
    _rule("bytes_total", BYTES, INT, ValueKind.INTEGER),
    _rule("bandwidth_mbps", BYTES, r"[0-9,]+\s*\(\s*([0-9.]+)\s*mbps", ValueKind.FLOAT),
    _rule("cache_hit_ratio", "Cache hit ratio:", FLOAT + r"\s*% of requests", ValueKind.FLOAT),
    _rule("blank_ratio", "Blank/KML/HTML:", FLOAT + r"\s*% of requests", ValueKind.FLOAT),
    _rule("peak_request_rate", PEAK_RATE, FLOAT + r"\s*/s", ValueKind.FLOAT),
    _rule("peak_request_rate_at", PEAK_RATE, r"[0-9.]+\s*/s\s*\(([^)]+)\)", ValueKind.TIMESTAMP),
    _rule("peak_bandwidth_mbps", PEAK_BANDWIDTH, FLOAT + r"\s*mbps", ValueKind.FLOAT),
    _rule("peak_bandwidth_at", PEAK_BANDWIDTH, r"[0-9.]+\s*mbps\s*\(([^)]+)\)", ValueKind.TIMESTAMP),
    FieldRule(
        "stats_delay_seconds",
        (re.compile(r"All figures are ([0-9.]+)\s*second\(s\) delayed"),),
        ValueKind.FLOAT,
    ),
    FieldRule("config_file", (re.compile(_header_cell("Config file:") + r"<tt>([^<]+)"),), ValueKind.STRING),
    FieldRule("local_storage", (re.compile(_header_cell("Local Storage:") + r"<tt>([^<]+)"),), ValueKind.STRING),
)

WINDOW_RULES: Tuple[WindowRule, ...] = tuple(
    WindowRule(
        window,
        re.compile(
            r"<tr[^>]*>\s*<td[^>]*>\s*" + re.escape(window) + r"\s*</td>"
            r"\s*<td[^>]*>\s*([0-9,]+)\s*</td>"
            r"\s*<td[^>]*>\s*([0-9.]+)\s*/s\s*</td>"
            r"\s*<td[^>]*>\s*([0-9,]+)\s*</td>"
            r"\s*<td[^>]*>\s*([0-9.]+)\s*mbps"
        ),
    )
    for window in WINDOWS
)

SIZE_PATTERNS = (
    re.compile(r"Cache Actual Size/ Total Size :\s*([0-9.]+)\s*/\s*([0-9.]+)\s*Mb"),
    re.compile(_data_cell("Cache Actual Size/ Total Size :") + r"([0-9.]+)\s*/\s*([0-9.]+)\s*Mb"),
)

MEMCACHE_RULES: Tuple[FieldRule, ...] = (
    FieldRule("requests", (re.compile(_data_cell(REQUESTS) + INT),), ValueKind.INTEGER),
    FieldRule("hits", (re.compile(_data_cell("Internal Cache hit count:") + INT),), ValueKind.INTEGER),
    FieldRule("misses", (re.compile(_data_cell("Internal Cache miss count:") + INT),), ValueKind.INTEGER),
    FieldRule("hit_ratio", (re.compile(_data_cell("Internal Cache hit ratio:") + FLOAT + r"\s*%"),), ValueKind.FLOAT),
    FieldRule("miss_ratio", (re.compile(_data_cell("Internal Cache miss ratio:") + FLOAT + r"\s*%"),), ValueKind.FLOAT),
    FieldRule("evictions", (re.compile(_data_cell("Total number of evicted tiles:") + INT),), ValueKind.INTEGER),
    FieldRule("occupation", (re.compile(_data_cell("Cache Memory occupation:") + FLOAT + r"\s*%"),), ValueKind.FLOAT),
    FieldRule("actual_bytes", SIZE_PATTERNS, ValueKind.MEGABYTES, 1),
    FieldRule("total_bytes", SIZE_PATTERNS, ValueKind.MEGABYTES, 2),
)
