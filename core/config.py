"""
Exporter configuration: command-line flags with environment defaults.

Every flag can also be set through an environment variable (or a ``.env``
file loaded by *python-dotenv*); an explicit flag always wins.
"""

from __future__ import annotations

import argparse
import logging
import os
import re
from typing import List, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_TARGET_URL = "http://127.0.0.1:8080/geowebcache"
DEFAULT_LISTEN_ADDRESS = ":9109"
DEFAULT_TELEMETRY_PATH = "/metrics"
DEFAULT_SCRAPE_TIMEOUT = 5.0

_DURATION_PART = re.compile(r"([0-9]*\.?[0-9]+)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(raw: str) -> float:
    """Parse ``"5s"``, ``"500ms"``, ``"1m30s"`` or bare seconds into seconds."""
    raw = raw.strip()
    if not raw:
        raise ValueError("empty duration")
    try:
        return float(raw)
    except ValueError:
        pass

    pos = 0
    total = 0.0
    for m in _DURATION_PART.finditer(raw):
        if m.start() != pos:
            break
        total += float(m.group(1)) * _DURATION_UNITS[m.group(2)]
        pos = m.end()
    if pos != len(raw) or pos == 0:
        raise ValueError(f"invalid duration {raw!r}")
    return total


def env_or_default(key: str, fallback: str) -> str:
    value = os.getenv(key, "").strip()
    return value or fallback


def env_duration_or_default(key: str, fallback: float) -> float:
    raw = os.getenv(key, "").strip()
    if not raw:
        return fallback
    try:
        return parse_duration(raw)
    except ValueError:
        logger.warning(f"invalid {key}={raw!r}, using default {fallback:g}s")
        return fallback


class ExporterSettings(BaseModel):
    """Resolved exporter settings."""
    target_url: str = DEFAULT_TARGET_URL
    listen_address: str = DEFAULT_LISTEN_ADDRESS
    telemetry_path: str = DEFAULT_TELEMETRY_PATH
    scrape_timeout: float = Field(default=DEFAULT_SCRAPE_TIMEOUT, gt=0)
    log_level: str = "INFO"
    once: bool = False

    @field_validator("target_url")
    @classmethod
    def _check_target(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("target URL must not be empty")
        return v

    @field_validator("listen_address")
    @classmethod
    def _check_listen_address(cls, v: str) -> str:
        split_listen_address(v)
        return v

    @field_validator("telemetry_path")
    @classmethod
    def _check_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"telemetry path must start with '/': {v!r}")
        return v

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, v: str) -> str:
        v = v.upper()
        if not isinstance(logging.getLevelName(v), int):
            raise ValueError(f"unknown log level {v!r}")
        return v

    def host_port(self) -> Tuple[Optional[str], int]:
        """Split the listen address; an empty host means all interfaces."""
        return split_listen_address(self.listen_address)


def split_listen_address(address: str) -> Tuple[Optional[str], int]:
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"listen address must be [host]:port, got {address!r}")
    host = host.strip("[]")
    return (host or None), int(port)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Prometheus exporter for the GeoWebCache HTML status page."
    )
    parser.add_argument(
        "--target.url",
        dest="target_url",
        default=env_or_default("GWC_TARGET_URL", DEFAULT_TARGET_URL),
        help="Full URL of the GeoWebCache HTML status page. Can also be set by GWC_TARGET_URL.",
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        default=env_or_default("GWC_WEB_LISTEN_ADDRESS", DEFAULT_LISTEN_ADDRESS),
        help="Address to listen on for metrics. Can also be set by GWC_WEB_LISTEN_ADDRESS.",
    )
    parser.add_argument(
        "--web.telemetry-path",
        dest="telemetry_path",
        default=env_or_default("GWC_WEB_TELEMETRY_PATH", DEFAULT_TELEMETRY_PATH),
        help="Path under which to expose metrics. Can also be set by GWC_WEB_TELEMETRY_PATH.",
    )
    parser.add_argument(
        "--scrape.timeout",
        dest="scrape_timeout",
        type=parse_duration,
        default=env_duration_or_default("GWC_SCRAPE_TIMEOUT", DEFAULT_SCRAPE_TIMEOUT),
        help="HTTP timeout when scraping the target URL (e.g. 5s). Can also be set by GWC_SCRAPE_TIMEOUT.",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default=env_or_default("GWC_LOG_LEVEL", "INFO"),
        help="Logging level. Can also be set by GWC_LOG_LEVEL.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single poll, print the snapshot as JSON and exit.",
    )
    return parser


def load_settings(argv: Optional[List[str]] = None, *, dotenv: bool = True) -> ExporterSettings:
    """Resolve settings from ``.env``, the environment and *argv*."""
    if dotenv:
        load_dotenv()
    args = build_arg_parser().parse_args(argv)
    return ExporterSettings(**vars(args))
