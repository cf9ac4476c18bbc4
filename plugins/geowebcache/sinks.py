"""
Sinks for the GeoWebCache plugin.
"""

import logging
import sys
from typing import Any, TextIO, Optional

from core.interfaces import Sink

from .models import Snapshot


logger = logging.getLogger(__name__)


class JsonLinesSink(Sink):
    """Write every Snapshot as one JSON line."""

    name = "JsonLinesSink"

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout
        self.written = 0

    async def handle(self, item: Any) -> None:
        if not isinstance(item, Snapshot):
            logger.debug(f"Skipping non-snapshot item: {type(item).__name__}")
            return
        self.stream.write(item.model_dump_json() + "\n")
        self.stream.flush()
        self.written += 1
