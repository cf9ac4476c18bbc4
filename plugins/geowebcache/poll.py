"""
One poll of a GeoWebCache instance: fetch -> parse -> (sinks).
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from core.interfaces import Sink, Transform
from core.pipeline_orchestrator import run_pipeline

from .fetcher import GwcFetcher
from .models import Snapshot
from .parser import GwcParser

logger = logging.getLogger(__name__)


def build_stages(
    target_url: str,
    timeout: float,
    sinks: Sequence[Sink] = (),
) -> List[Transform]:
    """Fresh stage instances for a single poll."""
    return [GwcFetcher(target_url, timeout=timeout), GwcParser(), *sinks]


async def poll_snapshot(
    target_url: str,
    timeout: float,
    sinks: Sequence[Sink] = (),
) -> Optional[Snapshot]:
    """Run one poll.

    Returns the Snapshot, or ``None`` when the target could not be reached
    and read (liveness failure).  No extraction happens in that case.
    """
    stages = build_stages(target_url, timeout, sinks)
    for item in await run_pipeline(stages, name="gwc"):
        if isinstance(item, Snapshot):
            return item
    return None
