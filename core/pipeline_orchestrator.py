"""
Pipeline orchestrator using the Transform chain pattern.

A pipeline is an ordered list of stages (fetcher, parser, sinks).  Each run
builds its own stage instances, so concurrent runs never share state.
"""

import logging
from contextlib import AsyncExitStack
from typing import Any, AsyncIterator, List, Sequence

from .interfaces import Transform

logger = logging.getLogger(__name__)


async def _drain(stages: Sequence[Transform]) -> List[Any]:
    """Execute a pipeline by connecting transform stages; return what comes out."""

    async def seed() -> AsyncIterator[None]:
        """Seed the pipeline with a single None value."""
        yield None

    stream: AsyncIterator[Any] = seed()
    results: List[Any] = []

    # Stages holding resources (HTTP sessions, files) are closed on exit
    async with AsyncExitStack() as stack:
        for stage in stages:
            if hasattr(stage, "__aenter__"):
                await stack.enter_async_context(stage)

        for stage in stages:
            stream = stage(stream)

        async for item in stream:
            results.append(item)

    return results


async def run_pipeline(stages: Sequence[Transform], name: str = "unnamed") -> List[Any]:
    """Run a single pipeline; a failing pipeline is logged and yields nothing."""
    try:
        logger.debug(f"Starting pipeline: {name}")
        results = await _drain(stages)
        logger.debug(f"Pipeline completed: {name} ({len(results)} items)")
        return results
    except Exception as e:
        logger.error(f"Pipeline {name} failed: {e}", exc_info=True)
        return []
