"""
Main entry point for the GeoWebCache exporter.

Serves Prometheus metrics scraped from a GWC status page, or runs a single
poll with ``--once``.
"""

import asyncio
import logging
import os
import signal
import sys
from typing import List, Optional

from pydantic import ValidationError

# Add project root to PYTHONPATH so imports work when running this script directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from core.config import ExporterSettings, load_settings
from plugins.geowebcache.poll import poll_snapshot
from plugins.geowebcache.server import start_server
from plugins.geowebcache.sinks import JsonLinesSink


logger = logging.getLogger("gwc_exporter")


async def run_once(settings: ExporterSettings) -> int:
    """Poll the target once and print the snapshot; exit code 1 when down."""
    sink = JsonLinesSink()
    snapshot = await poll_snapshot(settings.target_url, settings.scrape_timeout, sinks=[sink])
    if snapshot is None:
        sink.stream.write('{"up": false}\n')
        return 1
    return 0


async def serve(settings: ExporterSettings) -> int:
    """Serve metrics until SIGTERM / SIGINT."""
    stop_event = asyncio.Event()

    def signal_handler():
        logger.info("Received shutdown signal")
        stop_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        asyncio.get_running_loop().add_signal_handler(sig, signal_handler)

    runner = await start_server(settings)
    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down...")
        await runner.cleanup()
        logger.info("Shutdown complete")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    try:
        settings = load_settings(argv)
    except (ValidationError, ValueError) as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(f"Invalid configuration: {e}")
        return 2

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s"
    )

    if settings.once:
        return asyncio.run(run_once(settings))
    return asyncio.run(serve(settings))


if __name__ == "__main__":
    sys.exit(main())
