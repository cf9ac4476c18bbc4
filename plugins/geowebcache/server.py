"""
HTTP surface of the exporter: ``/metrics`` and ``/-/healthy``.

Every scrape of the telemetry path runs one independent poll of the target.
"""

from __future__ import annotations

import logging
import time

from aiohttp import web

from core.config import ExporterSettings

from .exposition import render
from .poll import poll_snapshot

logger = logging.getLogger(__name__)

SETTINGS_KEY = web.AppKey("settings", ExporterSettings)


async def handle_metrics(request: web.Request) -> web.Response:
    settings = request.app[SETTINGS_KEY]
    started = time.monotonic()
    snapshot = await poll_snapshot(settings.target_url, settings.scrape_timeout)
    body, content_type = render(snapshot, request.headers.get("Accept", ""))
    logger.debug(
        f"Served {request.path} up={snapshot is not None} "
        f"in {time.monotonic() - started:.3f}s"
    )
    return web.Response(body=body, headers={"Content-Type": content_type})


async def handle_healthy(request: web.Request) -> web.Response:
    return web.Response(text="ok\n")


def create_app(settings: ExporterSettings) -> web.Application:
    app = web.Application()
    app[SETTINGS_KEY] = settings
    app.router.add_get(settings.telemetry_path, handle_metrics)
    app.router.add_get("/-/healthy", handle_healthy)
    return app


async def start_server(settings: ExporterSettings) -> web.AppRunner:
    """Start listening; the caller owns the returned runner and must clean it up."""
    host, port = settings.host_port()
    runner = web.AppRunner(create_app(settings))
    await runner.setup()
    site = web.TCPSite(runner, host=host, port=port)
    await site.start()
    logger.info(
        f"GWC exporter listening on {settings.listen_address}, scraping {settings.target_url}"
    )
    return runner
