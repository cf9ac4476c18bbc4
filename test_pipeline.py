"""
Tests for the transform chain, the JSON sink and the one-shot mode.
"""

import asyncio
import io
import json
import logging
from pathlib import Path
from typing import Any, AsyncIterator, List

from aiohttp import web
from aiohttp.test_utils import TestServer, unused_port

import main
from core.config import ExporterSettings
from core.interfaces import Fetcher, Sink
from core.models import RawItem
from core.pipeline_orchestrator import run_pipeline
from plugins.geowebcache.models import Snapshot
from plugins.geowebcache.parser import GwcParser
from plugins.geowebcache.sinks import JsonLinesSink

STATUS_PAGE = (Path(__file__).parent / "testdata" / "gwc_status.html").read_bytes()


class StaticFetcher(Fetcher):
    name = "StaticFetcher"

    def __init__(self, payload: bytes):
        self.payload = payload
        self.entered = False
        self.exited = False

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.exited = True

    async def fetch(self) -> AsyncIterator[RawItem]:
        yield RawItem(source="static", payload=self.payload)


class CollectingSink(Sink):
    name = "CollectingSink"

    def __init__(self):
        self.items: List[Any] = []

    async def handle(self, item: Any) -> None:
        self.items.append(item)


class ExplodingSink(Sink):
    name = "ExplodingSink"

    async def handle(self, item: Any) -> None:
        raise RuntimeError("disk full")


def test_pipeline_chains_stages_and_closes_resources():
    fetcher = StaticFetcher(STATUS_PAGE)
    sink = CollectingSink()

    results = asyncio.run(run_pipeline([fetcher, GwcParser(), sink], name="test"))

    assert len(results) == 1
    assert isinstance(results[0], Snapshot)
    assert sink.items == results
    assert fetcher.entered and fetcher.exited


def test_failing_stage_is_logged_and_yields_nothing(caplog):
    fetcher = StaticFetcher(STATUS_PAGE)

    with caplog.at_level(logging.ERROR):
        results = asyncio.run(
            run_pipeline([fetcher, GwcParser(), ExplodingSink()], name="broken")
        )

    assert results == []
    assert fetcher.exited
    assert "Pipeline broken failed: disk full" in caplog.text


def test_json_lines_sink_writes_snapshots_only():
    stream = io.StringIO()
    sink = JsonLinesSink(stream)
    snapshot = Snapshot(requests_total=5)

    async def scenario():
        await sink.handle(snapshot)
        await sink.handle("not a snapshot")

    asyncio.run(scenario())

    lines = stream.getvalue().splitlines()
    assert sink.written == 1
    assert len(lines) == 1
    record = json.loads(lines[0])
    assert record["up"] is True
    assert record["requests_total"] == 5
    assert record["windows"] == {"3 seconds": None, "15 seconds": None, "60 seconds": None}


def test_run_once_prints_snapshot(capsys):
    async def status_page(request):
        return web.Response(body=STATUS_PAGE, content_type="text/html")

    async def scenario():
        app = web.Application()
        app.router.add_get("/geowebcache", status_page)
        async with TestServer(app) as server:
            settings = ExporterSettings(target_url=str(server.make_url("/geowebcache")), once=True)
            return await main.run_once(settings)

    assert asyncio.run(scenario()) == 0
    record = json.loads(capsys.readouterr().out)
    assert record["version"] == "1.26.1"
    assert record["memcache"]["present"] is True


def test_run_once_reports_down_target(capsys):
    settings = ExporterSettings(
        target_url=f"http://127.0.0.1:{unused_port()}/geowebcache", scrape_timeout=2, once=True
    )

    assert asyncio.run(main.run_once(settings)) == 1
    assert json.loads(capsys.readouterr().out) == {"up": False}


def test_run_once_reports_relative_target_as_down(capsys):
    settings = ExporterSettings(target_url="geowebcache", scrape_timeout=2, once=True)

    assert asyncio.run(main.run_once(settings)) == 1
    assert json.loads(capsys.readouterr().out) == {"up": False}
