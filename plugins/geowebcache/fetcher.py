"""
GeoWebCache Fetcher - Downloads the HTML status page of a GWC instance.
"""

import logging
import time
from typing import AsyncIterator, Optional

import aiohttp

from core.interfaces import Fetcher
from core.models import RawItem
from core.infra.http import FetchError, HttpClient


logger = logging.getLogger(__name__)

USER_AGENT = "gwc-exporter/0.1"


class GwcFetcher(Fetcher):
    """Fetches the status page once per poll.

    A poll that cannot get a complete 200 response yields nothing; the
    caller treats an empty stream as the target being down.
    """

    name = "GwcFetcher"

    def __init__(
        self,
        target_url: str,
        timeout: float = 5.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.target_url = target_url
        self.http = HttpClient(
            session=session,
            timeout=timeout,
            default_headers={"User-Agent": USER_AGENT, "Accept": "text/html"},
        )

    async def __aenter__(self) -> "GwcFetcher":
        await self.http.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.http.close()

    async def fetch(self) -> AsyncIterator[RawItem]:
        """Fetch the status page - single attempt, no retry."""
        started = time.monotonic()
        try:
            payload = await self.http.get_bytes(self.target_url)
        except FetchError as e:
            logger.warning(f"gwc scrape failed target={self.target_url!r}: {e.reason}")
            return

        logger.debug(
            f"Fetched {len(payload)} bytes from {self.target_url} "
            f"in {time.monotonic() - started:.3f}s"
        )
        yield RawItem(source=self.target_url, payload=payload)
