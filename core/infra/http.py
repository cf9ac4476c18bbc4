"""
http.py – Async HTTP client built on *aiohttp* with a hard per-request
          deadline and per-instance default headers.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Mapping, Optional

import aiohttp

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """A request could not produce a complete 200 response body."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class HttpClient:
    """
    Thin wrapper over *aiohttp.ClientSession* adding:

    * global & per-request headers (keeps user-agent in one place)
    * a total deadline covering connect, headers and body read
    * a single error type (:class:`FetchError`) for every failure mode
    * async context-manager support

    Each call is a single attempt; there is no retry loop.
    """

    def __init__(
        self,
        *,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 5.0,
        default_headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout!r}")
        self._external_session = session
        self._timeout = timeout
        self._own_session: Optional[aiohttp.ClientSession] = None
        self._default_headers: Dict[str, str] = dict(default_headers or {})

    @property
    def timeout(self) -> float:
        return self._timeout

    # ---------------------------------------------- #
    # Async context-manager
    async def __aenter__(self) -> "HttpClient":  # noqa: D401
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        await self.close()

    # ---------------------------------------------- #
    # Session management
    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._external_session:
            return self._external_session
        if self._own_session is None or self._own_session.closed:
            self._own_session = aiohttp.ClientSession()
        return self._own_session

    async def close(self) -> None:
        if self._own_session and not self._own_session.closed:
            await self._own_session.close()
            self._own_session = None

    def _merge_headers(self, extra: Mapping[str, str] | None) -> Dict[str, str]:
        merged: Dict[str, str] = {**self._default_headers}
        if extra:
            merged.update(extra)
        return merged

    # ---------------------------------------------- #
    # Public helpers
    async def get_bytes(self, url: str, *, headers: Mapping[str, str] | None = None) -> bytes:
        """GET *url* and return the full body of a 200 response.

        Raises :class:`FetchError` on transport errors, deadline expiry,
        any status other than 200 and body-read errors.
        """
        session = await self._ensure_session()
        logger.debug("GET %s (deadline %.1fs)", url, self._timeout)
        timeout = aiohttp.ClientTimeout(total=self._timeout)
        try:
            async with session.get(
                url, headers=self._merge_headers(headers), timeout=timeout
            ) as resp:
                if resp.status != 200:
                    raise FetchError(url, f"non-200 response status={resp.status}")
                try:
                    return await resp.read()
                except aiohttp.ClientPayloadError as e:
                    raise FetchError(url, f"cannot read response body: {e}") from e
        except asyncio.TimeoutError as e:
            raise FetchError(url, f"timed out after {self._timeout:g}s") from e
        except aiohttp.InvalidURL as e:
            raise FetchError(url, f"cannot create request: {e}") from e
        except aiohttp.ClientError as e:
            raise FetchError(url, f"request failed: {e}") from e

