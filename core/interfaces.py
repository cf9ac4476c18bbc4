"""
Core interfaces for the exporter platform.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, List

from .models import RawItem


class Transform(ABC):
    """Universal transform interface for pipeline stages.

    Every stage of a poll (fetch, parse, sink) implements this interface,
    which lets stages be chained over async iterators.
    """

    @abstractmethod
    async def __call__(
        self, items: AsyncIterator[Any]
    ) -> AsyncIterator[Any]:
        """Transform an async iterator of items to another async iterator."""
        ...


class Fetcher(Transform):
    """Abstract base class for data fetchers.

    Fetchers ignore their input and yield RawItems.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this fetcher."""
        pass

    @abstractmethod
    async def fetch(self) -> AsyncIterator[RawItem]:
        """Fetch raw data items."""
        pass

    async def __call__(self, items: AsyncIterator[Any]) -> AsyncIterator[RawItem]:
        """Transform interface: ignore input stream and yield fetched items."""
        async for item in items:
            # The input only triggers the fetch
            async for raw_item in self.fetch():
                yield raw_item
            break


class Parser(Transform):
    """Abstract base class for parsers turning RawItems into structured items."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this parser."""
        pass

    @abstractmethod
    def parse(self, item: RawItem) -> List[Any]:
        """Parse one raw item."""
        pass

    async def __call__(self, items: AsyncIterator[Any]) -> AsyncIterator[Any]:
        """Transform interface: parse RawItems, pass anything else through."""
        async for item in items:
            if isinstance(item, RawItem):
                for parsed in self.parse(item):
                    yield parsed
            else:
                yield item


class Sink(Transform):
    """Abstract base class for data sinks.

    Sinks consume items and yield them unchanged.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this sink."""
        pass

    @abstractmethod
    async def handle(self, item: Any) -> None:
        """Handle an item."""
        pass

    async def __call__(self, items: AsyncIterator[Any]) -> AsyncIterator[Any]:
        """Transform interface: handle items and pass them through."""
        async for item in items:
            await self.handle(item)
            yield item
