"""
Core data models for the exporter platform.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RawItem(BaseModel):
    """Raw document fetched from a source. Lives for a single poll."""
    source: str
    payload: bytes
    fetched_at: datetime = Field(default_factory=_utcnow)

    def text(self, encoding: str = "utf-8") -> str:
        """Decode the payload, replacing undecodable bytes."""
        return self.payload.decode(encoding, errors="replace")
