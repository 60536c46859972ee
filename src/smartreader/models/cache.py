from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ResponseCacheEntry(BaseModel):
    """Fully rendered response stored by the edge tier."""

    cache_key: str  # scheme://host/path[?query]
    status_code: int
    headers: dict[str, str]
    body: bytes
    stored_at: datetime
    expires_at: datetime


class SummaryCacheEntry(BaseModel):
    """Summary points stored by the durable tier. Never the rendered page."""

    cache_key: str  # Last 64 chars of the base64 canonical URL
    source_url: str
    points: list[str]
    stored_at: datetime
    expires_at: datetime
