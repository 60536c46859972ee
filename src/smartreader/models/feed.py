from __future__ import annotations

from pydantic import BaseModel


class FeedSource(BaseModel):
    """One RSS source shown on the unified feed."""

    name: str
    url: str
    color: str = "text-slate-600"  # Label colour class on the home page
    domain: str


class FeedItem(BaseModel):
    """Single entry on the unified feed."""

    title: str
    link: str  # "/article/{host}{path}" or "#"
    image: str = ""  # "/image/{host}{path}" or empty
    source: str
    color: str
    timestamp: int = 0  # Epoch milliseconds, 0 when the feed gave no date
