from __future__ import annotations

from pydantic import BaseModel


class ArticleView(BaseModel):
    """Everything the article page and the summary route need."""

    source_url: str
    title: str
    image_url: str = ""
    summary_points: list[str] = []
    paragraphs: list[str] = []
    reading_time: str | None = None
    sentiment: str | None = None
    summary_cached: bool = False


class VisitLink(BaseModel):
    label: str
    href: str


class VisitView(BaseModel):
    """Digest of a generic listing page."""

    source_url: str
    title: str
    summary_points: list[str] = []
    links: list[VisitLink] = []
