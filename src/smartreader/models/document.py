from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class LinkRef(BaseModel):
    """Anchor found on a listing page, with its URL replaced by a token."""

    model_config = ConfigDict(frozen=True)

    label: str
    token: str


class ExtractedDocument(BaseModel):
    """Structural content recovered from one page.

    Every URL has already been swapped for a placeholder token; the real
    targets live in the PlaceholderTable returned alongside.
    """

    model_config = ConfigDict(frozen=True)

    title: str = ""
    candidate_images: tuple[str, ...] = ()  # Social image first, then first body image
    paragraphs: tuple[str, ...] = ()
    links: tuple[LinkRef, ...] = ()
    outline: tuple[str, ...] = ()  # Listing mode only: indented text lines
