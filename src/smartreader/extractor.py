"""Streaming structural extractor.

Single-pass, event-driven parse over HTML chunks as they arrive from the
fetcher. Recovers the title, a hero image, body paragraphs and (on listing
pages) outbound links. Every URL is sandboxed on the way out: resolved
against the page, forced to https, rewritten to an internal route and
replaced by a placeholder token before any text reaches the prompt builder.
"""

from __future__ import annotations

from enum import StrEnum
from html.parser import HTMLParser
from typing import TYPE_CHECKING

from smartreader.models.document import ExtractedDocument, LinkRef
from smartreader.placeholders import PlaceholderTable
from smartreader.urls import resolve_url, to_article_path, to_image_path

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

SOCIAL_IMAGE_KEYS = frozenset(
    {
        "og:image",
        "og:image:url",
        "og:image:secure_url",
        "twitter:image",
        "twitter:image:src",
    }
)
IMAGE_TAGS = frozenset({"img", "amp-img"})
IMAGE_SOURCE_ATTRS = ("src", "data-src", "data-lazy-src", "data-original")
SKIP_TAGS = frozenset({"script", "style", "noscript", "template"})
# Their <title> children label icons, not the document
FOREIGN_TAGS = frozenset({"svg", "math"})
CONTAINER_TAGS = frozenset(
    {"div", "section", "article", "main", "header", "footer", "nav", "aside", "ul", "ol"}
)
ARTICLE_TEXT_TAGS = frozenset({"p"})
LISTING_TEXT_TAGS = frozenset({"p", "h1", "h2", "h3", "h4", "h5", "h6", "li"})

INDENT = "  "


class ExtractionMode(StrEnum):
    ARTICLE = "article"
    LISTING = "listing"


def _collapse(text: str) -> str:
    return " ".join(text.split())


class PageExtractor(HTMLParser):
    """Incremental extractor; call ``feed`` per chunk, then ``finish`` once."""

    def __init__(
        self,
        base_url: str,
        *,
        mode: ExtractionMode = ExtractionMode.ARTICLE,
        min_text_length: int = 15,
        strip_link_query: bool = True,
    ) -> None:
        super().__init__(convert_charrefs=True)
        self.base_url = base_url
        self.mode = mode
        self.min_text_length = min_text_length
        self.strip_link_query = strip_link_query
        self.table = PlaceholderTable()

        self._text_tags = (
            LISTING_TEXT_TAGS if mode == ExtractionMode.LISTING else ARTICLE_TEXT_TAGS
        )
        self._skip_depth = 0
        self._foreign_depth = 0
        self._depth = 0

        self._title_parts: list[str] = []
        self._in_title = False
        self._title_done = False

        self._social_image: str | None = None
        self._body_image: str | None = None

        self._capture: list[str] | None = None
        self._anchor_target: str | None = None
        self._anchor_parts: list[str] = []

        self._paragraphs: list[str] = []
        self._links: list[LinkRef] = []
        self._outline: list[str] = []

    # ------------------------------------------------------------------
    # Parser events
    # ------------------------------------------------------------------

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag in SKIP_TAGS:
            self._skip_depth += 1
            return
        if self._skip_depth:
            return

        attrs_map = {name.lower(): (value or "").strip() for name, value in attrs}

        if tag in FOREIGN_TAGS:
            self._foreign_depth += 1
        if tag == "title" and not self._title_done and not self._foreign_depth:
            self._in_title = True
        elif tag == "meta":
            self._handle_meta(attrs_map)
        elif tag in IMAGE_TAGS:
            self._handle_image(attrs_map)
        elif tag == "br" and self._capture is not None:
            self._capture.append(" ")

        if self.mode != ExtractionMode.LISTING:
            if tag in self._text_tags:
                self._start_capture()
            return

        if tag in CONTAINER_TAGS:
            self._depth += 1
        if tag in self._text_tags:
            self._start_capture()
        if tag == "a":
            self._finish_anchor()
            self._anchor_target = resolve_url(attrs_map.get("href", ""), self.base_url)
            self._anchor_parts = []

    def handle_endtag(self, tag: str) -> None:
        if tag in SKIP_TAGS:
            if self._skip_depth:
                self._skip_depth -= 1
            return
        if self._skip_depth:
            return

        if tag in FOREIGN_TAGS and self._foreign_depth:
            self._foreign_depth -= 1
        if tag == "title" and self._in_title:
            self._in_title = False
            self._title_done = True
        if tag == "a":
            self._finish_anchor()
        if tag in self._text_tags:
            self._flush_capture()
        if self.mode == ExtractionMode.LISTING and tag in CONTAINER_TAGS and self._depth:
            self._depth -= 1

    def handle_data(self, data: str) -> None:
        if self._skip_depth:
            return
        if self._in_title:
            self._title_parts.append(data)
        if self._capture is not None:
            self._capture.append(data)
        if self._anchor_target is not None:
            self._anchor_parts.append(data)

    # ------------------------------------------------------------------
    # Element handlers
    # ------------------------------------------------------------------

    def _handle_meta(self, attrs_map: dict[str, str]) -> None:
        if self._social_image is not None:
            return
        key = (attrs_map.get("property") or attrs_map.get("name") or "").lower()
        content = attrs_map.get("content", "")
        if key in SOCIAL_IMAGE_KEYS and content:
            self._social_image = resolve_url(content, self.base_url)

    def _handle_image(self, attrs_map: dict[str, str]) -> None:
        if self._body_image is not None:
            return
        for attr in IMAGE_SOURCE_ATTRS:
            src = attrs_map.get(attr, "")
            if not src or src.startswith("data:"):
                continue
            resolved = resolve_url(src, self.base_url)
            if resolved:
                self._body_image = resolved
                return

    def _start_capture(self) -> None:
        # Unclosed <p> is common; a new text element ends the previous one.
        self._flush_capture()
        self._capture = []

    def _flush_capture(self) -> None:
        if self._capture is None:
            return
        text = _collapse("".join(self._capture))
        self._capture = None
        if len(text) <= self.min_text_length:
            return
        self._paragraphs.append(text)
        if self.mode != ExtractionMode.LISTING:
            return
        # <li><a>label</a></li> already produced a "label [L3]" line
        if self._links and self._links[-1].label == text:
            return
        self._outline.append(f"{INDENT * self._depth}{text}")

    def _finish_anchor(self) -> None:
        target = self._anchor_target
        self._anchor_target = None
        if target is None:
            return
        label = _collapse("".join(self._anchor_parts))
        self._anchor_parts = []
        if not label:
            return
        route = to_article_path(target, strip_query=self.strip_link_query)
        token = self.table.register("link", route)
        self._links.append(LinkRef(label=label, token=token))
        self._outline.append(f"{INDENT * self._depth}{label} [{token}]")

    # ------------------------------------------------------------------
    # Result
    # ------------------------------------------------------------------

    def finish(self) -> tuple[ExtractedDocument, PlaceholderTable]:
        """Close the parser and freeze what was collected."""
        self.close()
        self._finish_anchor()
        self._flush_capture()

        images: list[str] = []
        for url in (self._social_image, self._body_image):
            if url:
                token = self.table.register("image", to_image_path(url))
                if token not in images:
                    images.append(token)

        document = ExtractedDocument(
            title=_collapse("".join(self._title_parts)),
            candidate_images=tuple(images),
            paragraphs=tuple(self._paragraphs),
            links=tuple(self._links),
            outline=tuple(self._outline),
        )
        return document, self.table


def extract_html(
    markup: str,
    base_url: str,
    *,
    mode: ExtractionMode = ExtractionMode.ARTICLE,
    min_text_length: int = 15,
    strip_link_query: bool = True,
) -> tuple[ExtractedDocument, PlaceholderTable]:
    """Extract from a complete document held in memory."""
    extractor = PageExtractor(
        base_url,
        mode=mode,
        min_text_length=min_text_length,
        strip_link_query=strip_link_query,
    )
    extractor.feed(markup)
    return extractor.finish()


async def extract_stream(
    chunks: AsyncIterator[str],
    base_url: str,
    *,
    mode: ExtractionMode = ExtractionMode.ARTICLE,
    min_text_length: int = 15,
    strip_link_query: bool = True,
) -> tuple[ExtractedDocument, PlaceholderTable]:
    """Extract while the body is still downloading."""
    extractor = PageExtractor(
        base_url,
        mode=mode,
        min_text_length=min_text_length,
        strip_link_query=strip_link_query,
    )
    async for chunk in chunks:
        extractor.feed(chunk)
    return extractor.finish()
