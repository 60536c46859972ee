"""RSS parsing and multi-source aggregation for the unified feed.

The parser is deliberately regex-based: the feeds are small, frequently
malformed and only five fields per item are needed.
"""

from __future__ import annotations

import asyncio
import html
import re
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING

import structlog

from smartreader.errors import SmartReaderError
from smartreader.models.feed import FeedItem
from smartreader.urls import canonical_source_url, to_article_path, to_image_path

if TYPE_CHECKING:
    from smartreader.models.feed import FeedSource
    from smartreader.protocols import FetcherProtocol

log = structlog.get_logger()

_ITEM_RE = re.compile(r"<item\b[^>]*>[\s\S]*?</item>")
_TITLE_CDATA_RE = re.compile(r"<title><!\[CDATA\[([\s\S]*?)\]\]></title>")
_TITLE_RE = re.compile(r"<title>([\s\S]*?)</title>")
_LINK_RE = re.compile(r"<link>([\s\S]*?)</link>")
_PUBDATE_RE = re.compile(r"<pubDate>([\s\S]*?)</pubDate>")
_MEDIA_RES = (
    re.compile(r'<media:thumbnail[^>]*url="([\s\S]*?)"'),
    re.compile(r'<media:content[^>]*url="([\s\S]*?)"'),
    re.compile(r'<enclosure[^>]*url="([\s\S]*?)"'),
    re.compile(r'<img[^>]*src="([\s\S]*?)"'),
)


def _first_group(pattern: re.Pattern[str], text: str) -> str:
    match = pattern.search(text)
    return match.group(1) if match else ""


def _parse_timestamp(pub_date: str) -> int:
    """RFC 2822 date → epoch milliseconds, 0 when missing or unparsable."""
    if not pub_date.strip():
        return 0
    try:
        return int(parsedate_to_datetime(pub_date.strip()).timestamp() * 1000)
    except (TypeError, ValueError):
        return 0


def _article_link(link: str) -> str:
    link = html.unescape(link.strip())
    if not link.startswith(("http://", "https://")):
        return "#"
    return to_article_path(canonical_source_url(link), strip_query=True)


def parse_rss(xml: str, source: FeedSource) -> list[FeedItem]:
    """Extract feed items from raw RSS text. Unknown fields degrade to defaults."""
    items: list[FeedItem] = []
    for block in _ITEM_RE.findall(xml):
        title = _first_group(_TITLE_CDATA_RE, block) or _first_group(_TITLE_RE, block)
        image = ""
        for pattern in _MEDIA_RES:
            media = _first_group(pattern, block)
            if media:
                image = to_image_path(html.unescape(media.strip()))
                break

        items.append(
            FeedItem(
                title=html.unescape(title.strip()) or "No Title",
                link=_article_link(_first_group(_LINK_RE, block)),
                image=image,
                source=source.name,
                color=source.color,
                timestamp=_parse_timestamp(_first_group(_PUBDATE_RE, block)),
            )
        )
    return items


async def _fetch_source(
    source: FeedSource, fetcher: FetcherProtocol, user_agent: str | None
) -> list[FeedItem]:
    try:
        xml = await fetcher.fetch(source.url, user_agent=user_agent)
    except SmartReaderError as exc:
        log.warning("feed_source_failed", source=source.name, url=source.url, error=exc.message)
        return []
    items = parse_rss(xml, source)
    log.debug("feed_source_parsed", source=source.name, items=len(items))
    return items


async def aggregate_feeds(
    sources: list[FeedSource],
    fetcher: FetcherProtocol,
    *,
    user_agent: str | None = None,
) -> list[FeedItem]:
    """Fetch every source concurrently and merge, newest first.

    A failing source contributes nothing; it never fails the aggregate.
    """
    results = await asyncio.gather(
        *(_fetch_source(source, fetcher, user_agent) for source in sources),
        return_exceptions=True,
    )

    merged: list[FeedItem] = []
    for source, result in zip(sources, results, strict=True):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            log.warning(
                "feed_source_failed",
                source=source.name,
                url=source.url,
                error=repr(result),
            )
            continue
        merged.extend(result)

    merged.sort(key=lambda item: item.timestamp, reverse=True)
    return merged
