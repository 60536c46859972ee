"""Unit tests for smartreader.feeds."""

from __future__ import annotations

import asyncio
from email.utils import parsedate_to_datetime

import pytest

from smartreader.errors import UpstreamFetchError
from smartreader.feeds import aggregate_feeds, parse_rss
from smartreader.models.feed import FeedSource

SOURCE = FeedSource(name="BBC", url="https://feeds.example.com/rss.xml", domain="feeds.example.com")

RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss xmlns:media="http://search.yahoo.com/mrss/"><channel>
<title>Channel</title>
<item>
  <title><![CDATA[Headline with <b>CDATA</b>]]></title>
  <link>https://www.bbc.com/zhongwen/articles/c123/trad</link>
  <pubDate>Tue, 14 Oct 2025 08:00:00 GMT</pubDate>
  <media:thumbnail width="240" url="https://ichef.example.com/thumb.jpg?w=240&amp;h=135"/>
</item>
<item>
  <title>Plain &amp; simple title</title>
  <link>https://news.example.com/story?utm_source=rss</link>
  <pubDate>Wed, 15 Oct 2025 09:30:00 +0800</pubDate>
  <enclosure url="https://cdn.example.com/photo.jpg" type="image/jpeg"/>
</item>
<item>
  <title></title>
  <link></link>
</item>
</channel></rss>
"""


def _ms(date: str) -> int:
    return int(parsedate_to_datetime(date).timestamp() * 1000)


# ---------------------------------------------------------------------------
# parse_rss
# ---------------------------------------------------------------------------


class TestParseRss:
    def test_item_count(self) -> None:
        assert len(parse_rss(RSS, SOURCE)) == 3

    def test_cdata_title_and_canonical_link(self) -> None:
        item = parse_rss(RSS, SOURCE)[0]
        assert item.title == "Headline with <b>CDATA</b>"
        assert item.link == "/article/www.bbc.com/zhongwen/articles/c123/simp"
        assert item.source == "BBC"
        assert item.color == SOURCE.color

    def test_media_rewritten_to_image_route(self) -> None:
        items = parse_rss(RSS, SOURCE)
        assert items[0].image == "/image/ichef.example.com/thumb.jpg?w=240&h=135"
        assert items[1].image == "/image/cdn.example.com/photo.jpg"

    def test_plain_title_unescaped_and_query_stripped(self) -> None:
        item = parse_rss(RSS, SOURCE)[1]
        assert item.title == "Plain & simple title"
        assert item.link == "/article/news.example.com/story"

    def test_timestamps(self) -> None:
        items = parse_rss(RSS, SOURCE)
        assert items[0].timestamp == _ms("Tue, 14 Oct 2025 08:00:00 GMT")
        assert items[1].timestamp == _ms("Wed, 15 Oct 2025 09:30:00 +0800")

    def test_missing_fields_degrade(self) -> None:
        item = parse_rss(RSS, SOURCE)[2]
        assert item.title == "No Title"
        assert item.link == "#"
        assert item.image == ""
        assert item.timestamp == 0

    def test_garbage_input(self) -> None:
        assert parse_rss("<html>not a feed</html>", SOURCE) == []


# ---------------------------------------------------------------------------
# aggregate_feeds
# ---------------------------------------------------------------------------


def _feed(title: str, date: str) -> str:
    return (
        f"<rss><channel><item><title>{title}</title>"
        f"<link>https://a.example.com/{title}</link><pubDate>{date}</pubDate>"
        "</item></channel></rss>"
    )


class FakeFetcher:
    def __init__(self, responses: dict[str, str | Exception]) -> None:
        self.responses = responses
        self.user_agents: list[str | None] = []

    async def fetch(self, url: str, *, user_agent: str | None = None) -> str:
        self.user_agents.append(user_agent)
        result = self.responses[url]
        if isinstance(result, Exception):
            raise result
        return result


def _source(name: str) -> FeedSource:
    return FeedSource(name=name, url=f"https://{name}.example.com/rss", domain=f"{name}.example.com")


class TestAggregateFeeds:
    async def test_merged_newest_first(self) -> None:
        fetcher = FakeFetcher(
            {
                "https://one.example.com/rss": _feed("older", "Mon, 13 Oct 2025 08:00:00 GMT"),
                "https://two.example.com/rss": _feed("newest", "Wed, 15 Oct 2025 08:00:00 GMT"),
                "https://three.example.com/rss": _feed("middle", "Tue, 14 Oct 2025 08:00:00 GMT"),
            }
        )
        items = await aggregate_feeds(
            [_source("one"), _source("two"), _source("three")], fetcher
        )
        assert [item.title for item in items] == ["newest", "middle", "older"]

    async def test_failed_source_isolated(self) -> None:
        fetcher = FakeFetcher(
            {
                "https://one.example.com/rss": UpstreamFetchError("HTTP 503"),
                "https://two.example.com/rss": _feed("survivor", "Wed, 15 Oct 2025 08:00:00 GMT"),
                "https://three.example.com/rss": RuntimeError("parser exploded"),
            }
        )
        items = await aggregate_feeds(
            [_source("one"), _source("two"), _source("three")], fetcher
        )
        assert [item.title for item in items] == ["survivor"]
        assert items[0].source == "two"

    async def test_all_sources_failing_gives_empty_feed(self) -> None:
        fetcher = FakeFetcher({"https://one.example.com/rss": UpstreamFetchError("down")})
        assert await aggregate_feeds([_source("one")], fetcher) == []

    async def test_user_agent_forwarded(self) -> None:
        fetcher = FakeFetcher({"https://one.example.com/rss": "<rss/>"})
        await aggregate_feeds([_source("one")], fetcher, user_agent="Reader/2.0")
        assert fetcher.user_agents == ["Reader/2.0"]

    async def test_cancellation_not_swallowed(self) -> None:
        class CancellingFetcher:
            async def fetch(self, url: str, *, user_agent: str | None = None) -> str:
                raise asyncio.CancelledError

        with pytest.raises(asyncio.CancelledError):
            await aggregate_feeds([_source("one")], CancellingFetcher())
