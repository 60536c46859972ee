"""Shared test fixtures for the smartreader test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiosqlite
import pytest

from smartreader.cache import Cache
from smartreader.config import Settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

ARTICLE_URL = "https://news.example.com/world/2025/story-1"

ARTICLE_HTML = """<!DOCTYPE html>
<html>
<head>
  <title>Test Article Title</title>
  <meta property="og:image" content="/images/hero.jpg">
  <script>var tpl = "<p>this is script text, not a paragraph</p>";</script>
  <style>p { color: red; }</style>
</head>
<body>
  <img src="data:image/gif;base64,R0lGODlhAQABAAAAACw=">
  <img data-src="http://cdn.example.com/body.jpg">
  <p>Short one</p>
  <p>This is the first real paragraph of the article.</p>
  <p>This is the second   real
     paragraph, with a <a href="/other">link</a> inside.</p>
  <noscript><p>Please enable JavaScript to read this page.</p></noscript>
</body>
</html>
"""

LISTING_URL = "https://site.example.com/world/"

LISTING_HTML = """<html>
<head><title>Front Page</title></head>
<body>
  <nav><ul>
    <li><a href="/news/one?ref=nav">First headline story</a></li>
    <li><a href="https://other.example.org/two">Second headline story</a></li>
    <li><a href="javascript:void(0)">Broken link here</a></li>
    <li><a href="/news/one?ref=footer">First headline again</a></li>
  </ul></nav>
  <div><h2>Section heading text</h2></div>
</body>
</html>
"""


@pytest.fixture()
def settings() -> Settings:
    """Settings with a model key and an in-memory cache path."""
    return Settings(model={"api_key": "test-key"}, cache={"db_path": ":memory:"})


@pytest.fixture()
async def cache() -> AsyncGenerator[Cache, None]:
    """Cache over a fresh in-memory database."""
    async with aiosqlite.connect(":memory:") as db:
        cache = Cache(db)
        await cache.init_db()
        yield cache


@pytest.fixture()
def article_page() -> tuple[str, str]:
    """(url, markup) of a small news article."""
    return ARTICLE_URL, ARTICLE_HTML


@pytest.fixture()
def listing_page() -> tuple[str, str]:
    """(url, markup) of a section front with links."""
    return LISTING_URL, LISTING_HTML
