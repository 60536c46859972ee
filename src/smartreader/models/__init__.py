from __future__ import annotations

from smartreader.models.cache import ResponseCacheEntry, SummaryCacheEntry
from smartreader.models.document import ExtractedDocument, LinkRef
from smartreader.models.feed import FeedItem, FeedSource
from smartreader.models.summary import SummaryFormat
from smartreader.models.views import ArticleView, VisitLink, VisitView

__all__ = [
    # document
    "ExtractedDocument",
    "LinkRef",
    # feed
    "FeedSource",
    "FeedItem",
    # summary
    "SummaryFormat",
    # cache
    "ResponseCacheEntry",
    "SummaryCacheEntry",
    # views
    "ArticleView",
    "VisitLink",
    "VisitView",
]
