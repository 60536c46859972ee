"""Route handler for /: the unified feed, always fetched live."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from smartreader.feeds import aggregate_feeds

if TYPE_CHECKING:
    from smartreader.models.feed import FeedItem
    from smartreader.state import AppState


async def handle(state: AppState, *, user_agent: str | None = None) -> list[FeedItem]:
    log = structlog.get_logger().bind(route="home")
    items = await aggregate_feeds(state.settings.feeds, state.fetcher, user_agent=user_agent)
    log.info("feed_aggregated", sources=len(state.settings.feeds), items=len(items))
    return items
