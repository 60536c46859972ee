"""Route handler for /summary/: the article pipeline, answered as JSON."""

from __future__ import annotations

from typing import TYPE_CHECKING

from smartreader.handlers import article

if TYPE_CHECKING:
    from smartreader.failure import PipelineTrace
    from smartreader.state import AppState


async def handle(
    url: str,
    state: AppState,
    trace: PipelineTrace,
    *,
    user_agent: str | None = None,
) -> dict:
    view = await article.handle(url, state, trace, user_agent=user_agent)
    return {"summary": view.summary_points, "cached": view.summary_cached}
