"""Background scheduler coroutine for cache cleanup."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from smartreader.state import AppState

log = structlog.get_logger()


async def run_cache_cleanup_scheduler(state: AppState) -> None:
    """Run cache cleanup at startup and then on the configured interval."""
    interval_hours = state.settings.cache.cleanup_interval_hours

    # Skipped inside cleanup_if_due when it ran recently (e.g. quick restarts)
    await state.cache.cleanup_if_due(interval_hours)

    while True:
        await asyncio.sleep(interval_hours * 3600)
        try:
            await state.cache.cleanup_if_due(interval_hours)
        except Exception:
            log.warning("cache_cleanup_scheduler_error", exc_info=True)
