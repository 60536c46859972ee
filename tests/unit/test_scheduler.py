"""Unit tests for the cache cleanup scheduler in schedulers.py.

Mocks the cache and asyncio.sleep; each test cancels the loop from inside
the fake sleep once it has seen enough iterations.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from smartreader.config import Settings
from smartreader.schedulers import run_cache_cleanup_scheduler
from smartreader.state import AppState


def _make_state(cache: AsyncMock) -> AppState:
    return AppState(
        settings=Settings(cache={"cleanup_interval_hours": 2}),
        cache=cache,
        fetcher=MagicMock(),
        model=MagicMock(),
    )


class TestCacheCleanupScheduler:
    async def test_runs_at_startup_then_on_interval(self) -> None:
        cache = AsyncMock()
        state = _make_state(cache)
        sleep_durations: list[float] = []

        async def fake_sleep(duration: float) -> None:
            sleep_durations.append(duration)
            if len(sleep_durations) >= 2:
                raise asyncio.CancelledError

        with (
            patch("asyncio.sleep", side_effect=fake_sleep),
            pytest.raises(asyncio.CancelledError),
        ):
            await run_cache_cleanup_scheduler(state)

        assert sleep_durations == [2 * 3600, 2 * 3600]
        # Startup run plus one run after the first sleep
        assert cache.cleanup_if_due.await_count == 2
        cache.cleanup_if_due.assert_awaited_with(2)

    async def test_error_in_loop_does_not_stop_scheduler(self) -> None:
        cache = AsyncMock()
        cache.cleanup_if_due.side_effect = [None, RuntimeError("db gone"), None]
        state = _make_state(cache)
        sleep_count = 0

        async def fake_sleep(duration: float) -> None:
            nonlocal sleep_count
            sleep_count += 1
            if sleep_count >= 3:
                raise asyncio.CancelledError

        with (
            patch("asyncio.sleep", side_effect=fake_sleep),
            pytest.raises(asyncio.CancelledError),
        ):
            await run_cache_cleanup_scheduler(state)

        assert cache.cleanup_if_due.await_count == 3
