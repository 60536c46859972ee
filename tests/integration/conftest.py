"""Integration test fixtures.

Provides a fully wired AppState with in-memory SQLite, the real Fetcher on
an httpx client (tests mock upstream sites with respx) and a scripted model,
plus an httpx client bound to the ASGI app.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import aiosqlite
import httpx
import pytest

from smartreader.cache import Cache
from smartreader.fetcher import Fetcher, build_http_client
from smartreader.server import create_app
from smartreader.state import AppState

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from smartreader.config import Settings

ARTICLE_REPLY = "```json\n" + json.dumps(
    {
        "title": "测试标题",
        "image": "I0",
        "summary": ["第一个要点内容", "第二个要点内容"],
        "reading_time": "2 min",
        "sentiment": "neutral",
    },
    ensure_ascii=False,
) + "\n```"


class ScriptedModel:
    """ModelClientProtocol stand-in that replays a fixed reply and records prompts."""

    def __init__(self, reply: str | Exception = ARTICLE_REPLY) -> None:
        self.reply = reply
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


@pytest.fixture()
def model() -> ScriptedModel:
    return ScriptedModel()


@pytest.fixture()
async def app_state(settings: Settings, model: ScriptedModel) -> AsyncGenerator[AppState, None]:
    """Full AppState wired for integration tests."""
    async with aiosqlite.connect(":memory:") as db:
        cache = Cache(db)
        await cache.init_db()

        async with build_http_client(settings.fetcher) as client:
            yield AppState(
                settings=settings,
                cache=cache,
                fetcher=Fetcher(client, settings.fetcher),
                model=model,
                http_client=client,
            )


@pytest.fixture()
async def client(app_state: AppState) -> AsyncGenerator[httpx.AsyncClient, None]:
    """httpx client talking to the ASGI app in-process."""
    app = create_app(state=app_state)
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    ) as client:
        yield client
