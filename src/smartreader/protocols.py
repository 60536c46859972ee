"""Protocol interfaces for swappable components.

Handlers and AppState reference these protocols, not the concrete
implementations. This allows:
- Tests to use lightweight in-memory implementations
- Other backends (e.g. Redis for the edge tier) without touching handlers
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from contextlib import AbstractAsyncContextManager

    import httpx

    from smartreader.models.cache import ResponseCacheEntry, SummaryCacheEntry


class CacheProtocol(Protocol):
    """Interface for the edge and durable cache tiers."""

    async def get_response(self, cache_key: str) -> ResponseCacheEntry | None: ...

    async def set_response(
        self,
        cache_key: str,
        status_code: int,
        headers: dict[str, str],
        body: bytes,
        ttl_seconds: int,
    ) -> None: ...

    async def get_summary(self, cache_key: str) -> SummaryCacheEntry | None: ...

    async def set_summary(
        self,
        cache_key: str,
        source_url: str,
        points: list[str],
        ttl_days: int,
    ) -> None: ...

    async def cleanup_if_due(self, interval_hours: int) -> None: ...

    async def cleanup_expired(self) -> None: ...


class FetcherProtocol(Protocol):
    """Interface for the outbound source fetcher."""

    async def fetch(self, url: str, *, user_agent: str | None = None) -> str: ...

    def stream(
        self, url: str, *, user_agent: str | None = None
    ) -> AbstractAsyncContextManager[AsyncIterator[str]]: ...

    async def fetch_image(
        self, url: str, *, user_agent: str | None = None
    ) -> httpx.Response: ...


class ModelClientProtocol(Protocol):
    """Interface for the generative-language endpoint."""

    async def generate(self, prompt: str) -> str: ...
