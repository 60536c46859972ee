"""Application state container.

AppState is created once at server startup (inside the Starlette lifespan)
and handed to every route handler. It holds only long-lived collaborators;
nothing request-specific is ever stored here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from smartreader.config import Settings
    from smartreader.protocols import CacheProtocol, FetcherProtocol, ModelClientProtocol


@dataclass
class AppState:
    """Holds all shared runtime state. Passed to every route handler."""

    settings: Settings
    cache: CacheProtocol
    fetcher: FetcherProtocol
    model: ModelClientProtocol
    http_client: httpx.AsyncClient | None = None
