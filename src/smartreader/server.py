"""HTTP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState via the Starlette lifespan
- Route requests to handlers, with the edge cache tier in front of page routes
- Turn pipeline failures into the diagnostic page
- Start uvicorn
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager, suppress
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog
import uvicorn
from starlette.applications import Starlette
from starlette.background import BackgroundTask
from starlette.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

import smartreader.handlers.article as h_article
import smartreader.handlers.home as h_home
import smartreader.handlers.image as h_image
import smartreader.handlers.summary as h_summary
import smartreader.handlers.visit as h_visit
from smartreader import __version__
from smartreader.cache import Cache
from smartreader.config import Settings
from smartreader.errors import ConfigurationError, SmartReaderError
from smartreader.failure import NO_STORE, PipelineTrace, failure_payload, render_failure
from smartreader.fetcher import Fetcher, build_http_client
from smartreader.model_client import GeminiClient
from smartreader.renderer import render_article, render_home, render_visit
from smartreader.schedulers import run_cache_cleanup_scheduler
from smartreader.state import AppState
from smartreader.urls import normalize_request_key, target_from_route

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable, Callable

    from starlette.requests import Request

log = structlog.get_logger()

MISSING_API_KEY_MESSAGE = "Secret Error: SMARTREADER__MODEL__API_KEY is required."


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [*shared_processors, structlog.processors.JSONRenderer()]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def build_state(settings: Settings) -> AsyncGenerator[AppState, None]:
    """Create and tear down all shared resources for the server's lifetime."""
    log.info("server_starting", version=__version__)

    http_client = build_http_client(settings.fetcher)

    db_path = Path(settings.cache.db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    db = await aiosqlite.connect(str(db_path))
    cache = Cache(db)
    await cache.init_db()

    state = AppState(
        settings=settings,
        cache=cache,
        fetcher=Fetcher(http_client, settings.fetcher),
        model=GeminiClient(http_client, settings.model),
        http_client=http_client,
    )

    if not settings.model.api_key:
        log.warning("model_api_key_missing", affected_routes=["article", "summary", "visit"])

    cache_cleanup_task = asyncio.create_task(run_cache_cleanup_scheduler(state))

    log.info(
        "server_started",
        version=__version__,
        feeds=len(settings.feeds),
        model=settings.model.name,
        summary_format=settings.prompt.summary_format,
    )

    try:
        yield state
    finally:
        cache_cleanup_task.cancel()
        with suppress(asyncio.CancelledError):
            await cache_cleanup_task
        await http_client.aclose()
        await db.close()
        log.info("server_stopping")


# ---------------------------------------------------------------------------
# Request plumbing
# ---------------------------------------------------------------------------


def _state(request: Request) -> AppState:
    return request.app.state.smartreader


def _user_agent(request: Request) -> str | None:
    return request.headers.get("user-agent")


def _missing_credential(state: AppState, route: str) -> Response | None:
    """Static 500 for model-backed routes when no API key is configured."""
    if state.settings.model.api_key:
        return None
    exc = ConfigurationError(MISSING_API_KEY_MESSAGE)
    log.error("route_error", route=route, code=exc.code, message=exc.message)
    return PlainTextResponse(exc.message, status_code=exc.http_status, headers=NO_STORE)


def _log_failure(route: str, url: str, exc: Exception) -> None:
    if isinstance(exc, SmartReaderError):
        log.warning(
            "route_error",
            route=route,
            url=url,
            code=exc.code,
            message=exc.message,
            recoverable=exc.recoverable,
        )
    else:
        log.error("route_unexpected_error", route=route, url=url, exc_info=True)


async def _serve_page(
    request: Request,
    *,
    route: str,
    target_url: str,
    include_query: bool,
    ttl_seconds: int,
    build: Callable[..., Awaitable[tuple[str, bool]]],
) -> Response:
    """Edge-cached page: serve a stored render, or build one and store it after sending.

    ``build`` returns the page and whether it may be stored. A page without
    summary points goes out with no-store so the next request retries the model.
    """
    state = _state(request)
    if (error := _missing_credential(state, route)) is not None:
        return error

    cache_key = normalize_request_key(str(request.url), include_query=include_query)
    cached = await state.cache.get_response(cache_key)
    if cached is not None:
        log.info("edge_cache_hit", route=route, key=cache_key)
        return Response(
            cached.body,
            status_code=cached.status_code,
            headers={**cached.headers, "X-Cache": "HIT"},
        )

    trace = PipelineTrace()
    try:
        body, cacheable = await build(target_url, state, trace, _user_agent(request))
    except Exception as exc:
        _log_failure(route, target_url, exc)
        return render_failure(exc, trace)

    encoded = body.encode("utf-8")
    if not cacheable:
        log.info("edge_cache_skipped", route=route, key=cache_key, reason="empty_summary")
        return Response(
            encoded,
            status_code=200,
            headers={**NO_STORE, "Content-Type": "text/html; charset=utf-8", "X-Cache": "MISS"},
        )

    headers = {
        "Content-Type": "text/html; charset=utf-8",
        "Cache-Control": f"public, max-age=0, s-maxage={ttl_seconds}",
    }
    return Response(
        encoded,
        status_code=200,
        headers={**headers, "X-Cache": "MISS"},
        background=BackgroundTask(
            state.cache.set_response, cache_key, 200, headers, encoded, ttl_seconds
        ),
    )


async def _build_article(
    url: str, state: AppState, trace: PipelineTrace, user_agent: str | None
) -> tuple[str, bool]:
    view = await h_article.handle(url, state, trace, user_agent=user_agent)
    return render_article(view), bool(view.summary_points)


async def _build_visit(
    url: str, state: AppState, trace: PipelineTrace, user_agent: str | None
) -> tuple[str, bool]:
    view = await h_visit.handle(url, state, trace, user_agent=user_agent)
    return render_visit(view), bool(view.summary_points)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


async def home(request: Request) -> Response:
    """Unified feed. Never served from the edge tier."""
    items = await h_home.handle(_state(request), user_agent=_user_agent(request))
    return HTMLResponse(render_home(items), headers=NO_STORE)


async def article(request: Request) -> Response:
    state = _state(request)
    return await _serve_page(
        request,
        route="article",
        target_url=target_from_route(request.path_params["target"]),
        include_query=False,
        ttl_seconds=state.settings.cache.article_ttl_seconds,
        build=_build_article,
    )


async def visit(request: Request) -> Response:
    state = _state(request)
    return await _serve_page(
        request,
        route="visit",
        target_url=target_from_route(request.path_params["target"], request.url.query),
        include_query=True,
        ttl_seconds=state.settings.cache.listing_ttl_seconds,
        build=_build_visit,
    )


async def summary(request: Request) -> Response:
    """Summary points as JSON. Relies on the durable tier only."""
    state = _state(request)
    if (error := _missing_credential(state, "summary")) is not None:
        return error

    url = target_from_route(request.path_params["target"])
    trace = PipelineTrace()
    try:
        payload = await h_summary.handle(url, state, trace, user_agent=_user_agent(request))
    except Exception as exc:
        _log_failure("summary", url, exc)
        return failure_payload(exc, trace)
    return JSONResponse(payload, headers=NO_STORE)


async def image(request: Request) -> Response:
    url = target_from_route(request.path_params["target"], request.url.query)
    return await h_image.handle(url, _state(request), user_agent=_user_agent(request))


ROUTES = [
    Route("/", home),
    Route("/article/{target:path}", article),
    Route("/summary/{target:path}", summary),
    Route("/visit/{target:path}", visit),
    Route("/image/{target:path}", image),
]


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None, *, state: AppState | None = None) -> Starlette:
    """Build the ASGI app.

    With ``state`` the app is ready immediately and the lifespan does nothing;
    otherwise the lifespan builds AppState from ``settings`` on startup.
    """

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
        if state is not None:
            yield
            return
        async with build_state(settings or Settings()) as built:
            app.state.smartreader = built
            yield

    app = Starlette(routes=ROUTES, lifespan=lifespan)
    if state is not None:
        app.state.smartreader = state
    return app


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()
    _setup_logging(settings)
    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # Disable uvicorn's default logging; structlog handles it
    )


if __name__ == "__main__":
    main()
