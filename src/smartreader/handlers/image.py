"""Route handler for /image/.

Proxies one upstream image so the reader's browser never contacts the
source host. A 200 is cached forever downstream; everything else becomes a
non-cacheable 404 so a transient upstream failure is never pinned.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from starlette.responses import Response

from smartreader.errors import SmartReaderError

if TYPE_CHECKING:
    from smartreader.state import AppState

IMMUTABLE = "public, max-age=31536000, immutable"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _not_found() -> Response:
    return Response("Not Found", status_code=404, headers={"Cache-Control": "no-store"})


async def handle(url: str, state: AppState, *, user_agent: str | None = None) -> Response:
    log = structlog.get_logger().bind(route="image", url=url)
    try:
        upstream = await state.fetcher.fetch_image(url, user_agent=user_agent)
    except SmartReaderError as exc:
        log.warning("image_proxy_failed", code=exc.code, error=exc.message)
        return _not_found()

    if upstream.status_code != 200:
        log.info("image_proxy_upstream_status", status_code=upstream.status_code)
        return _not_found()

    # Only the body and its type are forwarded; upstream cookies never are
    return Response(
        upstream.content,
        status_code=200,
        media_type=upstream.headers.get("content-type", DEFAULT_CONTENT_TYPE),
        headers={"Cache-Control": IMMUTABLE},
    )
