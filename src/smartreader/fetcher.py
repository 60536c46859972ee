"""Outbound HTTP fetcher with browser-like request shaping and SSRF protection.

All network I/O towards source sites goes through a single Fetcher instance
shared across requests. The Fetcher receives an httpx.AsyncClient via
constructor injection; the lifespan owns the client lifecycle.
"""

from __future__ import annotations

import ipaddress
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING
from urllib.parse import urljoin, urlsplit

import httpx
import structlog

from smartreader.config import DEFAULT_USER_AGENT, FetcherSettings
from smartreader.errors import ErrorCode, UpstreamFetchError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

log = structlog.get_logger()

PRIVATE_NETWORKS: list[ipaddress.IPv4Network | ipaddress.IPv6Network] = [
    ipaddress.ip_network("10.0.0.0/8"),
    ipaddress.ip_network("172.16.0.0/12"),
    ipaddress.ip_network("192.168.0.0/16"),
    ipaddress.ip_network("127.0.0.0/8"),
    ipaddress.ip_network("169.254.0.0/16"),
    ipaddress.ip_network("::1/128"),
    ipaddress.ip_network("fc00::/7"),
]

ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"


def build_http_client(settings: FetcherSettings | None = None) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    settings = settings or FetcherSettings()
    return httpx.AsyncClient(
        follow_redirects=False,
        timeout=httpx.Timeout(settings.timeout_seconds),
        limits=httpx.Limits(
            max_connections=50,
            max_keepalive_connections=10,
        ),
    )


def build_stealth_headers(
    host: str,
    user_agent: str | None = None,
    accept_language: str = "zh-CN,zh;q=0.9,en;q=0.8",
) -> dict[str, str]:
    """Headers that make the request look like it came from the reader's browser.

    The inbound User-Agent is mirrored when known. Nothing identifying the
    proxy itself (forwarding headers, client IP) is ever sent upstream.
    """
    return {
        "Host": host,
        "User-Agent": user_agent or DEFAULT_USER_AGENT,
        "Referer": f"https://{host}/",
        "Accept": ACCEPT_HEADER,
        "Accept-Language": accept_language,
    }


def is_url_allowed(url: str) -> bool:
    """Check whether a URL may be fetched.

    Only http(s) is allowed. Literal private and loopback IPs are blocked
    unconditionally; domain names pass.
    """
    parsed = urlsplit(url)
    if parsed.scheme not in ("http", "https"):
        return False
    hostname = parsed.hostname or ""
    if not hostname:
        return False

    try:
        addr = ipaddress.ip_address(hostname)
        if any(addr in net for net in PRIVATE_NETWORKS):
            return False
    except ValueError:
        pass  # hostname is a domain name, not an IP

    return True


class Fetcher:
    """Source fetcher with SSRF-safe manual redirect handling."""

    def __init__(self, client: httpx.AsyncClient, settings: FetcherSettings | None = None) -> None:
        self._client = client
        self._settings = settings or FetcherSettings()

    async def fetch(self, url: str, *, user_agent: str | None = None) -> str:
        """Fetch a URL and return its full decoded text.

        Raises UpstreamFetchError on SSRF violations, network errors and
        non-2xx responses.
        """
        response = await self._open(url, user_agent)
        try:
            if not response.is_success:
                raise _status_error(url, response.status_code)
            await response.aread()
        except httpx.HTTPError as exc:
            raise _network_error(url, exc) from exc
        finally:
            await response.aclose()

        log.info(
            "fetch_complete",
            url=url,
            status_code=response.status_code,
            content_length=len(response.content),
        )
        return response.text

    @asynccontextmanager
    async def stream(
        self, url: str, *, user_agent: str | None = None
    ) -> AsyncIterator[AsyncIterator[str]]:
        """Open a URL and yield an async iterator over decoded text chunks.

        The status check happens before the first chunk, so a non-2xx page is
        never handed to the extractor.
        """
        response = await self._open(url, user_agent)
        try:
            if not response.is_success:
                raise _status_error(url, response.status_code)
            log.info("fetch_streaming", url=url, status_code=response.status_code)
            yield _iter_text(url, response)
        finally:
            await response.aclose()

    async def fetch_image(self, url: str, *, user_agent: str | None = None) -> httpx.Response:
        """Fetch an image and return the fully read response, whatever its status.

        Only SSRF violations and network errors raise; the caller decides
        what a non-200 status means.
        """
        response = await self._open(url, user_agent)
        try:
            await response.aread()
        except httpx.HTTPError as exc:
            raise _network_error(url, exc) from exc
        finally:
            await response.aclose()
        return response

    async def _open(self, url: str, user_agent: str | None) -> httpx.Response:
        """Send a GET with per-hop SSRF validation and return the streamed response."""
        current_url = url
        max_redirects = self._settings.max_redirects

        try:
            for hop in range(max_redirects + 1):
                if not is_url_allowed(current_url):
                    log.warning("ssrf_blocked", url=current_url)
                    raise UpstreamFetchError(
                        f"URL not allowed: {current_url}",
                        code=ErrorCode.URL_NOT_ALLOWED,
                        suggestion="Only public http(s) URLs can be proxied.",
                        recoverable=False,
                    )

                host = urlsplit(current_url).netloc
                request = self._client.build_request(
                    "GET",
                    current_url,
                    headers=build_stealth_headers(
                        host,
                        user_agent or self._settings.user_agent,
                        self._settings.accept_language,
                    ),
                )
                response = await self._client.send(request, stream=True)

                if response.is_redirect and "location" in response.headers:
                    await response.aclose()
                    if hop == max_redirects:
                        raise UpstreamFetchError(
                            f"Too many redirects fetching {url}",
                            suggestion="The source has an unusually long redirect chain.",
                            recoverable=False,
                        )
                    current_url = urljoin(current_url, response.headers["location"])
                    continue

                return response

        except UpstreamFetchError:
            raise
        except httpx.HTTPError as exc:
            raise _network_error(url, exc) from exc

        # Unreachable but satisfies the type checker
        raise UpstreamFetchError("Redirect loop", recoverable=False)


async def _iter_text(url: str, response: httpx.Response) -> AsyncIterator[str]:
    try:
        async for chunk in response.aiter_text():
            yield chunk
    except httpx.HTTPError as exc:
        raise _network_error(url, exc) from exc


def _status_error(url: str, status_code: int) -> UpstreamFetchError:
    return UpstreamFetchError(
        f"Fetch Exception: HTTP {status_code} fetching {url}",
        recoverable=status_code >= 500,
        status_code=status_code,
    )


def _network_error(url: str, exc: Exception) -> UpstreamFetchError:
    return UpstreamFetchError(f"Network error fetching {url}: {exc}")
