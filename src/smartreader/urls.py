"""URL sandboxing and route path helpers.

Every URL that leaves the extractor is rewritten into one of two internal
route forms so the reader never talks to third-party hosts directly:

  /image/{host}{path}[?query]   proxied image
  /article/{host}{path}         summarized article

Routes carry the upstream host and path verbatim; the scheme is always https.
"""

from __future__ import annotations

import base64
import re
from urllib.parse import urljoin, urlsplit, urlunsplit

ARTICLE_PREFIX = "/article/"
IMAGE_PREFIX = "/image/"
SUMMARY_PREFIX = "/summary/"
VISIT_PREFIX = "/visit/"

SUMMARY_KEY_LENGTH = 64

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def resolve_url(src: str, base_url: str) -> str | None:
    """Resolve ``src`` against ``base_url`` and force https.

    Returns ``None`` for anything that is not an http(s) URL after resolution
    (``javascript:``, ``mailto:``, ``data:``, malformed input).
    """
    src = src.strip()
    if not src or src.startswith("data:"):
        return None
    try:
        absolute = urljoin(base_url, src)
        parts = urlsplit(absolute)
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.hostname:
        return None
    return urlunsplit(("https", parts.netloc, parts.path, parts.query, ""))


def to_image_path(url: str) -> str:
    """``https://cdn.example.com/a.jpg?w=1`` → ``/image/cdn.example.com/a.jpg?w=1``."""
    return IMAGE_PREFIX + _SCHEME_RE.sub("", url)


def to_article_path(url: str, *, strip_query: bool = True) -> str:
    """``https://example.com/news/1?x=y`` → ``/article/example.com/news/1``."""
    parts = urlsplit(url)
    path = f"{ARTICLE_PREFIX}{parts.hostname}{parts.path}"
    if parts.query and not strip_query:
        path = f"{path}?{parts.query}"
    return path


def target_from_route(rest: str, query: str = "") -> str:
    """Rebuild the upstream URL from the part of a route after its prefix."""
    url = f"https://{rest.lstrip('/')}"
    if query:
        url = f"{url}?{query}"
    return url


def canonical_source_url(url: str) -> str:
    """Apply site-specific path normalisation before fetching or hashing.

    BBC Chinese publishes each article under ``/trad`` and ``/simp``; both
    variants map to the simplified one.
    """
    parts = urlsplit(url)
    host = parts.hostname or ""
    path = parts.path
    if "bbc.com" in host and path.endswith("/trad"):
        path = path[: -len("/trad")] + "/simp"
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, ""))


def summary_cache_key(canonical_url: str) -> str:
    """Durable-tier key: last 64 chars of the base64 form of the URL.

    Long URLs sharing the same 48-byte tail collide; that is accepted.
    """
    encoded = base64.urlsafe_b64encode(canonical_url.encode("utf-8")).decode("ascii")
    return encoded[-SUMMARY_KEY_LENGTH:]


def normalize_request_key(url: str, *, include_query: bool) -> str:
    """Edge-tier key: ``scheme://host/path`` with the query kept or dropped."""
    parts = urlsplit(url)
    query = parts.query if include_query else ""
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, ""))
