"""Route handler for /visit/.

Digest of an arbitrary listing page (section front, blog index): extraction
runs in listing mode so the prompt sees an indented outline with link tokens,
and the model's chosen links come back as internal /article/ paths.
Listing pages change quickly, so there is no durable summary tier here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from smartreader.errors import EmptyExtractionError
from smartreader.extractor import ExtractionMode, extract_stream
from smartreader.models.views import VisitLink, VisitView
from smartreader.placeholders import resolve_placeholders
from smartreader.prompt import DEFAULT_TITLE, build_listing_prompt
from smartreader.repair import parse_response, summary_points
from smartreader.urls import ARTICLE_PREFIX

if TYPE_CHECKING:
    from smartreader.failure import PipelineTrace
    from smartreader.models.document import ExtractedDocument
    from smartreader.placeholders import PlaceholderTable
    from smartreader.state import AppState

MAX_LINKS = 10


def _model_links(value: object) -> list[VisitLink]:
    if not isinstance(value, list):
        return []
    links: list[VisitLink] = []
    for entry in value:
        if not isinstance(entry, dict):
            continue
        label = entry.get("label")
        href = entry.get("link")
        # Unresolved tokens or invented URLs are dropped
        if isinstance(label, str) and label.strip() and isinstance(href, str):
            if href.startswith(ARTICLE_PREFIX):
                links.append(VisitLink(label=label.strip(), href=href))
    return links[:MAX_LINKS]


def _extracted_links(doc: ExtractedDocument, table: PlaceholderTable) -> list[VisitLink]:
    links: list[VisitLink] = []
    for ref in doc.links[:MAX_LINKS]:
        href = table.get(ref.token)
        if href:
            links.append(VisitLink(label=ref.label, href=href))
    return links


async def handle(
    url: str,
    state: AppState,
    trace: PipelineTrace,
    *,
    user_agent: str | None = None,
) -> VisitView:
    log = structlog.get_logger().bind(route="visit", url=url)
    log.info("handler_called")

    settings = state.settings
    async with state.fetcher.stream(url, user_agent=user_agent) as chunks:
        doc, table = await extract_stream(
            chunks,
            url,
            mode=ExtractionMode.LISTING,
            min_text_length=settings.extraction.min_listing_text_length,
            strip_link_query=settings.extraction.strip_link_query,
        )

    log.info("extraction_complete", paragraphs=len(doc.paragraphs), links=len(doc.links))
    if not doc.paragraphs and not doc.links:
        raise EmptyExtractionError()

    prompt = build_listing_prompt(doc, settings.prompt)
    trace.prompt = prompt

    raw = await state.model.generate(prompt)
    trace.raw_response = raw

    parsed = parse_response(
        raw,
        settings.prompt.summary_format,
        min_point_length=settings.prompt.min_point_length,
    )
    resolved = resolve_placeholders(parsed, table)
    fields = resolved if isinstance(resolved, dict) else {}

    title = fields.get("title")
    if not isinstance(title, str) or not title.strip():
        title = doc.title or DEFAULT_TITLE
    links = _model_links(fields.get("links")) or _extracted_links(doc, table)
    return VisitView(
        source_url=url,
        title=title.strip(),
        summary_points=summary_points(resolved),
        links=links,
    )
