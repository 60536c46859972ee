"""Route handler for /article/.

Receives AppState, orchestrates fetch / extract / durable-cache lookup /
prompt / model / repair / resolve, and returns a render-ready ArticleView.
No Starlette imports: server.py owns the HTTP wiring, the edge tier and
error rendering.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from smartreader.errors import EmptyExtractionError
from smartreader.extractor import ExtractionMode, extract_stream
from smartreader.models.views import ArticleView
from smartreader.placeholders import resolve_placeholders
from smartreader.prompt import DEFAULT_TITLE, build_article_prompt
from smartreader.repair import parse_response, summary_points
from smartreader.urls import IMAGE_PREFIX, canonical_source_url, summary_cache_key

if TYPE_CHECKING:
    from smartreader.failure import PipelineTrace
    from smartreader.models.document import ExtractedDocument
    from smartreader.placeholders import PlaceholderTable
    from smartreader.state import AppState


def _text(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _pick_image(value: object, doc: ExtractedDocument, table: PlaceholderTable) -> str:
    """Model's choice if it resolved to a proxied image, else the first candidate."""
    if isinstance(value, str) and value.startswith(IMAGE_PREFIX):
        return value
    for token in doc.candidate_images:
        target = table.get(token)
        if target:
            return target
    return ""


async def handle(
    url: str,
    state: AppState,
    trace: PipelineTrace,
    *,
    user_agent: str | None = None,
) -> ArticleView:
    """Summarize one article. Every failure propagates to the caller."""
    source_url = canonical_source_url(url)
    log = structlog.get_logger().bind(route="article", url=source_url)
    log.info("handler_called")

    settings = state.settings
    async with state.fetcher.stream(source_url, user_agent=user_agent) as chunks:
        doc, table = await extract_stream(
            chunks,
            source_url,
            mode=ExtractionMode.ARTICLE,
            min_text_length=settings.extraction.min_paragraph_length,
            strip_link_query=settings.extraction.strip_link_query,
        )

    log.info(
        "extraction_complete",
        paragraphs=len(doc.paragraphs),
        images=len(doc.candidate_images),
    )
    if not doc.paragraphs:
        raise EmptyExtractionError()

    cache_key = summary_cache_key(source_url)
    fields: dict = {}
    cached = await state.cache.get_summary(cache_key)

    if cached is not None:
        # Durable hit skips the model; title and image still come from extraction
        log.info("summary_cache_hit", key=cache_key)
        points = cached.points
    else:
        log.info("summary_cache_miss", key=cache_key)
        prompt = build_article_prompt(doc, settings.prompt)
        trace.prompt = prompt

        raw = await state.model.generate(prompt)
        trace.raw_response = raw

        parsed = parse_response(
            raw,
            settings.prompt.summary_format,
            min_point_length=settings.prompt.min_point_length,
        )
        resolved = resolve_placeholders(parsed, table)
        if isinstance(resolved, dict):
            fields = resolved
        points = summary_points(resolved)

        if points:
            await state.cache.set_summary(
                cache_key,
                source_url,
                points,
                ttl_days=settings.cache.summary_ttl_days,
            )
        else:
            log.warning("summary_empty")

    return ArticleView(
        source_url=source_url,
        title=_text(fields.get("title")) or doc.title or DEFAULT_TITLE,
        image_url=_pick_image(fields.get("image"), doc, table),
        summary_points=points,
        paragraphs=list(doc.paragraphs),
        reading_time=_text(fields.get("reading_time")),
        sentiment=_text(fields.get("sentiment")),
        summary_cached=cached is not None,
    )
