"""Prompt construction under a hard payload budget.

The payload (paragraphs or listing outline, one per line) is cut on line
boundaries so placeholder tokens are never split. Instructions and schema text
do not count against the budget.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from smartreader.models.summary import SummaryFormat

if TYPE_CHECKING:
    from collections.abc import Sequence

    from smartreader.config import PromptSettings
    from smartreader.models.document import ExtractedDocument

DEFAULT_TITLE = "News Article"

_OBJECT_RULES = (
    "SCHEMA: Return exactly one JSON object. Do not wrap in an array. "
    "No markdown code fences, no text before or after the object."
)
_LIST_RULES = (
    "FORMAT: Return only the points, one per line. "
    "No JSON, no markdown code fences, no headings, no introduction."
)


def truncate_lines(lines: Sequence[str], budget: int) -> str:
    """Join ``lines`` with newlines, keeping only whole lines within ``budget``.

    A first line longer than the whole budget is cut at its last whitespace
    before the limit (or hard at the limit when it has none).
    """
    kept: list[str] = []
    used = 0
    for line in lines:
        cost = len(line) + (1 if kept else 0)
        if used + cost > budget:
            break
        kept.append(line)
        used += cost

    if not kept and lines:
        head = lines[0][:budget]
        cut = head.rfind(" ")
        return head[:cut] if cut > 0 else head

    return "\n".join(kept)


def _article_schema(doc: ExtractedDocument) -> str:
    example = {
        "title": "headline",
        "image": doc.candidate_images[0] if doc.candidate_images else "",
        "summary": ["point 1", "point 2", "point 3"],
        "reading_time": "3 min",
        "sentiment": "neutral",
    }
    if doc.candidate_images:
        choices = ", ".join(doc.candidate_images)
        image_rule = f'IMAGES: set "image" to one of [{choices}] exactly as written, or "".'
    else:
        image_rule = 'IMAGES: none available, set "image" to "".'
    return f"{_OBJECT_RULES}\n{json.dumps(example, ensure_ascii=False)}\n{image_rule}"


def build_article_prompt(
    doc: ExtractedDocument,
    settings: PromptSettings,
    summary_format: SummaryFormat | None = None,
) -> str:
    """Prompt asking for a summary of one article's paragraphs."""
    summary_format = summary_format or settings.summary_format
    title = doc.title or DEFAULT_TITLE
    payload = truncate_lines(doc.paragraphs, settings.max_payload_chars)

    task = (
        f"[SYSTEM]: {settings.role} Summarize the text provided below into "
        f"{settings.bullet_points} concise bullet points in {settings.language}."
    )
    if summary_format == SummaryFormat.OBJECT:
        rules = _article_schema(doc)
    else:
        rules = _LIST_RULES

    return f"{task}\n{rules}\n\n[TITLE]: {title}\n\n[DATA_BLOCK]:\n{payload}"


def build_listing_prompt(
    doc: ExtractedDocument,
    settings: PromptSettings,
    summary_format: SummaryFormat | None = None,
) -> str:
    """Prompt asking for a digest of a listing page's outline and links."""
    summary_format = summary_format or settings.summary_format
    title = doc.title or DEFAULT_TITLE
    payload = truncate_lines(doc.outline or doc.paragraphs, settings.max_payload_chars)

    task = (
        f"[SYSTEM]: {settings.role} The text below is the outline of a web page. "
        "Lines ending in [L<number>] are links. Describe what the page offers in "
        f"{settings.bullet_points} concise bullet points in {settings.language}."
    )
    if summary_format == SummaryFormat.OBJECT:
        example = {
            "title": "page title",
            "summary": ["point 1", "point 2"],
            "links": [{"label": "headline", "link": "L0"}],
        }
        rules = (
            f"{_OBJECT_RULES}\n{json.dumps(example, ensure_ascii=False)}\n"
            f"LINKS: pick up to 10 of the most newsworthy links, translate each label "
            f'into {settings.language}, and copy the token into "link" exactly as written.'
        )
    else:
        rules = _LIST_RULES

    return f"{task}\n{rules}\n\n[TITLE]: {title}\n\n[OUTLINE]:\n{payload}"
