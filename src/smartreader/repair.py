"""Tolerant parsing of model output.

Models wrap answers in prose, code fences or stray arrays no matter what the
prompt says. Each SummaryFormat has its own recovery strategy:

- OBJECT: slice from the first ``{`` to the last ``}`` and parse that. Fails
  with ResponseParseError when there is nothing parseable.
- LIST:   split on line breaks and strip bullet/numbering markers. Never
  fails; an unusable answer degrades to an empty list, which callers treat
  as "no summary available".
"""

from __future__ import annotations

import json
import re

from smartreader.errors import ResponseParseError
from smartreader.models.summary import SummaryFormat

# "3.5% growth" must keep its number, so dotted numbering needs trailing space
_LIST_MARKER_RE = re.compile(r"^\s*(?:[-*+•·●▪◦‣–—]+|\d+[.)](?=\s)|\d+、)\s*")


def repair_object(raw: str) -> dict:
    """Recover one JSON object from ``raw``."""
    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end < start:
        raise ResponseParseError("No JSON object found in model response", raw_response=raw)

    try:
        value = json.loads(raw[start : end + 1])
    except json.JSONDecodeError as exc:
        raise ResponseParseError(
            f"Model response is not valid JSON: {exc.msg} (line {exc.lineno}, column {exc.colno})",
            raw_response=raw,
        ) from exc

    if not isinstance(value, dict):
        raise ResponseParseError("Model response is not a JSON object", raw_response=raw)
    return value


def repair_list(raw: str, min_length: int = 5) -> list[str]:
    """Recover an ordered list of points from a bullet/numbered text block.

    Lines of ``min_length`` characters or fewer are dropped before the marker
    is stripped, so ``"1. third"`` survives while a bare ``"short"`` does not.
    Code fence lines are always dropped.
    """
    points: list[str] = []
    for line in raw.splitlines():
        line = line.strip()
        if len(line) <= min_length or line.startswith("```"):
            continue
        text = _LIST_MARKER_RE.sub("", line, count=1).strip()
        if text:
            points.append(text)
    return points


def parse_response(
    raw: str, summary_format: SummaryFormat, *, min_point_length: int = 5
) -> dict | list[str]:
    """Dispatch to the repair strategy of the configured format."""
    if summary_format == SummaryFormat.OBJECT:
        return repair_object(raw)
    return repair_list(raw, min_point_length)


def summary_points(result: object) -> list[str]:
    """Normalise either format to a list of non-empty summary strings."""
    if isinstance(result, dict):
        result = result.get("summary", [])
    if isinstance(result, str):
        result = [result]
    if not isinstance(result, list):
        return []
    points = [str(item).strip() for item in result if item is not None]
    return [point for point in points if point]
