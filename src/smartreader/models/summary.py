from __future__ import annotations

from enum import StrEnum


class SummaryFormat(StrEnum):
    """Output shape the model is instructed to return."""

    OBJECT = "object"  # One JSON object with named fields
    LIST = "list"  # Bare newline-delimited points
