"""Placeholder tokens for URLs embedded in model prompts.

The model never sees a real URL. The extractor registers each image or link
target here and embeds a short token (``I0``, ``L7``) instead; after the model
answers, ``resolve_placeholders`` swaps tokens in the parsed output back to
their proxied targets. This keeps prompts short and stops the model from
fabricating or mangling URLs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from collections.abc import ItemsView

IMAGE_PREFIX = "I"
LINK_PREFIX = "L"

TokenKind = Literal["image", "link"]

_PREFIXES: dict[TokenKind, str] = {"image": IMAGE_PREFIX, "link": LINK_PREFIX}


class PlaceholderTable:
    """Append-only token → URL mapping for one extraction pass.

    Image and link tokens use disjoint prefixes and independent counters.
    Registering the same target twice in one namespace returns the token it
    already has, so every token stands for exactly one URL.
    """

    def __init__(self) -> None:
        self._targets: dict[str, str] = {}
        self._tokens: dict[tuple[TokenKind, str], str] = {}
        self._counters: dict[TokenKind, int] = {"image": 0, "link": 0}

    def register(self, kind: TokenKind, target: str) -> str:
        existing = self._tokens.get((kind, target))
        if existing is not None:
            return existing

        token = f"{_PREFIXES[kind]}{self._counters[kind]}"
        self._counters[kind] += 1
        self._targets[token] = target
        self._tokens[(kind, target)] = token
        return token

    def get(self, token: str) -> str | None:
        return self._targets.get(token)

    def items(self) -> ItemsView[str, str]:
        return self._targets.items()

    def __contains__(self, token: object) -> bool:
        return token in self._targets

    def __len__(self) -> int:
        return len(self._targets)


def resolve_placeholders(value: object, table: PlaceholderTable) -> object:
    """Return a copy of ``value`` with every exact token string replaced.

    Walks mappings, lists and tuples; strings that are not tokens and all
    other scalars pass through unchanged. Input is tree-shaped (parsed JSON),
    so each node is visited once.
    """
    if isinstance(value, str):
        target = table.get(value)
        return target if target is not None else value
    if isinstance(value, dict):
        return {key: resolve_placeholders(item, table) for key, item in value.items()}
    if isinstance(value, list):
        return [resolve_placeholders(item, table) for item in value]
    if isinstance(value, tuple):
        return tuple(resolve_placeholders(item, table) for item in value)
    return value
