"""Routing strategies and strategy name resolution.

Settings stores and callers refer to strategies by name; this module is the
single source of truth for which names map to which strategy.
"""

from __future__ import annotations

import difflib
from enum import Enum

from inference_router.errors import InvalidConfiguration


class Strategy(str, Enum):
    """Policy governing how the router chooses between backends."""

    NATIVE_ONLY = "native_only"
    NATIVE_FIRST = "native_first"
    REMOTE_FIRST = "remote_first"
    HYBRID = "hybrid"
    AUTO = "auto"


# Alternate name → canonical strategy.
# Keep sorted by alias for readability.
STRATEGY_ALIASES: dict[str, Strategy] = {
    "auto": Strategy.AUTO,
    "cloud": Strategy.REMOTE_FIRST,
    "cloud_first": Strategy.REMOTE_FIRST,
    "hybrid": Strategy.HYBRID,
    "local": Strategy.NATIVE_ONLY,
    "local_first": Strategy.NATIVE_FIRST,
    "local_only": Strategy.NATIVE_ONLY,
    "native_first": Strategy.NATIVE_FIRST,
    "native_only": Strategy.NATIVE_ONLY,
    "openai_first": Strategy.REMOTE_FIRST,
    "remote_first": Strategy.REMOTE_FIRST,
}

# Normalized key → canonical alias key.
# Built once at import time for fast lookup.
_NORMALIZED: dict[str, str] = {}


def _normalize(s: str) -> str:
    """Strip hyphens, underscores, spaces, dots and lowercase."""
    return s.lower().replace("-", "").replace("_", "").replace(" ", "").replace(".", "")


def _build_normalized() -> None:
    """Populate the normalized lookup table."""
    _NORMALIZED.clear()
    for key in STRATEGY_ALIASES:
        _NORMALIZED[_normalize(key)] = key


_build_normalized()


def resolve_strategy(raw: Strategy | str) -> Strategy:
    """Resolve a strategy or a user-supplied strategy name.

    Accepts canonical values (``native_first``) and camelCase settings values
    (``nativeFirst``, ``openAIFirst``). Misspellings are rejected with a
    suggestion rather than silently picking a routing policy.

    Raises:
        InvalidConfiguration: If the name is empty or unknown.
    """
    if isinstance(raw, Strategy):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidConfiguration(f"Invalid strategy: {raw!r}")

    lowered = raw.strip().lower()

    # 1. Exact match
    if lowered in STRATEGY_ALIASES:
        return STRATEGY_ALIASES[lowered]

    # 2. Normalized match (strips hyphens, spaces, camelCase boundaries)
    normed = _normalize(raw)
    if normed in _NORMALIZED:
        return STRATEGY_ALIASES[_NORMALIZED[normed]]

    # 3. Close misspellings: suggest, never auto-select
    candidates = difflib.get_close_matches(normed, _NORMALIZED.keys(), n=2, cutoff=0.8)
    matched = {STRATEGY_ALIASES[_NORMALIZED[c]] for c in candidates}
    if matched:
        suggestions = ", ".join(sorted(s.value for s in matched))
        raise InvalidConfiguration(f"Unknown strategy '{raw}'. Did you mean: {suggestions}?")

    # 4. No match
    valid = ", ".join(s.value for s in Strategy)
    raise InvalidConfiguration(f"Unknown strategy '{raw}'. Valid strategies: {valid}")
