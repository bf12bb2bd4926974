"""Input validation and shared error payloads for pair lookups."""

from __future__ import annotations

from typing import Any

from .registry import TrackerRegistry


def validate_pair(pair: Any) -> bool:
    """A pair identifier must be a non-empty string."""
    return isinstance(pair, str) and len(pair) > 0


def pair_not_found(pair: str, registry: TrackerRegistry) -> dict:
    """Error body for a lookup of an untracked pair.

    Shared by the REST 404 and the websocket ``getMedian`` error so both
    report the same text and available pairs.
    """
    return {
        "error": "Pair not found",
        "message": f"The pair {pair} is not being tracked",
        "availablePairs": registry.symbols(),
    }
