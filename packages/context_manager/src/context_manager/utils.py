"""Shared utilities for the context manager."""

from __future__ import annotations

import math
from datetime import UTC, datetime

from context_manager.config.thresholds import CHARS_PER_TOKEN


def utc_now() -> datetime:
    """Return the current timezone-aware UTC time."""
    return datetime.now(UTC)


def utc_timestamp() -> str:
    """Return current UTC timestamp in ISO format."""
    return utc_now().isoformat()


def estimate_tokens(text: str) -> int:
    """Rough token estimate: one token per four characters, rounded up.

    This is a crude heuristic for budgeting, not a tokenizer-accurate count.
    """
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    """Clamp a value into ``[lower, upper]``."""
    return max(lower, min(upper, value))


def dedupe(values: list[str]) -> list[str]:
    """Return unique values in original order."""
    seen: set[str] = set()
    unique: list[str] = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        unique.append(value)
    return unique
