"""Truncation helpers and the tool output trimmer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from context_manager.config.thresholds import TRIM_MAX_OUTPUT_LENGTH, TRIM_SMART_HEAD_RATIO
from context_manager.errors import ValidationError

if TYPE_CHECKING:
    from context_manager.models import Session

logger = logging.getLogger(__name__)

TrimMethod = Literal["truncate", "ellipsis", "smart"]
TRIM_METHODS: tuple[TrimMethod, ...] = ("truncate", "ellipsis", "smart")


@dataclass(frozen=True)
class TruncationResult:
    """Result of truncating a piece of text."""

    text: str
    truncated: bool
    original_length: int
    truncated_length: int


def truncate_text(text: str, max_chars: int, suffix: str = "...") -> TruncationResult:
    """Truncate text to a maximum number of characters."""
    original_length = len(text)
    if max_chars <= 0:
        return TruncationResult(
            text="",
            truncated=original_length > 0,
            original_length=original_length,
            truncated_length=0,
        )
    if original_length <= max_chars:
        return TruncationResult(
            text=text,
            truncated=False,
            original_length=original_length,
            truncated_length=original_length,
        )

    if len(suffix) >= max_chars:
        truncated_text = suffix[:max_chars]
    else:
        truncated_text = f"{text[: max_chars - len(suffix)]}{suffix}"
    return TruncationResult(
        text=truncated_text,
        truncated=True,
        original_length=original_length,
        truncated_length=len(truncated_text),
    )


def truncate_middle(text: str, max_chars: int) -> TruncationResult:
    """Keep the head and tail of ``text`` around a trimmed-characters marker."""
    original_length = len(text)
    if original_length <= max_chars:
        return truncate_text(text, max_chars)

    # The marker length depends on the count it reports; settle it in a few passes.
    removed = original_length - max_chars
    for _ in range(3):
        marker = f"\n[... {removed} characters trimmed ...]\n"
        budget = max_chars - len(marker)
        removed = original_length - budget
    if budget <= 0:
        return truncate_text(text, max_chars)
    head = int(budget * TRIM_SMART_HEAD_RATIO)
    tail = budget - head
    trimmed = f"{text[:head]}{marker}{text[original_length - tail:] if tail else ''}"
    return TruncationResult(
        text=trimmed,
        truncated=True,
        original_length=original_length,
        truncated_length=len(trimmed),
    )


@dataclass(frozen=True)
class TrimOptions:
    """Options for trimming tool output held in session events."""

    max_output_length: int = TRIM_MAX_OUTPUT_LENGTH
    trim_method: TrimMethod = "smart"

    def __post_init__(self) -> None:
        if self.max_output_length <= 0:
            raise ValidationError("max_output_length", "must be positive")
        if self.trim_method not in TRIM_METHODS:
            raise ValidationError("trim_method", f"must be one of {', '.join(TRIM_METHODS)}")


@dataclass(frozen=True)
class TrimResult:
    """Summary of a trimming pass."""

    trimmed_events: int
    characters_before: int
    characters_after: int
    trim_method: TrimMethod
    event_indexes: list[int] = field(default_factory=list)

    @property
    def characters_saved(self) -> int:
        return self.characters_before - self.characters_after

    def to_dict(self) -> dict[str, object]:
        return {
            "trimmedEvents": self.trimmed_events,
            "charactersBefore": self.characters_before,
            "charactersAfter": self.characters_after,
            "charactersSaved": self.characters_saved,
            "trimMethod": self.trim_method,
        }


def _apply(text: str, options: TrimOptions) -> TruncationResult:
    if options.trim_method == "truncate":
        return truncate_text(text, options.max_output_length, suffix="")
    if options.trim_method == "ellipsis":
        return truncate_text(text, options.max_output_length)
    return truncate_middle(text, options.max_output_length)


class OutputTrimmer:
    """Shorten long string results of ``tool`` events in place."""

    def trim(self, session: Session, options: TrimOptions | None = None) -> TrimResult:
        options = options or TrimOptions()
        before = 0
        after = 0
        indexes: list[int] = []
        for index, event in enumerate(session.events):
            if event.type != "tool":
                continue
            result = event.data.get("result")
            if not isinstance(result, str) or len(result) <= options.max_output_length:
                continue
            truncation = _apply(result, options)
            event.data["result"] = truncation.text
            event.data["trimmed"] = True
            event.data["originalLength"] = truncation.original_length
            before += truncation.original_length
            after += truncation.truncated_length
            indexes.append(index)

        if indexes:
            session.touch()
            logger.info(
                "Trimmed %d tool outputs in session %s (%d characters saved)",
                len(indexes),
                session.id,
                before - after,
            )
        return TrimResult(
            trimmed_events=len(indexes),
            characters_before=before,
            characters_after=after,
            trim_method=options.trim_method,
            event_indexes=indexes,
        )
