"""Models for session history compaction."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from context_manager.config.thresholds import COMPACT_KEEP_RECENT, COMPACT_THRESHOLD
from context_manager.errors import ValidationError

if TYPE_CHECKING:
    from context_manager.models import SessionEvent


@dataclass(frozen=True)
class FileOps:
    """File paths touched by tool calls in the compacted range."""

    read_files: list[str] = field(default_factory=list)
    modified_files: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CompactOptions:
    """Settings for one compaction run."""

    keep_recent_events: int = COMPACT_KEEP_RECENT
    compact_threshold: int = COMPACT_THRESHOLD
    summarize_using_llm: bool = False

    def __post_init__(self) -> None:
        if self.keep_recent_events < 0:
            raise ValidationError("keep_recent_events", "must not be negative")
        if self.compact_threshold < 0:
            raise ValidationError("compact_threshold", "must not be negative")


@dataclass(frozen=True)
class CompactionPreparation:
    """Split of the event list computed before summarizing."""

    events_to_compact: list[SessionEvent]
    kept_events: list[SessionEvent]
    first_kept_index: int


@dataclass(frozen=True)
class CompactResult:
    """Report of a compaction run."""

    original_events: int
    remaining_events: int
    compacted_events: int
    summary: str
    space_saved: int
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase shape used by the outer facade."""
        return {
            "originalEvents": self.original_events,
            "remainingEvents": self.remaining_events,
            "compactedEvents": self.compacted_events,
            "summary": self.summary,
            "spaceSaved": self.space_saved,
        }


Summarizer = Callable[[list["SessionEvent"]], str]
