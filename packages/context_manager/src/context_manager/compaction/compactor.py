"""Replace old session events with a single summary event."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from context_manager.compaction.models import (
    CompactionPreparation,
    CompactOptions,
    CompactResult,
    Summarizer,
)
from context_manager.compaction.summary import summarize_events
from context_manager.models import SessionEvent

if TYPE_CHECKING:
    from context_manager.models import Session

logger = logging.getLogger(__name__)


def _serialized_length(events: list[SessionEvent]) -> int:
    return len(json.dumps([event.model_dump(mode="json", by_alias=True) for event in events]))


def prepare_compaction(
    events: list[SessionEvent], options: CompactOptions | None = None
) -> CompactionPreparation | None:
    """Split events into a prefix to compact and a suffix to keep.

    Returns None when nothing should be compacted: the list is at or below
    the threshold, or it is no longer than ``keep_recent_events``.
    """
    options = options or CompactOptions()
    total = len(events)
    if total <= options.compact_threshold or options.keep_recent_events >= total:
        return None
    cut_index = total - options.keep_recent_events
    return CompactionPreparation(
        events_to_compact=events[:cut_index],
        kept_events=events[cut_index:],
        first_kept_index=cut_index,
    )


class Compactor:
    """Compact a session's event history.

    Args:
        summarizer: Optional callable producing summary text, used only when
            ``summarize_using_llm`` is requested. Without it the local summary
            is used.
    """

    def __init__(self, summarizer: Summarizer | None = None) -> None:
        self._summarizer = summarizer

    def compact(self, session: Session, options: CompactOptions | None = None) -> CompactResult:
        options = options or CompactOptions()
        original = len(session.events)
        preparation = prepare_compaction(session.events, options)
        if preparation is None:
            return CompactResult(
                original_events=original,
                remaining_events=original,
                compacted_events=0,
                summary="",
                space_saved=0,
            )

        to_compact = preparation.events_to_compact
        summary, details = summarize_events(to_compact)
        if options.summarize_using_llm:
            if self._summarizer is None:
                logger.warning(
                    "LLM summarization requested for session %s but no summarizer is "
                    "configured; using local summary",
                    session.id,
                )
            else:
                summary = self._summarizer(to_compact)
                details["summarizer"] = "llm"

        summary_event = SessionEvent(
            type="compact",
            data={"summary": summary, "compactedEvents": len(to_compact), **details},
        )
        space_saved = _serialized_length(to_compact) - _serialized_length([summary_event])

        session.events = [summary_event, *preparation.kept_events]
        session.touch()
        logger.info(
            "Compacted %d of %d events in session %s", len(to_compact), original, session.id
        )
        return CompactResult(
            original_events=original,
            remaining_events=len(session.events),
            compacted_events=len(to_compact),
            summary=summary,
            space_saved=space_saved,
            details=details,
        )
