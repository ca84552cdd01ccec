"""Compaction of session event history."""

from context_manager.compaction.compactor import Compactor, prepare_compaction
from context_manager.compaction.models import (
    CompactionPreparation,
    CompactOptions,
    CompactResult,
    FileOps,
    Summarizer,
)
from context_manager.compaction.summary import build_digest, extract_file_ops, summarize_events

__all__ = [
    "CompactOptions",
    "CompactResult",
    "CompactionPreparation",
    "Compactor",
    "FileOps",
    "Summarizer",
    "build_digest",
    "extract_file_ops",
    "prepare_compaction",
    "summarize_events",
]
