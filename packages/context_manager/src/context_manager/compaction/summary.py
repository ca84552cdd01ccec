"""Local, non-LLM summary of compacted events."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Any

from context_manager.compaction.models import FileOps
from context_manager.config.thresholds import COMPACT_DIGEST_MAX_CHARS
from context_manager.trimming import truncate_text
from context_manager.utils import dedupe

if TYPE_CHECKING:
    from context_manager.models import SessionEvent

READ_TOOL_MARKERS = ("read", "view", "open")
WRITE_TOOL_MARKERS = ("write", "edit", "patch", "create")


def _record_path(target: list[str], args: Any) -> None:
    if not isinstance(args, dict):
        return
    for key in ("path", "file_path", "filePath"):
        value = args.get(key)
        if isinstance(value, str) and value:
            target.append(value)
        elif isinstance(value, list):
            target.extend(item for item in value if isinstance(item, str))


def extract_file_ops(events: list[SessionEvent]) -> FileOps:
    """Collect file paths read or modified by tool events."""
    read_files: list[str] = []
    modified_files: list[str] = []
    for event in events:
        if event.type != "tool":
            continue
        name = str(event.data.get("name", "")).lower()
        args = event.data.get("args")
        if any(marker in name for marker in READ_TOOL_MARKERS):
            _record_path(read_files, args)
        if any(marker in name for marker in WRITE_TOOL_MARKERS):
            _record_path(modified_files, args)
    return FileOps(read_files=sorted(set(read_files)), modified_files=sorted(set(modified_files)))


def build_digest(events: list[SessionEvent], max_chars: int = COMPACT_DIGEST_MAX_CHARS) -> str:
    """Concatenate message contents, capped at ``max_chars``."""
    lines = [
        f"{event.data.get('role', 'unknown')}: {event.data.get('content', '')}"
        for event in events
        if event.type == "message"
    ]
    return truncate_text("\n".join(lines), max_chars).text


def summarize_events(events: list[SessionEvent]) -> tuple[str, dict[str, Any]]:
    """Return a markdown summary and structured details for ``events``."""
    counts = Counter(event.type for event in events)
    tools = dedupe([str(event.data.get("name")) for event in events if event.type == "tool"])
    errors = [str(event.data.get("message", "")) for event in events if event.type == "error"]
    earlier = [
        str(event.data.get("summary", "")) for event in events if event.type == "compact"
    ]
    file_ops = extract_file_ops(events)
    digest = build_digest(events)

    count_text = ", ".join(f"{count} {kind}" for kind, count in sorted(counts.items()))
    lines: list[str] = ["## Compacted History", f"- {len(events)} events ({count_text or 'none'})"]
    if events:
        lines.append(f"- From {events[0].timestamp.isoformat()} to {events[-1].timestamp.isoformat()}")
    lines.append(f"- {len(errors)} errors")
    lines.append("")
    lines.append("## Tools")
    lines.extend(f"- {name}" for name in tools or ["(none)"])
    lines.append("")
    lines.append("<read-files>")
    lines.extend(file_ops.read_files)
    lines.append("</read-files>")
    lines.append("")
    lines.append("<modified-files>")
    lines.extend(file_ops.modified_files)
    lines.append("</modified-files>")
    if earlier:
        lines.append("")
        lines.append("## Earlier Summaries")
        lines.append(truncate_text("\n\n".join(earlier), COMPACT_DIGEST_MAX_CHARS).text)
    lines.append("")
    lines.append("## Message Digest")
    lines.append(digest or "(no messages)")

    details: dict[str, Any] = {
        "countsByType": dict(counts),
        "tools": tools,
        "errorCount": len(errors),
        "readFiles": file_ops.read_files,
        "modifiedFiles": file_ops.modified_files,
    }
    return "\n".join(lines), details
