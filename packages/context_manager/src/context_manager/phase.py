"""Advisory conversation phase detection."""

from __future__ import annotations

from typing import TYPE_CHECKING

from context_manager.config.thresholds import PHASE_WINDOW_SIZE
from context_manager.drift import extract_keywords
from context_manager.models import PHASE_ENDED

if TYPE_CHECKING:
    from collections.abc import Sequence

    from context_manager.models import Phase

PHASE_KEYWORDS: dict[Phase, frozenset[str]] = {
    "planning": frozenset(
        {"plan", "design", "approach", "architecture", "idea", "propose", "proposal", "outline",
         "requirements", "scope", "strategy"}
    ),
    "implementation": frozenset(
        {"implement", "add", "create", "write", "build", "code", "function", "class",
         "refactor", "module", "feature", "endpoint"}
    ),
    "debugging": frozenset(
        {"error", "errors", "bug", "fix", "exception", "traceback", "fail", "failed",
         "failing", "broken", "crash", "stack", "debug"}
    ),
    "review": frozenset(
        {"review", "test", "tests", "verify", "check", "lgtm", "approve", "merge", "cleanup",
         "coverage"}
    ),
}  # fmt: skip


def detect_phase(
    messages: Sequence[str],
    current_phase: Phase,
    window_size: int = PHASE_WINDOW_SIZE,
) -> Phase:
    """Infer the phase from the last ``window_size`` message contents.

    The phase with the most keyword hits wins. Ties and messages without
    any hits keep ``current_phase``; an ended session never changes phase.
    """
    if current_phase == PHASE_ENDED or window_size <= 0:
        return current_phase

    hits: dict[Phase, int] = dict.fromkeys(PHASE_KEYWORDS, 0)
    for content in messages[-window_size:]:
        words = extract_keywords(content)
        for phase, keywords in PHASE_KEYWORDS.items():
            hits[phase] += len(words & keywords)

    best = max(hits.values())
    if best == 0:
        return current_phase
    leaders = [phase for phase, count in hits.items() if count == best]
    if len(leaders) > 1:
        return current_phase
    return leaders[0]
