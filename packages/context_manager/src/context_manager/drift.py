"""Topic drift detection.

Drift compares the keyword signature of the most recent messages with the
signature captured from the session's initial prompt. The default keyword
method is deterministic and synchronous; other methods (for example an
LLM-backed judge) plug in through :class:`DriftStrategy`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from context_manager.config.thresholds import (
    DRIFT_THRESHOLD,
    MIN_KEYWORD_LENGTH,
    PHASE_WINDOW_SIZE,
)
from context_manager.errors import ValidationError
from context_manager.utils import clamp

if TYPE_CHECKING:
    from context_manager.models import Session

_WORD_RE = re.compile(r"[a-z0-9][a-z0-9_\-]*")
_PATH_RE = re.compile(r"(?:[\w.\-]+/)+[\w.\-]+|\b[\w\-]+\.(?:py|ts|tsx|js|jsx|json|md|toml|yaml|yml|rs|go|java|css|html|sh)\b")

STOP_WORDS = frozenset(
    {
        "about", "after", "again", "all", "also", "and", "any", "are", "because", "been",
        "before", "being", "but", "can", "could", "did", "does", "doing", "done", "for",
        "from", "get", "had", "has", "have", "her", "here", "him", "his", "how", "into",
        "its", "just", "let", "like", "make", "may", "more", "most", "much", "need",
        "not", "now", "off", "once", "one", "only", "other", "our", "out", "over",
        "please", "same", "she", "should", "some", "such", "than", "that", "the",
        "their", "them", "then", "there", "these", "they", "this", "those", "through",
        "too", "under", "until", "use", "very", "want", "was", "way", "were", "what",
        "when", "where", "which", "while", "who", "why", "will", "with", "would", "yes",
        "you", "your",
    }
)  # fmt: skip


def extract_keywords(text: str) -> set[str]:
    """Return lowercase content words of at least three characters."""
    keywords: set[str] = set()
    for word in _WORD_RE.findall(text.lower()):
        word = word.strip("-_")
        if len(word) >= MIN_KEYWORD_LENGTH and word not in STOP_WORDS:
            keywords.add(word)
    return keywords


def extract_file_paths(text: str) -> set[str]:
    """Return tokens that look like file paths (contain a slash or an extension)."""
    return {match.rstrip(".,:;") for match in _PATH_RE.findall(text)}


def jaccard_distance(baseline: set[str], current: set[str]) -> float:
    """Return ``1 - |A & B| / |A | B|``; two empty sets have distance 0."""
    union = baseline | current
    if not union:
        return 0.0
    return 1.0 - len(baseline & current) / len(union)


def baseline_signature(session: Session) -> set[str]:
    """Keywords of the initial topic."""
    return set(session.topic_tracking.keywords) | extract_keywords(
        session.metadata.initial_prompt
    )


def current_signature(session: Session, window_size: int) -> set[str]:
    """Keywords of the last ``window_size`` messages."""
    recent = session.message_events()[-window_size:] if window_size > 0 else []
    keywords: set[str] = set()
    for event in recent:
        keywords |= extract_keywords(str(event.data.get("content", "")))
    return keywords


class DriftStrategy(Protocol):
    """Scoring method for drift detection."""

    method: str

    def score(self, baseline: set[str], current: set[str], session: Session) -> float:
        """Return a drift score in [0, 1]."""
        ...


class KeywordDriftStrategy:
    """Jaccard distance between baseline and current keyword sets."""

    method = "keyword"

    def score(self, baseline: set[str], current: set[str], session: Session) -> float:
        if not current:
            return 0.0
        return jaccard_distance(baseline, current)


@dataclass(frozen=True)
class DriftResult:
    """Outcome of a drift detection run."""

    drift_score: float
    method: str
    needs_deep_analysis: bool
    baseline_keywords: list[str] = field(default_factory=list)
    current_keywords: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        """Serialize to the camelCase shape used by the outer facade."""
        return {
            "driftScore": self.drift_score,
            "method": self.method,
            "needsDeepAnalysis": self.needs_deep_analysis,
            "baselineKeywords": self.baseline_keywords,
            "currentKeywords": self.current_keywords,
        }


def validate_threshold(threshold: float) -> float:
    """Ensure a drift threshold lies in [0, 1]."""
    if not 0.0 <= threshold <= 1.0:
        raise ValidationError("drift_threshold", "must be between 0 and 1")
    return threshold


class DriftDetector:
    """Compare recent conversation keywords against the initial topic.

    The detector never mutates the session; callers persist ``drift_score``.
    """

    def __init__(
        self,
        threshold: float = DRIFT_THRESHOLD,
        window_size: int = PHASE_WINDOW_SIZE,
        strategy: DriftStrategy | None = None,
    ) -> None:
        if window_size < 1:
            raise ValidationError("window_size", "must be at least 1")
        self._threshold = validate_threshold(threshold)
        self._window_size = window_size
        self._strategy = strategy or KeywordDriftStrategy()

    @property
    def threshold(self) -> float:
        return self._threshold

    @threshold.setter
    def threshold(self, value: float) -> None:
        self._threshold = validate_threshold(value)

    @property
    def method(self) -> str:
        return self._strategy.method

    def detect(self, session: Session) -> DriftResult:
        """Score drift for ``session``."""
        baseline = baseline_signature(session)
        current = current_signature(session, self._window_size)
        drift_score = clamp(self._strategy.score(baseline, current, session))
        return DriftResult(
            drift_score=drift_score,
            method=self._strategy.method,
            needs_deep_analysis=drift_score > self._threshold,
            baseline_keywords=sorted(baseline),
            current_keywords=sorted(current),
        )
