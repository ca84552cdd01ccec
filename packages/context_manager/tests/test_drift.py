from __future__ import annotations

import pytest
from context_manager.drift import (
    DriftDetector,
    extract_file_paths,
    extract_keywords,
    jaccard_distance,
)
from context_manager.errors import ValidationError

MARKETING_MESSAGES = [
    "deploying a marketing website",
    "marketing website deploying tonight",
    "website landing page for marketing",
    "deploying marketing assets",
    "marketing website launch checklist",
]


def _add_messages(session, contents: list[str]) -> None:
    for content in contents:
        session.append_event("message", {"role": "user", "content": content})


def test_extract_keywords_drops_stop_words_and_short_words() -> None:
    assert extract_keywords("Please refactor the Auth module, it is OK") == {
        "refactor",
        "auth",
        "module",
    }


def test_extract_file_paths() -> None:
    paths = extract_file_paths("edit src/auth/login.py and README.md, then run it")
    assert paths == {"src/auth/login.py", "README.md"}


def test_jaccard_distance_boundaries() -> None:
    assert jaccard_distance({"a", "b"}, {"a", "b"}) == 0.0
    assert jaccard_distance({"a"}, {"b"}) == 1.0
    assert jaccard_distance(set(), set()) == 0.0
    assert jaccard_distance({"a", "b"}, {"b", "c"}) == pytest.approx(2 / 3)


def test_identical_topic_has_no_drift(session_factory) -> None:
    session = session_factory()
    _add_messages(session, ["refactor authentication module"])

    result = DriftDetector().detect(session)

    assert result.drift_score == 0.0
    assert result.needs_deep_analysis is False


def test_disjoint_topic_flags_deep_analysis(session_factory) -> None:
    session = session_factory()
    _add_messages(session, MARKETING_MESSAGES)

    result = DriftDetector().detect(session)

    assert result.drift_score == pytest.approx(1.0)
    assert result.needs_deep_analysis is True
    assert result.method == "keyword"
    assert result.baseline_keywords == ["authentication", "module", "refactor"]
    assert "marketing" in result.current_keywords


def test_no_messages_means_no_drift(session_factory) -> None:
    session = session_factory()
    session.append_event("tool", {"name": "shell"})

    assert DriftDetector().detect(session).drift_score == 0.0


def test_only_recent_window_is_compared(session_factory) -> None:
    session = session_factory()
    _add_messages(session, MARKETING_MESSAGES)
    _add_messages(session, ["refactor authentication module"] * 5)

    assert DriftDetector().detect(session).drift_score == 0.0
    assert DriftDetector(window_size=10).detect(session).drift_score > 0.7


def test_detect_does_not_mutate_session(session_factory) -> None:
    session = session_factory()
    _add_messages(session, MARKETING_MESSAGES)

    DriftDetector().detect(session)
    assert session.metrics.drift_score == 0.0


def test_threshold_validation() -> None:
    detector = DriftDetector()
    detector.threshold = 0.2
    assert detector.threshold == 0.2

    with pytest.raises(ValidationError):
        detector.threshold = 1.5
    with pytest.raises(ValidationError):
        DriftDetector(threshold=-0.1)
    with pytest.raises(ValidationError):
        DriftDetector(window_size=0)


def test_threshold_controls_deep_analysis(session_factory) -> None:
    session = session_factory()
    _add_messages(session, ["refactor authentication flow for billing"])

    result = DriftDetector(threshold=0.0).detect(session)
    assert 0.0 < result.drift_score < 1.0
    assert result.needs_deep_analysis is True
    assert DriftDetector(threshold=1.0).detect(session).needs_deep_analysis is False


def test_custom_strategy(session_factory) -> None:
    class FixedStrategy:
        method = "llm"

        def score(self, baseline, current, session) -> float:
            return 0.42

    result = DriftDetector(strategy=FixedStrategy()).detect(session_factory())

    assert result.method == "llm"
    assert result.drift_score == 0.42
    assert result.to_dict()["driftScore"] == 0.42
    assert result.to_dict()["needsDeepAnalysis"] is False
