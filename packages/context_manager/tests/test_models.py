from __future__ import annotations

import json

from context_manager.models import Session


def test_session_json_uses_camel_case_aliases(session_factory) -> None:
    session = session_factory()
    data = json.loads(session.to_json())

    assert data["metadata"]["initialPrompt"] == "refactor authentication module"
    assert data["metadata"]["healthScore"] == 1.0
    assert data["metrics"]["messageCount"] == 0
    assert data["topicTracking"]["keywords"] == ["authentication", "module", "refactor"]
    assert "createdAt" in data
    assert "updatedAt" in data


def test_session_roundtrip_preserves_events_and_snapshots(session_factory) -> None:
    session = session_factory()
    session.append_event("message", {"role": "user", "content": "hello"})
    session.append_event("tool", {"name": "read_file", "args": {"path": "a.py"}})

    restored = Session.from_json(session.to_json())

    assert restored.id == session.id
    assert [event.type for event in restored.events] == ["message", "tool"]
    assert restored.topic_tracking.keywords == session.topic_tracking.keywords
    assert restored.events[0].timestamp == session.events[0].timestamp


def test_append_event_touches_updated_at(session_factory) -> None:
    session = session_factory()
    before = session.updated_at
    event = session.append_event("error", {"message": "boom"})

    assert session.updated_at >= before
    assert session.last_activity() == event.timestamp


def test_message_events_filters_by_type(session_factory) -> None:
    session = session_factory()
    session.append_event("message", {"content": "one"})
    session.append_event("tool", {"name": "shell"})
    session.append_event("message", {"content": "two"})

    assert [event.data["content"] for event in session.message_events()] == ["one", "two"]


def test_last_activity_without_events_is_updated_at(session_factory) -> None:
    session = session_factory()
    assert session.last_activity() == session.updated_at
    assert not session.is_ended
    session.metadata.phase = "ended"
    assert session.is_ended
