from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from context_manager.compaction import CompactOptions
from context_manager.config import ContextManagerSettings
from context_manager.controller import ContextController
from context_manager.errors import (
    DuplicateSessionError,
    NoActiveSessionError,
    SessionEndedError,
    SessionNotFoundError,
    SnapshotNotFoundError,
    ValidationError,
    describe_error,
)
from context_manager.snapshots import InMemorySnapshotBackend, SnapshotManager
from context_manager.store import FileSessionStore, InMemorySessionStore
from context_manager.trimming import TrimOptions

PROMPT = "refactor authentication module"
MARKETING_MESSAGES = [
    "deploying a marketing website",
    "marketing website deploying tonight",
    "website landing page for marketing",
    "deploying marketing assets",
    "marketing website launch checklist",
]


@pytest.mark.asyncio
async def test_create_session_persists_and_becomes_current(
    controller: ContextController, store: InMemorySessionStore
) -> None:
    session = await controller.create_session("s1", PROMPT)

    assert controller.get_current_session() is session
    assert session.topic_tracking.keywords == {"refactor", "authentication", "module"}
    assert session.metadata.phase == "planning"
    assert session.metadata.health_score == 1.0
    assert await store.exists("s1")


@pytest.mark.asyncio
async def test_duplicate_session_is_rejected(controller: ContextController) -> None:
    await controller.create_session("s1", PROMPT)
    with pytest.raises(DuplicateSessionError):
        await controller.create_session("s1", PROMPT)

    await controller.end_session()
    with pytest.raises(DuplicateSessionError):
        await controller.create_session("s1", "something else")


@pytest.mark.asyncio
async def test_create_session_validates_input(controller: ContextController) -> None:
    with pytest.raises(ValidationError):
        await controller.create_session("s1", "   ")
    with pytest.raises(ValidationError):
        await controller.create_session("", PROMPT)


@pytest.mark.asyncio
async def test_operations_without_session(controller: ContextController) -> None:
    with pytest.raises(NoActiveSessionError):
        await controller.track_message("user", "hello")
    with pytest.raises(NoActiveSessionError):
        await controller.track_tool("shell")
    with pytest.raises(NoActiveSessionError):
        await controller.track_error("boom")
    with pytest.raises(NoActiveSessionError):
        controller.get_health_score()
    with pytest.raises(NoActiveSessionError):
        await controller.compact()
    with pytest.raises(NoActiveSessionError):
        await controller.create_snapshot()
    with pytest.raises(NoActiveSessionError):
        await controller.end_session()

    assert await controller.get_status() is None
    assert await controller.analyze_drift() is None
    assert controller.get_snapshots() == []
    assert controller.get_latest_snapshot() is None
    assert controller.get_healthiest_snapshot() is None


@pytest.mark.asyncio
async def test_tracking_updates_metrics_and_store(
    controller: ContextController, store: InMemorySessionStore
) -> None:
    await controller.create_session("s1", PROMPT)

    await controller.track_message("user", "a" * 40)
    await controller.track_tool("read_file", {"path": "src/auth.py"}, "contents")
    await controller.track_error("permission denied", recoverable=True)

    stored = await store.get("s1")
    assert stored.metrics.message_count == 1
    assert stored.metrics.total_tokens == 10
    assert stored.metrics.error_count == 1
    assert stored.metrics.retry_count == 1
    assert [event.type for event in stored.events] == ["message", "tool", "error"]
    assert "src/auth.py" in stored.topic_tracking.file_paths


@pytest.mark.asyncio
async def test_tracking_rejects_empty_input(controller: ContextController) -> None:
    await controller.create_session("s1", PROMPT)
    with pytest.raises(ValidationError):
        await controller.track_message("user", "")
    with pytest.raises(ValidationError):
        await controller.track_tool("")
    with pytest.raises(ValidationError):
        await controller.track_error("  ")


@pytest.mark.asyncio
async def test_deferred_saves_are_flushed(
    store: InMemorySessionStore, snapshot_backend: InMemorySnapshotBackend
) -> None:
    controller = ContextController(
        store,
        SnapshotManager(snapshot_backend),
        settings=ContextManagerSettings(storage_backend="memory", save_immediately=False),
    )
    await controller.create_session("s1", PROMPT)
    await controller.track_message("user", "hello there")

    assert (await store.get("s1")).metrics.message_count == 0
    await controller.flush()
    assert (await store.get("s1")).metrics.message_count == 1


@pytest.mark.asyncio
async def test_switching_sessions_flushes_pending_changes(
    store: InMemorySessionStore, snapshot_backend: InMemorySnapshotBackend
) -> None:
    controller = ContextController(
        store,
        SnapshotManager(snapshot_backend),
        settings=ContextManagerSettings(storage_backend="memory", save_immediately=False),
    )
    await controller.create_session("s1", PROMPT)
    await controller.track_message("user", "hello there")
    await controller.create_session("s2", "write release notes")

    assert (await store.get("s1")).metrics.message_count == 1
    assert controller.get_current_session().id == "s2"


@pytest.mark.asyncio
async def test_end_resume_and_delete(controller: ContextController, store: InMemorySessionStore) -> None:
    await controller.create_session("s1", PROMPT)
    await controller.create_session("s2", "write release notes")

    resumed = await controller.resume_session("s1")
    assert resumed.id == "s1"
    assert controller.get_current_session().id == "s1"

    ended = await controller.end_session("s2")
    assert ended.is_ended
    assert controller.get_current_session().id == "s1"
    with pytest.raises(SessionEndedError):
        await controller.resume_session("s2")
    with pytest.raises(SessionEndedError):
        await controller.end_session("s2")
    with pytest.raises(SessionNotFoundError):
        await controller.resume_session("missing")

    await controller.delete_session("s1")
    assert controller.get_current_session() is None
    assert await store.get("s1") is None
    with pytest.raises(SessionNotFoundError):
        await controller.delete_session("s1")


@pytest.mark.asyncio
async def test_list_and_get_sessions(controller: ContextController) -> None:
    await controller.create_session("s1", PROMPT)
    await controller.create_session("s2", "write release notes")
    await controller.track_message("user", "draft the changelog")

    sessions = await controller.list_sessions()

    assert [session.id for session in sessions] == ["s2", "s1"]
    assert (await controller.get_session("s2")) is controller.get_current_session()
    assert (await controller.get_session("s1")).id == "s1"
    assert await controller.get_session("missing") is None


@pytest.mark.asyncio
async def test_status_for_quiet_session(controller: ContextController) -> None:
    await controller.create_session("s1", PROMPT)
    await controller.track_message("user", "refactor authentication module")

    status = await controller.get_status()

    assert status.session_id == "s1"
    assert status.status == "good"
    assert status.drift_score == 0.0
    assert status.needs_attention is False
    assert controller.get_health_score() == status.health_score
    payload = status.to_dict()
    assert 0 <= payload["healthScore"] <= 100
    assert payload["messageCount"] == 1


@pytest.mark.asyncio
async def test_drift_scenario(controller: ContextController, store: InMemorySessionStore) -> None:
    await controller.create_session("s1", PROMPT)
    for content in MARKETING_MESSAGES:
        await controller.track_message("user", content)

    result = await controller.analyze_drift()

    assert result.drift_score == pytest.approx(1.0)
    assert result.needs_deep_analysis is True
    assert (await store.get("s1")).metrics.drift_score == pytest.approx(1.0)

    status = await controller.get_status()
    assert status.needs_attention is True
    assert status.needs_deep_analysis is True


def test_drift_threshold_is_adjustable(controller: ContextController) -> None:
    assert controller.get_drift_threshold() == 0.7
    controller.set_drift_threshold(0.3)
    assert controller.get_drift_threshold() == 0.3
    with pytest.raises(ValidationError):
        controller.set_drift_threshold(2.0)
    assert controller.get_drift_threshold() == 0.3


@pytest.mark.asyncio
async def test_compact_through_controller(
    controller: ContextController, store: InMemorySessionStore
) -> None:
    await controller.create_session("s1", PROMPT)
    for index in range(120):
        await controller.track_message("user", f"refactor step {index}")

    result = await controller.compact(CompactOptions(keep_recent_events=20))

    assert result.compacted_events == 100
    assert result.remaining_events == 21
    assert len((await store.get("s1")).events) == 21


def test_default_compact_options_follow_settings(controller: ContextController) -> None:
    options = controller.default_compact_options()
    assert options.keep_recent_events == 50
    assert options.compact_threshold == 100


@pytest.mark.asyncio
async def test_trim_output_through_controller(
    controller: ContextController, store: InMemorySessionStore
) -> None:
    await controller.create_session("s1", PROMPT)
    await controller.track_tool("shell", {"cmd": "cat big.log"}, "z" * 7000)

    result = await controller.trim_output()

    assert result.trimmed_events == 1
    stored = await store.get("s1")
    assert len(stored.events[0].data["result"]) <= 5000
    noop = await controller.trim_output(TrimOptions(max_output_length=6000))
    assert noop.trimmed_events == 0


@pytest.mark.asyncio
async def test_snapshot_and_restore(controller: ContextController, store: InMemorySessionStore) -> None:
    await controller.create_session("s1", PROMPT)
    await controller.track_message("user", "refactor authentication module")
    ref = await controller.create_snapshot("checkpoint")

    for content in MARKETING_MESSAGES:
        await controller.track_message("user", content)
    await controller.track_error("deploy failed")
    await controller.analyze_drift()

    restored = await controller.restore_snapshot(ref.commit_hash)

    assert restored is controller.get_current_session()
    assert [event.type for event in restored.events] == ["message", "snapshot"]
    assert restored.metrics.message_count == 6
    assert restored.metrics.error_count == 1
    assert restored.metrics.drift_score == 0.0
    assert controller.get_latest_snapshot() == ref
    assert controller.get_healthiest_snapshot() == ref
    stored = await store.get("s1")
    assert len(stored.events) == 2
    assert stored.snapshots == [ref]
    with pytest.raises(SnapshotNotFoundError):
        await controller.restore_snapshot("0" * 40)


@pytest.mark.asyncio
async def test_stats(controller: ContextController) -> None:
    await controller.create_session("s1", PROMPT)
    await controller.track_message("user", "hello world")
    await controller.track_message("user", "refactor login")
    await controller.create_snapshot()
    await controller.create_session("s2", "write release notes")
    await controller.end_session()

    stats = await controller.get_stats()

    assert stats.total_sessions == 2
    assert stats.active_sessions == 1
    assert stats.ended_sessions == 1
    # Two messages plus the snapshot event in s1.
    assert stats.total_events == 3
    assert stats.total_snapshots == 1
    assert 0.0 < stats.average_health_score <= 1.0
    assert stats.current_session_id is None


def test_describe_error() -> None:
    status, payload = describe_error(SessionNotFoundError("s1"))
    assert status == 404
    assert payload == {"error": "Session not found: s1", "code": "session_not_found"}

    status, payload = describe_error(ValidationError("content", "is required"))
    assert status == 400
    assert payload["field"] == "content"

    assert describe_error(DuplicateSessionError("s1"))[0] == 409
    assert describe_error(RuntimeError("boom")) == (
        500,
        {"error": "Internal error", "code": "internal_error"},
    )


def _file_controller(tmp_path: Path) -> tuple[ContextController, FileSessionStore]:
    store = FileSessionStore(tmp_path)
    controller = ContextController(
        store,
        SnapshotManager(InMemorySnapshotBackend()),
        settings=ContextManagerSettings(storage_backend="memory"),
    )
    return controller, store


@pytest.mark.asyncio
async def test_snapshot_queued_behind_delete_does_not_resurrect_session(tmp_path: Path) -> None:
    controller, store = _file_controller(tmp_path)
    await controller.create_session("s1", PROMPT)

    results = await asyncio.gather(
        controller.delete_session("s1"),
        controller.create_snapshot("late"),
        return_exceptions=True,
    )

    assert results[0] is None
    assert isinstance(results[1], NoActiveSessionError)
    assert not await store.exists("s1")
    assert controller.get_current_session() is None


@pytest.mark.asyncio
async def test_writes_queued_behind_delete_are_dropped(tmp_path: Path) -> None:
    controller, store = _file_controller(tmp_path)
    await controller.create_session("s1", PROMPT)
    await controller.track_message("user", "start with the login handler")

    results = await asyncio.gather(
        controller.delete_session("s1"),
        controller.get_status(),
        controller.analyze_drift(),
        controller.compact(CompactOptions(keep_recent_events=0, compact_threshold=0)),
        controller.trim_output(TrimOptions(max_output_length=10)),
        controller.track_message("user", "one more"),
        return_exceptions=True,
    )

    assert results[1] is None
    assert results[2] is None
    assert all(isinstance(result, NoActiveSessionError) for result in results[3:])
    assert not await store.exists("s1")
    assert await controller.list_sessions() == []
