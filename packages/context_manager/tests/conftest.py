from __future__ import annotations

import pytest
from context_manager.config import ContextManagerSettings
from context_manager.controller import ContextController
from context_manager.drift import extract_keywords
from context_manager.models import Session, SessionMetadata, TopicTracking
from context_manager.snapshots import InMemorySnapshotBackend, SnapshotManager
from context_manager.store import InMemorySessionStore

CONTEXT_ENV_VARS = (
    "CONTEXT_SESSIONS_DIR",
    "CONTEXT_SNAPSHOTS_DIR",
    "CONTEXT_STORAGE_BACKEND",
    "CONTEXT_AUTO_COMPACT_THRESHOLD",
    "CONTEXT_HEALTH_CHECK_INTERVAL_MS",
    "CONTEXT_DRIFT_THRESHOLD",
    "CONTEXT_KEEP_RECENT_EVENTS",
    "CONTEXT_COMPACT_THRESHOLD",
    "CONTEXT_SAVE_IMMEDIATELY",
    "CONTEXT_MAX_OUTPUT_LENGTH",
)


@pytest.fixture(autouse=True)
def _clear_context_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in CONTEXT_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _make_session(
    session_id: str = "s1", prompt: str = "refactor authentication module"
) -> Session:
    return Session(
        id=session_id,
        metadata=SessionMetadata(initial_prompt=prompt),
        topic_tracking=TopicTracking(keywords=extract_keywords(prompt)),
    )


@pytest.fixture
def settings() -> ContextManagerSettings:
    return ContextManagerSettings(storage_backend="memory")


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def snapshot_backend() -> InMemorySnapshotBackend:
    return InMemorySnapshotBackend()


@pytest.fixture
def controller(
    settings: ContextManagerSettings,
    store: InMemorySessionStore,
    snapshot_backend: InMemorySnapshotBackend,
) -> ContextController:
    return ContextController(store, SnapshotManager(snapshot_backend), settings=settings)


@pytest.fixture
def session_factory():
    return _make_session
